"""Pydantic schemas for service inputs and results"""

from restaurant_core.schemas.auth import (
    TokenPayload,
    ActorPublic,
    LoginSuccess,
)
from restaurant_core.schemas.audit import (
    AuditEntry,
    AuditQuery,
    AuditLogResponse,
    AuditReport,
    AuditSummary,
)
from restaurant_core.schemas.content import (
    MenuSectionCreate,
    MenuSectionUpdate,
    MenuItemCreate,
    MenuItemUpdate,
    MenuItemBulkUpdate,
    ContactUpdate,
    OperatingHoursUpdate,
    ImageCreate,
    ImageUpdate,
    ReorderItem,
)
from restaurant_core.schemas.user import (
    InvitationCreate,
    InvitationIssued,
    ActorSummary,
)

__all__ = [
    "TokenPayload",
    "ActorPublic",
    "LoginSuccess",
    "AuditEntry",
    "AuditQuery",
    "AuditLogResponse",
    "AuditReport",
    "AuditSummary",
    "MenuSectionCreate",
    "MenuSectionUpdate",
    "MenuItemCreate",
    "MenuItemUpdate",
    "MenuItemBulkUpdate",
    "ContactUpdate",
    "OperatingHoursUpdate",
    "ImageCreate",
    "ImageUpdate",
    "ReorderItem",
    "InvitationCreate",
    "InvitationIssued",
    "ActorSummary",
]

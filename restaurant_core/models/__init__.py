"""Database models"""

from restaurant_core.models.tenant import Tenant, OperatingHours, Contact, Image
from restaurant_core.models.menu import MenuSection, MenuItem
from restaurant_core.models.actor import Actor, ActorStatus, ActorTenant
from restaurant_core.models.session import Session
from restaurant_core.models.invitation import Invitation, InvitationStatus
from restaurant_core.models.audit import AuditLog

__all__ = [
    "Tenant",
    "OperatingHours",
    "Contact",
    "Image",
    "MenuSection",
    "MenuItem",
    "Actor",
    "ActorStatus",
    "ActorTenant",
    "Session",
    "Invitation",
    "InvitationStatus",
    "AuditLog",
]

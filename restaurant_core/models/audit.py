"""Audit log model"""

import uuid

from sqlalchemy import JSON, Column, DateTime, String, Text, Uuid

from restaurant_core.database import Base, utcnow


class AuditLog(Base):
    """Append-only record of one mutating action"""
    __tablename__ = "audit_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, index=True)

    # Actor information (null for anonymous/system)
    actor_id = Column(Uuid, index=True)

    # Action details
    action = Column(String(100), nullable=False, index=True)  # MENU_ITEM_UPDATED, LOGIN, etc.
    entity_type = Column(String(100), index=True)  # MenuItem, Actor, Invitation, etc.
    entity_id = Column(String(255), index=True)  # UUID as string, or "multiple"

    # Change data
    old_value = Column(JSON)
    new_value = Column(JSON)
    changes = Column(JSON)  # {"field": {"from": ..., "to": ...}}
    metadata_json = Column("metadata", JSON)

    # Request context
    ip_address = Column(String(45))
    user_agent = Column(Text)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

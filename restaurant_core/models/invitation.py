"""Pending admin invitations"""

import enum
import uuid

from sqlalchemy import JSON, Column, DateTime, Enum, ForeignKey, String, Uuid

from restaurant_core.database import Base, utcnow


class InvitationStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    EXPIRED = "EXPIRED"
    REVOKED = "REVOKED"


class Invitation(Base):
    """Invitation to join the admin backend with a given role"""
    __tablename__ = "invitations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, index=True)
    role = Column(String(50), nullable=False)
    tenant_ids = Column(JSON, default=list)  # ["<tenant uuid>", ...]

    invited_by_id = Column(Uuid, ForeignKey("actors.id", ondelete="SET NULL"))
    token_hash = Column(String(64), unique=True, nullable=False)

    status = Column(Enum(InvitationStatus), nullable=False, default=InvitationStatus.PENDING)
    expires_at = Column(DateTime, nullable=False)
    accepted_at = Column(DateTime)
    created_at = Column(DateTime, default=utcnow)

"""Actor model for admin authentication"""

import enum
import uuid

from sqlalchemy import Column, DateTime, Enum, ForeignKey, String, Uuid
from sqlalchemy.orm import relationship

from restaurant_core.database import Base, utcnow


class ActorStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


class Actor(Base):
    """Admin backend accounts"""
    __tablename__ = "actors"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # Authentication
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)

    # Profile
    name = Column(String(255))

    # Role name from the active role table
    role = Column(String(50), nullable=False)
    status = Column(Enum(ActorStatus), nullable=False, default=ActorStatus.ACTIVE)

    # Password reset (sha256 of the emailed token)
    reset_token_hash = Column(String(64), index=True)
    reset_token_expires_at = Column(DateTime)

    # Timestamps
    last_login_at = Column(DateTime)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    sessions = relationship("Session", back_populates="actor", cascade="all, delete-orphan")
    tenants = relationship("ActorTenant", back_populates="actor", cascade="all, delete-orphan", lazy="selectin")

    @property
    def is_active(self) -> bool:
        return self.status == ActorStatus.ACTIVE

    @property
    def tenant_ids(self) -> list[uuid.UUID]:
        return [membership.tenant_id for membership in self.tenants]


class ActorTenant(Base):
    """Restaurants an actor may administer"""
    __tablename__ = "actor_tenants"

    actor_id = Column(Uuid, ForeignKey("actors.id", ondelete="CASCADE"), primary_key=True)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(DateTime, default=utcnow)

    actor = relationship("Actor", back_populates="tenants")

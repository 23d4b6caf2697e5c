"""Server-side login sessions"""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship

from restaurant_core.database import Base, utcnow


class Session(Base):
    """Binds a bearer token (stored hashed) to an actor until expiry"""
    __tablename__ = "sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    actor_id = Column(Uuid, ForeignKey("actors.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(64), unique=True, nullable=False)

    expires_at = Column(DateTime, nullable=False)
    last_activity_at = Column(DateTime, default=utcnow)

    # Client metadata
    ip_address = Column(String(45))
    user_agent = Column(Text)

    created_at = Column(DateTime, default=utcnow)

    actor = relationship("Actor", back_populates="sessions")

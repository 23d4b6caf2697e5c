"""Authentication schemas"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID
from pydantic import BaseModel

from restaurant_core.models.actor import ActorStatus


class TokenPayload(BaseModel):
    """Decoded bearer token"""
    sub: str  # Actor ID
    email: str
    role: str
    iat: int
    exp: int
    jti: str

    @property
    def actor_id(self) -> UUID:
        return UUID(self.sub)

    @property
    def issued_at(self) -> datetime:
        return datetime.fromtimestamp(self.iat, timezone.utc).replace(tzinfo=None)

    @property
    def expires_at(self) -> datetime:
        return datetime.fromtimestamp(self.exp, timezone.utc).replace(tzinfo=None)


class ActorPublic(BaseModel):
    """Actor fields safe to hand to callers"""
    id: UUID
    email: str
    name: Optional[str] = None
    role: str
    status: ActorStatus
    last_login_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LoginSuccess(BaseModel):
    """Result payload of a successful login"""
    token: str
    token_type: str = "bearer"
    expires_at: datetime
    actor: ActorPublic

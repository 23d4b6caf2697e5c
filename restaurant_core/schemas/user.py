"""User administration schemas"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, EmailStr

from restaurant_core.models.actor import ActorStatus


class InvitationCreate(BaseModel):
    """Invite request"""
    email: EmailStr
    role: str
    tenant_ids: List[UUID] = []


class InvitationIssued(BaseModel):
    """Returned once to the inviter; the raw token is never stored"""
    invitation_id: UUID
    email: str
    role: str
    token: str
    expires_at: datetime


class ActorSummary(BaseModel):
    """Row of the user management list"""
    id: UUID
    email: Optional[str] = None
    name: Optional[str] = None
    role: str
    status: ActorStatus
    last_login_at: Optional[datetime] = None
    created_at: datetime
    tenant_ids: List[UUID] = []

    class Config:
        from_attributes = True

import uuid
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.invitation import Invitation, InvitationStatus


class InvitationRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        email: str,
        role: str,
        tenant_ids: Iterable[uuid.UUID],
        invited_by_id: Optional[uuid.UUID],
        token_hash: str,
        expires_at: datetime,
    ) -> Invitation:
        invitation = Invitation(
            email=email.strip().lower(),
            role=role,
            tenant_ids=[str(tenant_id) for tenant_id in tenant_ids],
            invited_by_id=invited_by_id,
            token_hash=token_hash,
            expires_at=expires_at,
            status=InvitationStatus.PENDING,
        )
        self._session.add(invitation)
        await self._session.flush()
        return invitation

    async def get_by_token_hash(self, token_hash: str) -> Optional[Invitation]:
        result = await self._session.execute(
            select(Invitation).where(Invitation.token_hash == token_hash)
        )
        return result.scalar_one_or_none()

    async def get_live_pending(self, email: str, *, now: datetime) -> Optional[Invitation]:
        result = await self._session.execute(
            select(Invitation).where(
                Invitation.email == email.strip().lower(),
                Invitation.status == InvitationStatus.PENDING,
                Invitation.expires_at > now,
            )
        )
        return result.scalars().first()

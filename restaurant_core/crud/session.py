import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.session import Session
from ..ports import SessionStore


class SessionRepository(SessionStore):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        actor_id: uuid.UUID,
        token_hash: str,
        expires_at: datetime,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Session:
        login_session = Session(
            actor_id=actor_id,
            token_hash=token_hash,
            expires_at=expires_at,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self._session.add(login_session)
        await self._session.flush()
        return login_session

    async def get_by_token_hash(self, token_hash: str) -> Optional[Session]:
        result = await self._session.execute(
            select(Session).where(Session.token_hash == token_hash)
        )
        return result.scalar_one_or_none()

    async def delete(self, session: Session) -> None:
        await self._session.delete(session)
        await self._session.flush()

    async def delete_for_actor(self, actor_id: uuid.UUID, keep_token_hash: Optional[str] = None) -> int:
        stmt = delete(Session).where(Session.actor_id == actor_id)
        if keep_token_hash is not None:
            stmt = stmt.where(Session.token_hash != keep_token_hash)
        result = await self._session.execute(stmt)
        return result.rowcount or 0

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()

import uuid
from datetime import datetime
from typing import Iterable, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.actor import Actor, ActorStatus, ActorTenant
from ..ports import ActorStore


class ActorRepository(ActorStore):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, actor_id: uuid.UUID) -> Optional[Actor]:
        return await self._session.get(Actor, actor_id)

    async def get_by_email(self, email: str) -> Optional[Actor]:
        result = await self._session.execute(
            select(Actor).where(Actor.email == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def get_by_reset_token_hash(self, token_hash: str, *, now: datetime) -> Optional[Actor]:
        result = await self._session.execute(
            select(Actor).where(
                Actor.reset_token_hash == token_hash,
                Actor.reset_token_expires_at > now,
            )
        )
        return result.scalars().first()

    async def create(
        self,
        email: str,
        password_hash: str,
        role: str,
        name: Optional[str] = None,
        tenant_ids: Iterable[uuid.UUID] = (),
    ) -> Actor:
        actor = Actor(
            email=email.strip().lower(),
            password_hash=password_hash,
            name=name,
            role=role,
            status=ActorStatus.ACTIVE,
        )
        actor.tenants = [ActorTenant(tenant_id=tenant_id) for tenant_id in tenant_ids]
        self._session.add(actor)
        await self._session.flush()
        return actor

    async def count_active_with_role(self, role: str) -> int:
        result = await self._session.execute(
            select(func.count())
            .select_from(Actor)
            .where(Actor.role == role, Actor.status == ActorStatus.ACTIVE)
        )
        return result.scalar_one()

    async def list_visible(self, tenant_id: Optional[uuid.UUID] = None) -> Sequence[Actor]:
        query = select(Actor).where(Actor.status != ActorStatus.SUSPENDED)
        if tenant_id is not None:
            query = query.where(
                Actor.id.in_(select(ActorTenant.actor_id).where(ActorTenant.tenant_id == tenant_id))
            )
        result = await self._session.execute(query.order_by(Actor.created_at.desc()))
        return list(result.scalars().all())

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()

"""Storage interfaces the auth and user services depend on"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Iterable, Optional, Protocol, Sequence

from restaurant_core.models.actor import Actor
from restaurant_core.models.session import Session


class ActorStore(Protocol):
    async def get_by_id(self, actor_id: uuid.UUID) -> Optional[Actor]:
        ...

    async def get_by_email(self, email: str) -> Optional[Actor]:
        ...

    async def get_by_reset_token_hash(self, token_hash: str, *, now: datetime) -> Optional[Actor]:
        ...

    async def create(
        self,
        email: str,
        password_hash: str,
        role: str,
        name: Optional[str] = None,
        tenant_ids: Iterable[uuid.UUID] = (),
    ) -> Actor:
        ...

    async def count_active_with_role(self, role: str) -> int:
        ...

    async def list_visible(self, tenant_id: Optional[uuid.UUID] = None) -> Sequence[Actor]:
        ...

    async def commit(self) -> None:
        ...

    async def rollback(self) -> None:
        ...


class SessionStore(Protocol):
    async def create(
        self,
        actor_id: uuid.UUID,
        token_hash: str,
        expires_at: datetime,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Session:
        ...

    async def get_by_token_hash(self, token_hash: str) -> Optional[Session]:
        ...

    async def delete(self, session: Session) -> None:
        ...

    async def delete_for_actor(self, actor_id: uuid.UUID, keep_token_hash: Optional[str] = None) -> int:
        ...

    async def commit(self) -> None:
        ...

    async def rollback(self) -> None:
        ...

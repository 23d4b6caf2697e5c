import uuid
from typing import Any, Optional

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.audit import AuditLog
from ..schemas.audit import AuditQuery


class AuditLogRepository:
    """Insert and query audit rows. Rows are never updated or deleted."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        action: str,
        entity_type: Optional[str],
        entity_id: Optional[str],
        tenant_id: Optional[uuid.UUID] = None,
        actor_id: Optional[uuid.UUID] = None,
        old_value: Optional[dict[str, Any]] = None,
        new_value: Optional[dict[str, Any]] = None,
        changes: Optional[dict[str, Any]] = None,
        metadata: Optional[dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuditLog:
        audit_log = AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            tenant_id=tenant_id,
            actor_id=actor_id,
            old_value=old_value,
            new_value=new_value,
            changes=changes,
            metadata_json=metadata,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.session.add(audit_log)
        await self.session.flush()
        return audit_log

    async def get_by_id(self, audit_log_id: uuid.UUID) -> Optional[AuditLog]:
        return await self.session.get(AuditLog, audit_log_id)

    async def list_by_filters(self, query: AuditQuery) -> list[AuditLog]:
        stmt = select(AuditLog)

        conditions = []
        if query.tenant_id is not None:
            conditions.append(AuditLog.tenant_id == query.tenant_id)
        if query.actor_id is not None:
            conditions.append(AuditLog.actor_id == query.actor_id)
        if query.entity_type is not None:
            conditions.append(AuditLog.entity_type == query.entity_type)
        if query.entity_id is not None:
            conditions.append(AuditLog.entity_id == query.entity_id)
        if query.action is not None:
            conditions.append(AuditLog.action == query.action)
        if query.start_date is not None:
            conditions.append(AuditLog.created_at >= query.start_date)
        if query.end_date is not None:
            conditions.append(AuditLog.created_at <= query.end_date)

        if conditions:
            stmt = stmt.where(and_(*conditions))

        stmt = stmt.order_by(AuditLog.created_at.desc()).limit(query.limit).offset(query.offset)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

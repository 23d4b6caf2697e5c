"""Append-only audit trail"""

import enum
import uuid
from collections import defaultdict
from datetime import datetime
from typing import Any, Callable, Optional

import structlog
from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from restaurant_core.audit.diff import compute_changes
from restaurant_core.crud.audit_log import AuditLogRepository
from restaurant_core.models.audit import AuditLog
from restaurant_core.schemas.audit import (
    AuditEntry,
    AuditLogResponse,
    AuditQuery,
    AuditReport,
    AuditSummary,
    DateRange,
    ReportGrouping,
)

logger = structlog.get_logger(__name__)

REPORT_LIMIT = 10000


class AuditAction(str, enum.Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    RESTORE = "RESTORE"

    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    PASSWORD_RESET_REQUEST = "PASSWORD_RESET_REQUEST"
    PASSWORD_RESET = "PASSWORD_RESET"
    PASSWORD_CHANGE = "PASSWORD_CHANGE"

    INVITE_SENT = "INVITE_SENT"
    INVITE_ACCEPTED = "INVITE_ACCEPTED"
    USER_REMOVED = "USER_REMOVED"
    ROLE_CHANGED = "ROLE_CHANGED"

    MENU_SECTION_ADDED = "MENU_SECTION_ADDED"
    MENU_SECTION_UPDATED = "MENU_SECTION_UPDATED"
    MENU_SECTION_REMOVED = "MENU_SECTION_REMOVED"
    MENU_ITEM_ADDED = "MENU_ITEM_ADDED"
    MENU_ITEM_UPDATED = "MENU_ITEM_UPDATED"
    MENU_ITEM_REMOVED = "MENU_ITEM_REMOVED"
    MENU_ITEM_STOCK_CHANGED = "MENU_ITEM_STOCK_CHANGED"

    HOURS_UPDATED = "HOURS_UPDATED"
    CONTACT_UPDATED = "CONTACT_UPDATED"

    IMAGE_UPLOADED = "IMAGE_UPLOADED"
    IMAGE_UPDATED = "IMAGE_UPDATED"
    IMAGE_DELETED = "IMAGE_DELETED"


# Still fail-open; a lost write for these is logged at critical level
CRITICAL_ACTIONS = frozenset({
    AuditAction.ROLE_CHANGED,
    AuditAction.USER_REMOVED,
    AuditAction.PASSWORD_RESET,
    AuditAction.PASSWORD_CHANGE,
    AuditAction.RESTORE,
})

FailureHook = Callable[[AuditEntry, Exception], Any]


def _action_name(action: Any) -> str:
    return action.value if isinstance(action, enum.Enum) else str(action)


class AuditTrail:
    """Records mutations in a session of its own, after the business commit.

    Writes never raise. A failed write is logged as ``audit_write_failed``,
    counted in ``failure_count`` and handed to ``on_failure`` if given.
    Reads propagate storage errors.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        on_failure: Optional[FailureHook] = None,
    ):
        self._session_factory = session_factory
        self._on_failure = on_failure
        self.failure_count = 0

    async def record(self, entry: AuditEntry) -> Optional[AuditLogResponse]:
        action = _action_name(entry.action)
        old_value = jsonable_encoder(entry.old_value) if entry.old_value is not None else None
        new_value = jsonable_encoder(entry.new_value) if entry.new_value is not None else None
        metadata = jsonable_encoder(entry.metadata) if entry.metadata is not None else None

        try:
            async with self._session_factory() as session:
                audit_log = await AuditLogRepository(session).create(
                    action=action,
                    entity_type=entry.entity_type,
                    entity_id=entry.entity_id,
                    tenant_id=entry.tenant_id,
                    actor_id=entry.actor_id,
                    old_value=old_value,
                    new_value=new_value,
                    changes=compute_changes(old_value, new_value),
                    metadata=metadata,
                    ip_address=entry.ip_address,
                    user_agent=entry.user_agent,
                )
                await session.commit()
                return AuditLogResponse.model_validate(audit_log)
        except Exception as exc:
            self._report_failure(entry, action, exc)
            return None

    def _report_failure(self, entry: AuditEntry, action: str, exc: Exception) -> None:
        self.failure_count += 1
        log = logger.critical if action in CRITICAL_ACTIONS else logger.error
        log(
            "audit_write_failed",
            action=action,
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            actor_id=str(entry.actor_id) if entry.actor_id else None,
            critical=action in CRITICAL_ACTIONS,
            error=str(exc),
        )
        if self._on_failure is None:
            return
        try:
            self._on_failure(entry, exc)
        except Exception:
            logger.exception("audit_failure_hook_failed", action=action)

    async def get_logs(self, query: Optional[AuditQuery] = None, **filters: Any) -> list[AuditLogResponse]:
        """Entries matching the filters, newest first"""
        if query is None:
            query = AuditQuery(**filters)
        async with self._session_factory() as session:
            rows = await AuditLogRepository(session).list_by_filters(query)
            return [AuditLogResponse.model_validate(row) for row in rows]

    async def get_entity_history(
        self,
        entity_type: str,
        entity_id: Any,
        limit: int = 50,
    ) -> list[AuditLogResponse]:
        return await self.get_logs(entity_type=entity_type, entity_id=str(entity_id), limit=limit)

    async def get_user_activity(self, actor_id: uuid.UUID, limit: int = 50) -> list[AuditLogResponse]:
        return await self.get_logs(actor_id=actor_id, limit=limit)

    async def get_entry(self, entry_id: uuid.UUID) -> Optional[AuditLogResponse]:
        async with self._session_factory() as session:
            row: Optional[AuditLog] = await AuditLogRepository(session).get_by_id(entry_id)
            return AuditLogResponse.model_validate(row) if row else None

    async def rollback(
        self,
        entry_id: uuid.UUID,
        actor_id: Optional[uuid.UUID] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> bool:
        """Record the intent to restore an entry's old value.

        The live entity is left alone; applying the value is up to the caller.
        Returns False when the entry or its old value is missing, or when the
        RESTORE entry could not be written.
        """
        original = await self.get_entry(entry_id)
        if original is None or original.old_value is None:
            return False

        restored = await self.record(
            AuditEntry(
                action=AuditAction.RESTORE.value,
                entity_type=original.entity_type,
                entity_id=original.entity_id,
                tenant_id=original.tenant_id,
                actor_id=actor_id,
                old_value=original.new_value,
                new_value=original.old_value,
                metadata={"rolled_back_from": str(entry_id)},
                ip_address=ip_address,
                user_agent=user_agent,
            )
        )
        return restored is not None

    async def generate_report(
        self,
        tenant_id: uuid.UUID,
        start_date: datetime,
        end_date: datetime,
        group_by: Optional[ReportGrouping] = None,
    ) -> AuditReport:
        entries = await self.get_logs(
            tenant_id=tenant_id,
            start_date=start_date,
            end_date=end_date,
            limit=REPORT_LIMIT,
        )
        summary = AuditSummary(
            total_actions=len(entries),
            unique_actors=len({entry.actor_id for entry in entries if entry.actor_id}),
            date_range=DateRange(start=start_date, end=end_date),
        )
        if group_by is None:
            return AuditReport(summary=summary, entries=entries)

        grouped: dict[str, list[AuditLogResponse]] = defaultdict(list)
        for entry in entries:
            if group_by == "actor":
                key = str(entry.actor_id) if entry.actor_id else "system"
            elif group_by == "action":
                key = entry.action
            else:
                key = entry.entity_type or "unknown"
            grouped[key].append(entry)
        return AuditReport(summary=summary, grouped=dict(grouped))

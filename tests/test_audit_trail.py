"""Tests for the append-only audit trail"""

from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from restaurant_core.audit.diff import compute_changes
from restaurant_core.audit.trail import AuditAction, AuditTrail
from restaurant_core.database import utcnow
from restaurant_core.schemas.audit import AuditEntry, AuditQuery


def test_compute_changes_keeps_only_differing_keys():
    changes = compute_changes({"a": 1, "b": 2}, {"a": 1, "b": 3})
    assert changes == {"b": {"from": 2, "to": 3}}


def test_compute_changes_covers_added_and_removed_keys():
    changes = compute_changes({"a": 1, "gone": "x"}, {"a": 1, "new": [1, 2]})
    assert changes == {
        "gone": {"from": "x", "to": None},
        "new": {"from": None, "to": [1, 2]},
    }


def test_compute_changes_needs_both_sides():
    assert compute_changes(None, {"a": 1}) is None
    assert compute_changes({"a": 1}, None) is None


def test_compute_changes_list_order_counts():
    """Serialised comparison treats reordered lists as a change"""
    changes = compute_changes({"tags": ["a", "b"]}, {"tags": ["b", "a"]})
    assert "tags" in changes


@pytest.mark.asyncio
async def test_record_stores_diff(audit_trail):
    tenant_id = uuid4()
    await audit_trail.record(AuditEntry(
        action="UPDATE",
        entity_type="menu_item",
        entity_id="item-1",
        tenant_id=tenant_id,
        old_value={"a": 1, "b": 2},
        new_value={"a": 1, "b": 3},
    ))

    logs = await audit_trail.get_logs(tenant_id=tenant_id)

    assert len(logs) == 1
    assert logs[0].changes == {"b": {"from": 2, "to": 3}}
    assert "a" not in logs[0].changes


@pytest.mark.asyncio
async def test_record_without_both_values_has_no_diff(audit_trail):
    entry = await audit_trail.record(AuditEntry(
        action="CREATE",
        entity_type="menu_item",
        entity_id="item-1",
        new_value={"name": "Soup"},
    ))
    assert entry.changes is None
    assert entry.new_value == {"name": "Soup"}


@pytest.mark.asyncio
async def test_record_serialises_uuids_and_datetimes(audit_trail):
    item_id = uuid4()
    entry = await audit_trail.record(AuditEntry(
        action=AuditAction.CREATE.value,
        entity_type="menu_item",
        entity_id=str(item_id),
        new_value={"id": item_id, "created_at": utcnow()},
    ))
    assert entry.new_value["id"] == str(item_id)
    assert isinstance(entry.new_value["created_at"], str)


@pytest.mark.asyncio
async def test_record_failure_is_swallowed_and_reported(tmp_path):
    """A broken audit store never raises into the caller"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'audit.db'}")
    failures = []
    trail = AuditTrail(
        async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False),
        on_failure=lambda entry, exc: failures.append((entry.action, exc)),
    )

    result = await trail.record(AuditEntry(action="ROLE_CHANGED", entity_type="actor", entity_id="x"))

    assert result is None
    assert trail.failure_count == 1
    assert failures[0][0] == "ROLE_CHANGED"
    await engine.dispose()


@pytest.mark.asyncio
async def test_failing_hook_does_not_raise(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'audit.db'}")

    def hook(entry, exc):
        raise RuntimeError("pager is down")

    trail = AuditTrail(async_sessionmaker(engine, class_=AsyncSession), on_failure=hook)

    assert await trail.record(AuditEntry(action="UPDATE")) is None
    assert trail.failure_count == 1
    await engine.dispose()


@pytest.mark.asyncio
async def test_get_logs_filters_and_orders_newest_first(audit_trail):
    tenant_id = uuid4()
    actor_id = uuid4()
    for action in ("CREATE", "UPDATE", "DELETE"):
        await audit_trail.record(AuditEntry(
            action=action,
            entity_type="image",
            entity_id="img-1",
            tenant_id=tenant_id,
            actor_id=actor_id,
        ))
    await audit_trail.record(AuditEntry(action="CREATE", entity_type="image", entity_id="img-2", tenant_id=uuid4()))

    logs = await audit_trail.get_logs(AuditQuery(tenant_id=tenant_id))
    assert [log.action for log in logs] == ["DELETE", "UPDATE", "CREATE"]

    updates = await audit_trail.get_logs(tenant_id=tenant_id, action="UPDATE")
    assert len(updates) == 1

    page = await audit_trail.get_logs(tenant_id=tenant_id, limit=2, offset=1)
    assert [log.action for log in page] == ["UPDATE", "CREATE"]

    activity = await audit_trail.get_user_activity(actor_id, limit=2)
    assert len(activity) == 2


@pytest.mark.asyncio
async def test_get_logs_date_range_is_inclusive(audit_trail):
    entry = await audit_trail.record(AuditEntry(action="UPDATE", entity_type="contact", entity_id="c-1"))

    exact = await audit_trail.get_logs(start_date=entry.created_at, end_date=entry.created_at)
    later = await audit_trail.get_logs(start_date=entry.created_at + timedelta(seconds=1))

    assert [log.id for log in exact] == [entry.id]
    assert later == []


def test_audit_query_defaults():
    query = AuditQuery()
    assert query.limit == 50
    assert query.offset == 0


@pytest.mark.asyncio
async def test_entity_history(audit_trail):
    for name in ("Soup", "Stew"):
        await audit_trail.record(AuditEntry(
            action="MENU_ITEM_UPDATED",
            entity_type="menu_item",
            entity_id="item-9",
            new_value={"name": name},
        ))
    await audit_trail.record(AuditEntry(action="MENU_ITEM_UPDATED", entity_type="menu_item", entity_id="item-10"))

    history = await audit_trail.get_entity_history("menu_item", "item-9")

    assert len(history) == 2
    assert history[0].new_value == {"name": "Stew"}


@pytest.mark.asyncio
async def test_rollback_appends_restore_entry(audit_trail):
    actor_id = uuid4()
    original = await audit_trail.record(AuditEntry(
        action="MENU_ITEM_UPDATED",
        entity_type="menu_item",
        entity_id="item-1",
        old_value={"price_cents": 1200},
        new_value={"price_cents": 1500},
    ))

    assert await audit_trail.rollback(original.id, actor_id=actor_id) is True

    history = await audit_trail.get_entity_history("menu_item", "item-1")
    restore = history[0]
    assert restore.action == "RESTORE"
    assert restore.new_value == {"price_cents": 1200}
    assert restore.old_value == {"price_cents": 1500}
    assert restore.metadata == {"rolled_back_from": str(original.id)}
    assert restore.actor_id == actor_id


@pytest.mark.asyncio
async def test_rollback_without_old_value_or_entry(audit_trail):
    created = await audit_trail.record(AuditEntry(
        action="CREATE",
        entity_type="menu_item",
        entity_id="item-1",
        new_value={"name": "Soup"},
    ))

    assert await audit_trail.rollback(created.id) is False
    assert await audit_trail.rollback(uuid4()) is False


@pytest.mark.asyncio
async def test_generate_report(audit_trail):
    tenant_id = uuid4()
    alice, bob = uuid4(), uuid4()
    start = utcnow() - timedelta(minutes=1)
    for actor_id, action, entity_type in [
        (alice, "MENU_ITEM_ADDED", "menu_item"),
        (alice, "IMAGE_UPLOADED", "image"),
        (bob, "MENU_ITEM_ADDED", "menu_item"),
        (None, "HOURS_UPDATED", "operating_hours"),
    ]:
        await audit_trail.record(AuditEntry(
            action=action, entity_type=entity_type, entity_id="x", tenant_id=tenant_id, actor_id=actor_id,
        ))
    end = utcnow() + timedelta(minutes=1)

    flat = await audit_trail.generate_report(tenant_id, start, end)
    assert flat.summary.total_actions == 4
    assert flat.summary.unique_actors == 2
    assert len(flat.entries) == 4
    assert flat.grouped is None

    by_action = await audit_trail.generate_report(tenant_id, start, end, group_by="action")
    assert len(by_action.grouped["MENU_ITEM_ADDED"]) == 2
    assert by_action.entries is None

    by_actor = await audit_trail.generate_report(tenant_id, start, end, group_by="actor")
    assert len(by_actor.grouped[str(alice)]) == 2
    assert len(by_actor.grouped["system"]) == 1

    by_type = await audit_trail.generate_report(tenant_id, start, end, group_by="entity_type")
    assert set(by_type.grouped) == {"menu_item", "image", "operating_hours"}

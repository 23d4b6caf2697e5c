"""Tests for audited content mutations"""

from uuid import uuid4

import pytest
from sqlalchemy import select

from restaurant_core.errors import NotFoundError, PermissionDeniedError, ValidationError
from restaurant_core.models.menu import MenuItem
from restaurant_core.models.tenant import Contact, OperatingHours
from restaurant_core.schemas.content import (
    ContactUpdate,
    ImageCreate,
    ImageUpdate,
    MenuItemBulkUpdate,
    MenuItemCreate,
    MenuItemUpdate,
    MenuSectionCreate,
    MenuSectionUpdate,
    OperatingHoursUpdate,
    ReorderItem,
)
from restaurant_core.services.data_manager import DataManager, MutationContext, create_data_manager


@pytest.fixture
async def section(data_manager):
    return await data_manager.create_menu_section(MenuSectionCreate(name="Pizza"))


@pytest.fixture
async def items(data_manager, section):
    created = []
    for name, price in [("Margherita", 1499), ("Pepperoni", 1699), ("Funghi", 1599)]:
        created.append(await data_manager.create_menu_item(
            MenuItemCreate(section_id=section.id, name=name, price_cents=price)
        ))
    return created


@pytest.mark.asyncio
async def test_create_records_new_value(data_manager, audit_trail, section, editor_actor, test_tenant):
    logs = await audit_trail.get_entity_history("menu_section", section.id)

    assert len(logs) == 1
    assert logs[0].action == "MENU_SECTION_ADDED"
    assert logs[0].old_value is None
    assert logs[0].new_value["name"] == "Pizza"
    assert logs[0].actor_id == editor_actor.id
    assert logs[0].tenant_id == test_tenant.id
    assert logs[0].ip_address == "127.0.0.1"
    assert logs[0].user_agent == "pytest"


@pytest.mark.asyncio
async def test_sort_order_leaves_gaps(data_manager, section, items):
    """Siblings get max + 10, the first one 10"""
    assert section.sort_order == 10
    assert [item.sort_order for item in items] == [10, 20, 30]

    second = await data_manager.create_menu_section(MenuSectionCreate(name="Pasta"))
    assert second.sort_order == 20


@pytest.mark.asyncio
async def test_item_sort_order_is_per_section(data_manager, items):
    other = await data_manager.create_menu_section(MenuSectionCreate(name="Desserts"))
    item = await data_manager.create_menu_item(MenuItemCreate(section_id=other.id, name="Tiramisu"))
    assert item.sort_order == 10


@pytest.mark.asyncio
async def test_update_records_old_new_and_diff(data_manager, audit_trail, items):
    item = items[0]
    updated = await data_manager.update_menu_item(item.id, MenuItemUpdate(price_cents=1599))

    assert updated.price_cents == 1599
    logs = await audit_trail.get_entity_history("menu_item", item.id)
    assert logs[0].action == "MENU_ITEM_UPDATED"
    assert logs[0].old_value["price_cents"] == 1499
    assert logs[0].new_value["price_cents"] == 1599
    assert logs[0].changes == {"price_cents": {"from": 1499, "to": 1599}}


@pytest.mark.asyncio
async def test_update_section(data_manager, audit_trail, section):
    await data_manager.update_menu_section(section.id, MenuSectionUpdate(description="Wood fired"))

    logs = await audit_trail.get_entity_history("menu_section", section.id)
    assert logs[0].action == "MENU_SECTION_UPDATED"
    assert logs[0].changes == {"description": {"from": None, "to": "Wood fired"}}


@pytest.mark.asyncio
async def test_delete_records_old_value_only(data_manager, audit_trail, db_session, items):
    item = items[1]
    result = await data_manager.delete_menu_item(item.id)

    assert result == {"success": True}
    assert await db_session.get(MenuItem, item.id) is None
    logs = await audit_trail.get_entity_history("menu_item", item.id)
    assert logs[0].action == "MENU_ITEM_REMOVED"
    assert logs[0].old_value["name"] == "Pepperoni"
    assert logs[0].new_value is None


@pytest.mark.asyncio
async def test_unknown_or_foreign_ids_are_not_found(data_manager, db_session, other_tenant, section):
    foreign = DataManager(
        db_session,
        data_manager.audit,
        MutationContext(actor_id=uuid4(), tenant_id=other_tenant.id),
    )

    with pytest.raises(NotFoundError):
        await data_manager.update_menu_item(uuid4(), MenuItemUpdate(name="Ghost"))
    with pytest.raises(NotFoundError):
        await data_manager.delete_image("not-a-uuid")
    with pytest.raises(NotFoundError):
        await foreign.update_menu_section(section.id, MenuSectionUpdate(name="Stolen"))
    with pytest.raises(NotFoundError):
        await foreign.create_menu_item(MenuItemCreate(section_id=section.id, name="Stolen"))


@pytest.mark.asyncio
async def test_permission_denied_is_distinct_from_not_found(
    db_session, audit_trail, access_policy, viewer_actor, test_tenant, section
):
    viewer = create_data_manager(db_session, audit_trail, viewer_actor, test_tenant.id, policy=access_policy)

    with pytest.raises(PermissionDeniedError) as exc_info:
        await viewer.update_menu_section(section.id, MenuSectionUpdate(name="Renamed"))

    assert exc_info.value.status_code == 403
    assert not isinstance(exc_info.value, NotFoundError)


@pytest.mark.asyncio
async def test_bulk_update_audits_each_item(data_manager, audit_trail, db_session, items):
    """One entry per affected item, each tagged as part of the batch"""
    ids = [items[0].id, items[1].id]
    result = await data_manager.bulk_update_menu_items(ids, MenuItemBulkUpdate(is_available=False))

    assert result == {"updated": 2}
    logs = await audit_trail.get_logs(action="MENU_ITEM_STOCK_CHANGED")
    assert len(logs) == 2
    assert {log.entity_id for log in logs} == {str(item_id) for item_id in ids}
    for log in logs:
        assert log.metadata == {"bulk_operation": True, "total_items": 2}
        assert log.changes == {"is_available": {"from": True, "to": False}}

    rows = (await db_session.execute(select(MenuItem).where(MenuItem.is_available.is_(False)))).scalars().all()
    assert len(rows) == 2


@pytest.mark.asyncio
async def test_bulk_price_update_uses_update_action(data_manager, audit_trail, items):
    result = await data_manager.bulk_update_menu_items([item.id for item in items], MenuItemBulkUpdate(price_cents=999))

    assert result == {"updated": 3}
    assert len(await audit_trail.get_logs(action="MENU_ITEM_UPDATED")) == 3


@pytest.mark.asyncio
async def test_bulk_update_requires_fields(data_manager, items):
    with pytest.raises(ValidationError):
        await data_manager.bulk_update_menu_items([items[0].id], MenuItemBulkUpdate())


@pytest.mark.asyncio
async def test_reorder_is_one_audit_event(data_manager, audit_trail, items):
    order = [ReorderItem(id=item.id, sort_order=position) for position, item in zip((30, 10, 20), items)]

    result = await data_manager.reorder("menu_item", order)

    assert result == {"success": True}
    assert [item.sort_order for item in items] == [30, 10, 20]
    logs = await audit_trail.get_entity_history("menu_item", "multiple")
    assert len(logs) == 1
    assert logs[0].action == "UPDATE"
    assert logs[0].metadata["entity_ids"] == [str(item.id) for item in items]


@pytest.mark.asyncio
async def test_reorder_with_unknown_id_changes_nothing(data_manager, audit_trail, db_session, items):
    item_id = items[0].id
    order = [ReorderItem(id=item_id, sort_order=99), ReorderItem(id=uuid4(), sort_order=1)]

    with pytest.raises(NotFoundError):
        await data_manager.reorder("menu_item", order)

    refreshed = await db_session.get(MenuItem, item_id)
    assert refreshed.sort_order == 10
    assert await audit_trail.get_entity_history("menu_item", "multiple") == []


@pytest.mark.asyncio
async def test_reorder_rejects_unsortable_types(data_manager):
    with pytest.raises(ValidationError):
        await data_manager.reorder("contact", [])


@pytest.mark.asyncio
async def test_images(data_manager, audit_trail):
    first = await data_manager.create_image(ImageCreate(url="/img/a.jpg", category="gallery"))
    pinned = await data_manager.create_image(ImageCreate(url="/img/b.jpg", sort_order=5))
    third = await data_manager.create_image(ImageCreate(url="/img/c.jpg"))

    assert (first.sort_order, pinned.sort_order, third.sort_order) == (10, 5, 20)

    await data_manager.update_image(first.id, ImageUpdate(alt="Patio"))
    await data_manager.delete_image(third.id)

    actions = [log.action for log in await audit_trail.get_logs(entity_type="image")]
    assert actions.count("IMAGE_UPLOADED") == 3
    assert "IMAGE_UPDATED" in actions
    assert "IMAGE_DELETED" in actions


@pytest.mark.asyncio
async def test_contact_and_hours_updates(data_manager, audit_trail, db_session, test_tenant):
    contact = Contact(tenant_id=test_tenant.id, type="phone", value="+15550000000")
    hours = OperatingHours(tenant_id=test_tenant.id, day_of_week=0, open_time="11:00", close_time="22:00")
    db_session.add_all([contact, hours])
    await db_session.commit()

    await data_manager.update_contact(contact.id, ContactUpdate(value="+15551111111"))
    await data_manager.update_operating_hours(hours.id, OperatingHoursUpdate(close_time="23:00"))

    contact_log = (await audit_trail.get_entity_history("contact", contact.id))[0]
    hours_log = (await audit_trail.get_entity_history("operating_hours", hours.id))[0]
    assert contact_log.action == "CONTACT_UPDATED"
    assert contact_log.changes == {"value": {"from": "+15550000000", "to": "+15551111111"}}
    assert hours_log.action == "HOURS_UPDATED"
    assert hours_log.changes == {"close_time": {"from": "22:00", "to": "23:00"}}


@pytest.mark.asyncio
async def test_get_with_history_counts_versions(data_manager, items):
    item = items[0]
    await data_manager.update_menu_item(item.id, MenuItemUpdate(name="Margherita DOP"))
    await data_manager.update_menu_item(item.id, MenuItemUpdate(is_available=False))

    result = await data_manager.get_with_history("menu_item", item.id)

    assert result["current"]["name"] == "Margherita DOP"
    assert len(result["history"]) == 3
    assert result["versions"] == 4


@pytest.mark.asyncio
async def test_delete_section_cascades_items(data_manager, audit_trail, db_session, section, items):
    """Items removed with their section each keep a removal entry"""
    section_id = section.id
    item_ids = [item.id for item in items]

    await data_manager.delete_menu_section(section_id)

    remaining = (await db_session.execute(select(MenuItem))).scalars().all()
    assert remaining == []

    for item_id in item_ids:
        history = await audit_trail.get_entity_history("menu_item", item_id)
        assert [log.action for log in history] == ["MENU_ITEM_REMOVED", "MENU_ITEM_ADDED"]
        assert history[0].old_value["id"] == str(item_id)
        assert history[0].new_value is None
        assert history[0].metadata == {"cascade_from": str(section_id)}

    section_log = (await audit_trail.get_entity_history("menu_section", section_id))[0]
    assert section_log.action == "MENU_SECTION_REMOVED"
    assert section_log.metadata == {"items_removed": 3}


@pytest.mark.asyncio
async def test_audit_metadata_describes_the_change(data_manager, audit_trail, db_session, test_tenant, section):
    item = await data_manager.create_menu_item(MenuItemCreate(section_id=section.id, name="Calzone"))
    image = await data_manager.create_image(ImageCreate(url="/uploads/2024/patio.jpg", category="gallery"))
    image_id = image.id
    await data_manager.delete_image(image_id)

    hours = OperatingHours(tenant_id=test_tenant.id, day_of_week=4, open_time="11:00", close_time="22:00")
    db_session.add(hours)
    await db_session.commit()
    await data_manager.update_operating_hours(hours.id, OperatingHoursUpdate(is_closed=True))

    item_log = (await audit_trail.get_entity_history("menu_item", item.id))[0]
    image_logs = await audit_trail.get_entity_history("image", image_id)
    hours_log = (await audit_trail.get_entity_history("operating_hours", hours.id))[0]

    assert item_log.metadata == {"section_id": str(section.id)}
    assert [log.action for log in image_logs] == ["IMAGE_DELETED", "IMAGE_UPLOADED"]
    for log in image_logs:
        assert log.metadata == {"file_name": "patio.jpg", "category": "gallery"}
    assert hours_log.metadata == {"day_of_week": 4}

"""
Audited content mutations.

Every create, update and delete of restaurant content goes through a
``DataManager`` bound to the acting actor and tenant. The entity write is
committed first; the audit entry is written afterwards by ``AuditTrail`` in a
session of its own.
"""

import uuid
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence

import structlog
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_core.audit.diff import snapshot
from restaurant_core.audit.trail import AuditAction, AuditTrail
from restaurant_core.auth.rbac import AccessPolicy, Permission
from restaurant_core.errors import NotFoundError, PermissionDeniedError, ValidationError
from restaurant_core.models.menu import MenuItem, MenuSection
from restaurant_core.models.tenant import Contact, Image, OperatingHours
from restaurant_core.schemas.audit import AuditEntry
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

logger = structlog.get_logger(__name__)

SORT_ORDER_STEP = 10

ENTITY_MODELS: dict[str, Any] = {
    "menu_section": MenuSection,
    "menu_item": MenuItem,
    "image": Image,
    "contact": Contact,
    "operating_hours": OperatingHours,
}

REORDER_PERMISSIONS: dict[str, Permission] = {
    "menu_section": Permission.MENU_UPDATE,
    "menu_item": Permission.MENU_UPDATE,
    "image": Permission.IMAGE_UPLOAD,
}

# Timestamps bumped on every write would show up in every diff
SNAPSHOT_EXCLUDE = ("updated_at",)


@dataclass(frozen=True)
class MutationContext:
    """Who is mutating which tenant, attached to every audit entry"""
    actor_id: uuid.UUID
    tenant_id: uuid.UUID
    role: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


def _as_uuid(value: Any) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _image_metadata(image: Image) -> dict[str, Any]:
    return {"file_name": image.url.rsplit("/", 1)[-1], "category": image.category}


class DataManager:
    def __init__(
        self,
        db: AsyncSession,
        audit: AuditTrail,
        context: MutationContext,
        policy: Optional[AccessPolicy] = None,
    ):
        self.db = db
        self.audit = audit
        self.context = context
        # Without a policy the caller has already authorised the request
        self.policy = policy

    # Helpers

    def _require(self, permission: Permission) -> None:
        if self.policy is None:
            return
        if not self.policy.check_permission(self.context, permission):
            logger.info(
                "mutation_forbidden",
                actor_id=str(self.context.actor_id),
                permission=permission.value,
            )
            raise PermissionDeniedError()

    async def _get(self, entity_type: str, entity_id: Any) -> Any:
        model = ENTITY_MODELS[entity_type]
        key = _as_uuid(entity_id)
        entity = None
        if key is not None:
            result = await self.db.execute(
                select(model).where(model.id == key, model.tenant_id == self.context.tenant_id)
            )
            entity = result.scalar_one_or_none()
        if entity is None:
            raise NotFoundError(f"{entity_type} {entity_id} not found")
        return entity

    async def _next_sort_order(self, model: Any, *conditions: Any) -> int:
        result = await self.db.execute(
            select(func.max(model.sort_order)).where(model.tenant_id == self.context.tenant_id, *conditions)
        )
        current = result.scalar_one_or_none()
        return (current or 0) + SORT_ORDER_STEP

    async def _record(
        self,
        action: AuditAction,
        entity_type: str,
        entity_id: Any,
        old_value: Optional[dict[str, Any]] = None,
        new_value: Optional[dict[str, Any]] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        await self.audit.record(
            AuditEntry(
                action=action.value,
                entity_type=entity_type,
                entity_id=str(entity_id),
                tenant_id=self.context.tenant_id,
                actor_id=self.context.actor_id,
                old_value=old_value,
                new_value=new_value,
                metadata=metadata,
                ip_address=self.context.ip_address,
                user_agent=self.context.user_agent,
            )
        )

    async def _create(
        self,
        entity_type: str,
        entity: Any,
        action: AuditAction,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Any:
        self.db.add(entity)
        await self.db.commit()
        await self._record(
            action, entity_type, entity.id, new_value=snapshot(entity, SNAPSHOT_EXCLUDE), metadata=metadata
        )
        return entity

    async def _update(
        self,
        entity_type: str,
        entity_id: Any,
        patch: BaseModel,
        action: AuditAction,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Any:
        entity = await self._get(entity_type, entity_id)
        old_value = snapshot(entity, SNAPSHOT_EXCLUDE)

        for field, value in patch.model_dump(exclude_unset=True).items():
            setattr(entity, field, value)
        await self.db.commit()

        await self._record(
            action,
            entity_type,
            entity.id,
            old_value=old_value,
            new_value=snapshot(entity, SNAPSHOT_EXCLUDE),
            metadata=metadata,
        )
        return entity

    async def _delete(
        self,
        entity_type: str,
        entity_id: Any,
        action: AuditAction,
        metadata: Optional[dict[str, Any]] = None,
    ) -> dict[str, bool]:
        entity = await self._get(entity_type, entity_id)
        old_value = snapshot(entity, SNAPSHOT_EXCLUDE)

        await self.db.delete(entity)
        await self.db.commit()

        await self._record(action, entity_type, old_value["id"], old_value=old_value, metadata=metadata)
        return {"success": True}

    # Menu sections

    async def create_menu_section(self, data: MenuSectionCreate) -> MenuSection:
        self._require(Permission.MENU_CREATE)
        section = MenuSection(
            tenant_id=self.context.tenant_id,
            sort_order=await self._next_sort_order(MenuSection),
            **data.model_dump(),
        )
        return await self._create("menu_section", section, AuditAction.MENU_SECTION_ADDED)

    async def update_menu_section(self, section_id: Any, data: MenuSectionUpdate) -> MenuSection:
        self._require(Permission.MENU_UPDATE)
        return await self._update("menu_section", section_id, data, AuditAction.MENU_SECTION_UPDATED)

    async def delete_menu_section(self, section_id: Any) -> dict[str, bool]:
        """
        Delete a section together with its items.

        The items go with the section through the relationship cascade, so
        each one gets its own MENU_ITEM_REMOVED entry pointing back at the
        section.
        """
        self._require(Permission.MENU_DELETE)
        section = await self._get("menu_section", section_id)
        old_value = snapshot(section, SNAPSHOT_EXCLUDE)

        result = await self.db.execute(
            select(MenuItem).where(
                MenuItem.section_id == section.id,
                MenuItem.tenant_id == self.context.tenant_id,
            )
        )
        removed_items = [snapshot(item, SNAPSHOT_EXCLUDE) for item in result.scalars().all()]

        await self.db.delete(section)
        await self.db.commit()

        for item_value in removed_items:
            await self._record(
                AuditAction.MENU_ITEM_REMOVED,
                "menu_item",
                item_value["id"],
                old_value=item_value,
                metadata={"cascade_from": old_value["id"]},
            )
        await self._record(
            AuditAction.MENU_SECTION_REMOVED,
            "menu_section",
            old_value["id"],
            old_value=old_value,
            metadata={"items_removed": len(removed_items)},
        )
        return {"success": True}

    # Menu items

    async def create_menu_item(self, data: MenuItemCreate) -> MenuItem:
        self._require(Permission.MENU_CREATE)
        section = await self._get("menu_section", data.section_id)
        item = MenuItem(
            tenant_id=self.context.tenant_id,
            sort_order=await self._next_sort_order(MenuItem, MenuItem.section_id == section.id),
            **data.model_dump(),
        )
        return await self._create(
            "menu_item", item, AuditAction.MENU_ITEM_ADDED, metadata={"section_id": str(section.id)}
        )

    async def update_menu_item(self, item_id: Any, data: MenuItemUpdate) -> MenuItem:
        self._require(Permission.MENU_UPDATE)
        return await self._update("menu_item", item_id, data, AuditAction.MENU_ITEM_UPDATED)

    async def delete_menu_item(self, item_id: Any) -> dict[str, bool]:
        self._require(Permission.MENU_DELETE)
        return await self._delete("menu_item", item_id, AuditAction.MENU_ITEM_REMOVED)

    async def bulk_update_menu_items(self, item_ids: Sequence[Any], patch: MenuItemBulkUpdate) -> dict[str, int]:
        """
        Apply one patch to many items in a single transaction.

        One audit entry is written per updated item so each item's history
        stays complete.
        """
        self._require(Permission.MENU_UPDATE)
        values = patch.model_dump(exclude_unset=True)
        if not values:
            raise ValidationError("No fields to update")

        keys = [key for key in (_as_uuid(item_id) for item_id in item_ids) if key is not None]
        try:
            result = await self.db.execute(
                select(MenuItem).where(
                    MenuItem.id.in_(keys),
                    MenuItem.tenant_id == self.context.tenant_id,
                )
            )
            items = list(result.scalars().all())
            before = {item.id: snapshot(item, SNAPSHOT_EXCLUDE) for item in items}
            for item in items:
                for field, value in values.items():
                    setattr(item, field, value)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        action = (
            AuditAction.MENU_ITEM_STOCK_CHANGED if "is_available" in values else AuditAction.MENU_ITEM_UPDATED
        )
        for item in items:
            await self._record(
                action,
                "menu_item",
                item.id,
                old_value=before[item.id],
                new_value=snapshot(item, SNAPSHOT_EXCLUDE),
                metadata={"bulk_operation": True, "total_items": len(item_ids)},
            )

        logger.info("menu_items_bulk_updated", updated=len(items), requested=len(item_ids))
        return {"updated": len(items)}

    # Images

    async def create_image(self, data: ImageCreate) -> Image:
        self._require(Permission.IMAGE_UPLOAD)
        values = data.model_dump()
        if values.get("sort_order") is None:
            values["sort_order"] = await self._next_sort_order(Image)
        image = Image(tenant_id=self.context.tenant_id, **values)
        return await self._create("image", image, AuditAction.IMAGE_UPLOADED, metadata=_image_metadata(image))

    async def update_image(self, image_id: Any, data: ImageUpdate) -> Image:
        self._require(Permission.IMAGE_UPLOAD)
        return await self._update("image", image_id, data, AuditAction.IMAGE_UPDATED)

    async def delete_image(self, image_id: Any) -> dict[str, bool]:
        self._require(Permission.IMAGE_DELETE)
        image = await self._get("image", image_id)
        return await self._delete("image", image.id, AuditAction.IMAGE_DELETED, metadata=_image_metadata(image))

    # Contacts and hours

    async def update_contact(self, contact_id: Any, data: ContactUpdate) -> Contact:
        self._require(Permission.CONTACT_UPDATE)
        return await self._update("contact", contact_id, data, AuditAction.CONTACT_UPDATED)

    async def update_operating_hours(self, hours_id: Any, data: OperatingHoursUpdate) -> OperatingHours:
        self._require(Permission.HOURS_UPDATE)
        hours = await self._get("operating_hours", hours_id)
        return await self._update(
            "operating_hours",
            hours.id,
            data,
            AuditAction.HOURS_UPDATED,
            metadata={"day_of_week": hours.day_of_week},
        )

    # Ordering and history

    async def reorder(self, entity_type: str, items: Iterable[ReorderItem]) -> dict[str, bool]:
        """Rewrite sort orders all-or-nothing and audit the batch as one UPDATE"""
        if entity_type not in REORDER_PERMISSIONS:
            raise ValidationError(f"{entity_type} cannot be reordered")
        self._require(REORDER_PERMISSIONS[entity_type])

        model = ENTITY_MODELS[entity_type]
        orders = {item.id: item.sort_order for item in items}
        if not orders:
            return {"success": True}

        try:
            result = await self.db.execute(
                select(model).where(
                    model.id.in_(list(orders)),
                    model.tenant_id == self.context.tenant_id,
                )
            )
            entities = {entity.id: entity for entity in result.scalars().all()}
            missing = [str(entity_id) for entity_id in orders if entity_id not in entities]
            if missing:
                raise NotFoundError(f"{entity_type} not found", details={"ids": missing})

            for entity_id, sort_order in orders.items():
                entities[entity_id].sort_order = sort_order
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        await self._record(
            AuditAction.UPDATE,
            entity_type,
            "multiple",
            new_value={str(entity_id): sort_order for entity_id, sort_order in orders.items()},
            metadata={"operation": "reorder", "entity_ids": [str(entity_id) for entity_id in orders]},
        )
        return {"success": True}

    async def get_with_history(self, entity_type: str, entity_id: Any) -> dict[str, Any]:
        if entity_type not in ENTITY_MODELS:
            raise ValidationError(f"Unknown entity type {entity_type}")
        entity = await self._get(entity_type, entity_id)
        history = await self.audit.get_entity_history(entity_type, entity.id)
        return {
            "current": snapshot(entity),
            "history": history,
            "versions": len(history) + 1,
        }


def create_data_manager(
    db: AsyncSession,
    audit: AuditTrail,
    actor: Any,
    tenant_id: uuid.UUID,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    policy: Optional[AccessPolicy] = None,
) -> DataManager:
    """DataManager bound to an authenticated actor"""
    context = MutationContext(
        actor_id=actor.id,
        tenant_id=tenant_id,
        role=str(actor.role),
        ip_address=ip_address,
        user_agent=user_agent,
    )
    return DataManager(db, audit, context, policy=policy)

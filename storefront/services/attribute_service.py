import logging
import re
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import settings
from storefront.core.exceptions import ConflictError, NotFoundError
from storefront.models.orm.attribute import Attribute, AttributeValue
from storefront.repositories import attribute_repo, variant_repo

logger = logging.getLogger(__name__)


def normalize_name(name: str) -> str:
    """'Shoe Size ' -> 'shoe_size'"""
    return re.sub(r"\s+", "_", name.strip().lower())


async def list_attributes(
    db: AsyncSession, *, include_values: bool = True, active_only: bool = False
) -> list[Attribute]:
    return await attribute_repo.list_attributes(
        db, include_values=include_values, active_only=active_only
    )


async def get_attribute(db: AsyncSession, attribute_id: UUID) -> Attribute:
    attribute = await attribute_repo.get_attribute(db, attribute_id, with_values=True)
    if not attribute:
        raise NotFoundError("Attribute not found")
    return attribute


async def create_attribute(
    db: AsyncSession, *, name: str, display_name: str, display_order: int = 0
) -> Attribute:
    normalized = normalize_name(name)
    if await attribute_repo.get_by_name(db, normalized):
        raise ConflictError(f"An attribute named '{normalized}' already exists")

    attribute = Attribute(
        name=normalized,
        display_name=display_name,
        display_order=display_order,
        is_active=True,
    )
    db.add(attribute)
    await db.flush()
    await db.refresh(attribute)
    return attribute


async def update_attribute(
    db: AsyncSession,
    attribute_id: UUID,
    *,
    name: str | None = None,
    display_name: str | None = None,
    display_order: int | None = None,
    is_active: bool | None = None,
) -> tuple[Attribute, dict]:
    attribute = await attribute_repo.get_attribute(db, attribute_id)
    if not attribute:
        raise NotFoundError("Attribute not found")

    changes: dict = {}
    if name is not None:
        normalized = normalize_name(name)
        if normalized != attribute.name:
            if await attribute_repo.get_by_name(db, normalized, exclude_id=attribute_id):
                raise ConflictError(f"Another attribute named '{normalized}' already exists")
            changes["name"] = {"old": attribute.name, "new": normalized}
            attribute.name = normalized

    for field_name, new_value in (
        ("display_name", display_name),
        ("display_order", display_order),
        ("is_active", is_active),
    ):
        old_value = getattr(attribute, field_name)
        if new_value is not None and new_value != old_value:
            changes[field_name] = {"old": old_value, "new": new_value}
            setattr(attribute, field_name, new_value)

    await db.flush()
    await db.refresh(attribute)
    return attribute, changes


async def delete_attribute(db: AsyncSession, attribute_id: UUID) -> str:
    attribute = await attribute_repo.get_attribute(db, attribute_id)
    if not attribute:
        raise NotFoundError("Attribute not found")

    usage = await attribute_repo.count_attribute_usage(db, attribute_id)
    if usage > 0:
        raise ConflictError(
            "Cannot delete an attribute whose values are assigned to product variants. "
            "Deactivate it instead."
        )

    name = attribute.name
    await db.delete(attribute)
    await db.flush()
    return name


# ── Values ──────────────────────────────────────────────────────────────────


async def list_values(
    db: AsyncSession, attribute_id: UUID, *, active_only: bool = False
) -> list[AttributeValue]:
    if not await attribute_repo.get_attribute(db, attribute_id):
        raise NotFoundError("Attribute not found")
    return await attribute_repo.list_values(db, attribute_id, active_only=active_only)


async def get_value(db: AsyncSession, attribute_id: UUID, value_id: UUID) -> AttributeValue:
    value = await attribute_repo.get_value(db, attribute_id, value_id)
    if not value:
        raise NotFoundError("Attribute value not found")
    return value


async def create_value(
    db: AsyncSession, attribute_id: UUID, *, value: str, display_order: int = 0
) -> AttributeValue:
    if not await attribute_repo.get_attribute(db, attribute_id):
        raise NotFoundError("Attribute not found")

    text = value.strip()
    if await attribute_repo.value_text_exists(db, attribute_id, text):
        raise ConflictError(f"The value '{text}' already exists for this attribute")

    attribute_value = AttributeValue(
        attribute_id=attribute_id,
        value=text,
        display_order=display_order,
        is_active=True,
    )
    db.add(attribute_value)
    await db.flush()
    await db.refresh(attribute_value)
    return attribute_value


async def update_value(
    db: AsyncSession,
    attribute_id: UUID,
    value_id: UUID,
    *,
    value: str | None = None,
    display_order: int | None = None,
    is_active: bool | None = None,
) -> tuple[AttributeValue, dict, int]:
    """Apply changes and return (value, changes, variants_deactivated).

    Deactivation only cascades to variants when
    ``deactivate_variants_on_value_deactivation`` is enabled.
    """
    attribute_value = await get_value(db, attribute_id, value_id)

    changes: dict = {}
    if value is not None:
        text = value.strip()
        if text != attribute_value.value:
            if await attribute_repo.value_text_exists(db, attribute_id, text, exclude_id=value_id):
                raise ConflictError(f"The value '{text}' already exists for this attribute")
            changes["value"] = {"old": attribute_value.value, "new": text}
            attribute_value.value = text

    if display_order is not None and display_order != attribute_value.display_order:
        changes["display_order"] = {"old": attribute_value.display_order, "new": display_order}
        attribute_value.display_order = display_order

    deactivated = 0
    if is_active is not None and is_active != attribute_value.is_active:
        changes["is_active"] = {"old": attribute_value.is_active, "new": is_active}
        attribute_value.is_active = is_active
        if not is_active and settings.deactivate_variants_on_value_deactivation:
            deactivated = await variant_repo.deactivate_by_value(db, value_id)
            changes["variants_deactivated"] = deactivated
            logger.info(
                "Deactivated %d variants referencing value %s", deactivated, value_id
            )

    await db.flush()
    await db.refresh(attribute_value)
    return attribute_value, changes, deactivated


async def delete_value(db: AsyncSession, attribute_id: UUID, value_id: UUID) -> str:
    attribute_value = await get_value(db, attribute_id, value_id)

    usage = await attribute_repo.count_value_usage(db, value_id)
    if usage > 0:
        raise ConflictError(
            f"Cannot delete the value: it is assigned to {usage} product variant(s). "
            "Deactivate it instead."
        )

    text = attribute_value.value
    await db.delete(attribute_value)
    await db.flush()
    return text

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.models.orm.attribute import Attribute, AttributeValue
from storefront.models.orm.variant import VariantAttribute


async def list_attributes(
    db: AsyncSession, *, include_values: bool = True, active_only: bool = False
) -> list[Attribute]:
    query = select(Attribute).order_by(Attribute.display_order, Attribute.name)
    if active_only:
        query = query.where(Attribute.is_active.is_(True))
    if include_values:
        query = query.options(selectinload(Attribute.values))
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_attribute(
    db: AsyncSession, attribute_id: UUID, *, with_values: bool = False
) -> Attribute | None:
    query = select(Attribute).where(Attribute.id == attribute_id)
    if with_values:
        query = query.options(selectinload(Attribute.values))
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_by_name(
    db: AsyncSession, name: str, *, exclude_id: UUID | None = None
) -> Attribute | None:
    query = select(Attribute).where(Attribute.name == name)
    if exclude_id is not None:
        query = query.where(Attribute.id != exclude_id)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def list_values(
    db: AsyncSession, attribute_id: UUID, *, active_only: bool = False
) -> list[AttributeValue]:
    query = (
        select(AttributeValue)
        .where(AttributeValue.attribute_id == attribute_id)
        .order_by(AttributeValue.display_order, AttributeValue.value)
    )
    if active_only:
        query = query.where(AttributeValue.is_active.is_(True))
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_value(
    db: AsyncSession, attribute_id: UUID, value_id: UUID
) -> AttributeValue | None:
    result = await db.execute(
        select(AttributeValue).where(
            AttributeValue.id == value_id,
            AttributeValue.attribute_id == attribute_id,
        )
    )
    return result.scalar_one_or_none()


async def get_values_by_ids(
    db: AsyncSession, value_ids: Sequence[UUID]
) -> list[AttributeValue]:
    """Fetch values (active or not) with their attribute loaded."""
    if not value_ids:
        return []
    result = await db.execute(
        select(AttributeValue)
        .where(AttributeValue.id.in_(set(value_ids)))
        .options(selectinload(AttributeValue.attribute))
    )
    return list(result.scalars().all())


async def value_text_exists(
    db: AsyncSession, attribute_id: UUID, value: str, *, exclude_id: UUID | None = None
) -> bool:
    conditions = [
        AttributeValue.attribute_id == attribute_id,
        func.lower(AttributeValue.value) == value.lower(),
    ]
    if exclude_id is not None:
        conditions.append(AttributeValue.id != exclude_id)
    result = await db.execute(select(exists().where(*conditions)))
    return bool(result.scalar())


async def count_value_usage(db: AsyncSession, value_id: UUID) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(VariantAttribute)
        .where(VariantAttribute.attribute_value_id == value_id)
    )
    return result.scalar() or 0


async def count_attribute_usage(db: AsyncSession, attribute_id: UUID) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(VariantAttribute)
        .where(VariantAttribute.attribute_id == attribute_id)
    )
    return result.scalar() or 0

from collections import defaultdict
from uuid import UUID

from sqlalchemy import delete, exists, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.models.orm.attribute import AttributeValue
from storefront.models.orm.order import OrderItem
from storefront.models.orm.product import Product
from storefront.models.orm.variant import ProductVariant, VariantAttribute


def _with_assignments():
    return (
        selectinload(ProductVariant.assignments)
        .selectinload(VariantAttribute.value)
        .selectinload(AttributeValue.attribute)
    )


async def get_by_id(
    db: AsyncSession, variant_id: UUID, *, product_id: UUID | None = None
) -> ProductVariant | None:
    query = (
        select(ProductVariant)
        .where(ProductVariant.id == variant_id)
        .options(_with_assignments())
    )
    if product_id is not None:
        query = query.where(ProductVariant.product_id == product_id)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def list_for_product(
    db: AsyncSession, product_id: UUID, *, active_only: bool = False
) -> list[ProductVariant]:
    query = (
        select(ProductVariant)
        .where(ProductVariant.product_id == product_id)
        .options(_with_assignments())
        .order_by(ProductVariant.display_order, ProductVariant.created_at)
    )
    if active_only:
        query = query.where(ProductVariant.is_active.is_(True))
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_combinations(
    db: AsyncSession, product_id: UUID, *, exclude_variant_id: UUID | None = None
) -> dict[UUID, list[UUID]]:
    """Map each variant of a product to its assigned value ids."""
    query = (
        select(VariantAttribute.variant_id, VariantAttribute.attribute_value_id)
        .join(ProductVariant, ProductVariant.id == VariantAttribute.variant_id)
        .where(ProductVariant.product_id == product_id)
    )
    if exclude_variant_id is not None:
        query = query.where(ProductVariant.id != exclude_variant_id)
    result = await db.execute(query)

    combinations: dict[UUID, list[UUID]] = defaultdict(list)
    for variant_id, value_id in result.all():
        combinations[variant_id].append(value_id)
    return dict(combinations)


async def sku_exists(
    db: AsyncSession, sku: str, *, exclude_variant_id: UUID | None = None
) -> bool:
    conditions = [ProductVariant.sku == sku]
    if exclude_variant_id is not None:
        conditions.append(ProductVariant.id != exclude_variant_id)
    result = await db.execute(select(exists().where(*conditions)))
    return bool(result.scalar())


async def has_order_references(db: AsyncSession, variant_id: UUID) -> bool:
    result = await db.execute(
        select(exists().where(OrderItem.variant_id == variant_id))
    )
    return bool(result.scalar())


async def get_for_purchase(
    db: AsyncSession, variant_id: UUID
) -> tuple[ProductVariant, Product] | None:
    """Read the variant bypassing the session identity map."""
    result = await db.execute(
        select(ProductVariant, Product)
        .join(Product, Product.id == ProductVariant.product_id)
        .where(ProductVariant.id == variant_id)
        .execution_options(populate_existing=True)
    )
    row = result.one_or_none()
    return (row[0], row[1]) if row else None


async def reserve_stock(db: AsyncSession, variant_id: UUID, quantity: int) -> int | None:
    """Decrement stock in one conditional UPDATE.

    Returns the remaining stock, or None when the variant or its product is
    no longer sellable or the variant holds fewer than ``quantity`` units.
    """
    sellable_products = select(Product.id).where(
        Product.is_active.is_(True),
        Product.has_variants.is_(True),
    )
    result = await db.execute(
        update(ProductVariant)
        .where(
            ProductVariant.id == variant_id,
            ProductVariant.is_active.is_(True),
            ProductVariant.product_id.in_(sellable_products),
            ProductVariant.stock_quantity >= quantity,
        )
        .values(stock_quantity=ProductVariant.stock_quantity - quantity)
        .returning(ProductVariant.stock_quantity)
    )
    return result.scalar_one_or_none()


async def deactivate_by_value(db: AsyncSession, value_id: UUID) -> int:
    result = await db.execute(
        update(ProductVariant)
        .where(
            ProductVariant.is_active.is_(True),
            ProductVariant.id.in_(
                select(VariantAttribute.variant_id).where(
                    VariantAttribute.attribute_value_id == value_id
                )
            ),
        )
        .values(is_active=False)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


async def delete_variant(db: AsyncSession, variant_id: UUID) -> int:
    result = await db.execute(
        delete(ProductVariant).where(ProductVariant.id == variant_id)
    )
    return result.rowcount

import logging
from uuid import UUID

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.exceptions import BadRequestError, ConflictError, NotFoundError
from storefront.core.sku import slugify
from storefront.models.orm.product import Product

logger = logging.getLogger(__name__)

_MUTABLE_PRODUCT_FIELDS = {
    "name", "description", "price_cents", "stock_quantity", "has_variants", "is_active",
}
_NULLABLE_PRODUCT_FIELDS = {"description", "stock_quantity"}


async def slug_exists(db: AsyncSession, slug: str) -> bool:
    result = await db.execute(select(exists().where(Product.slug == slug)))
    return bool(result.scalar())


async def resolve_slug(db: AsyncSession, name: str, slug: str | None = None) -> str:
    candidate = slugify(slug or name)
    if not candidate:
        raise BadRequestError("Product slug cannot be derived from the given name")
    if await slug_exists(db, candidate):
        raise ConflictError(f"A product with slug '{candidate}' already exists")
    return candidate


async def create_product(
    db: AsyncSession,
    *,
    name: str,
    slug: str | None = None,
    description: str | None = None,
    price_cents: int = 0,
    stock_quantity: int | None = None,
    has_variants: bool = False,
    is_active: bool = True,
) -> Product:
    product = Product(
        name=name,
        slug=await resolve_slug(db, name, slug),
        description=description,
        price_cents=price_cents,
        stock_quantity=stock_quantity,
        has_variants=has_variants,
        is_active=is_active,
    )
    db.add(product)
    await db.flush()
    await db.refresh(product)
    return product


async def get_product(db: AsyncSession, product_id: UUID) -> Product:
    product = await db.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")
    return product


async def get_product_by_slug(
    db: AsyncSession, slug: str, *, active_only: bool = True
) -> Product:
    query = select(Product).where(Product.slug == slug)
    if active_only:
        query = query.where(Product.is_active.is_(True))
    result = await db.execute(query)
    product = result.scalar_one_or_none()
    if not product:
        raise NotFoundError("Product not found")
    return product


async def update_product(
    db: AsyncSession, product_id: UUID, data: dict
) -> tuple[Product, dict]:
    product = await get_product(db, product_id)

    changes = {}
    for field, value in data.items():
        if field not in _MUTABLE_PRODUCT_FIELDS:
            continue
        if value is None and field not in _NULLABLE_PRODUCT_FIELDS:
            continue
        old_value = getattr(product, field)
        if old_value != value:
            changes[field] = {"old": old_value, "new": value}
            setattr(product, field, value)

    await db.flush()
    if changes:
        await db.refresh(product)
        logger.info("Updated product %s: %s", product_id, sorted(changes))
    return product, changes

"""Authoritative stock and price checks at the moment of purchase.

Everything here reads the store afresh; nothing carried in the shopper's
selection state is trusted.
"""
import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.exceptions import NotFoundError, VariantValidationError
from storefront.models.orm.product import Product
from storefront.models.orm.variant import ProductVariant
from storefront.repositories import variant_repo
from storefront.services import product_service

logger = logging.getLogger(__name__)


def _check_quantity(quantity: int) -> None:
    if quantity < 1:
        raise VariantValidationError("negative_value", "Quantity must be at least 1")


def _is_sellable(variant: ProductVariant, product: Product) -> bool:
    return variant.is_active and product.is_active and product.has_variants


def check_purchasable(variant: ProductVariant, product: Product, quantity: int) -> None:
    _check_quantity(quantity)
    if not _is_sellable(variant, product):
        raise VariantValidationError("variant_unavailable", "This variant is not available")
    if variant.stock_quantity <= 0:
        raise VariantValidationError("out_of_stock", "This variant is out of stock")
    if quantity > variant.stock_quantity:
        raise VariantValidationError(
            "insufficient_stock",
            f"Only {variant.stock_quantity} left in stock",
        )


async def quote_variant(
    db: AsyncSession, slug: str, variant_id: UUID, quantity: int
) -> dict:
    product = await product_service.get_product_by_slug(db, slug)
    row = await variant_repo.get_for_purchase(db, variant_id)
    if row is None or row[1].id != product.id:
        raise NotFoundError("Variant not found")

    variant, parent = row
    check_purchasable(variant, parent, quantity)
    return {
        "variant_id": variant.id,
        "sku": variant.sku,
        "unit_price_cents": variant.price_cents,
        "quantity": quantity,
        "total_cents": variant.price_cents * quantity,
        "stock_quantity": variant.stock_quantity,
    }


async def reserve_stock(db: AsyncSession, variant_id: UUID, quantity: int) -> int:
    """Take ``quantity`` units in one conditional decrement.

    Returns the remaining stock. A concurrent buyer that empties the variant
    first makes this call fail with ``insufficient_stock``.
    """
    _check_quantity(quantity)
    remaining = await variant_repo.reserve_stock(db, variant_id, quantity)
    if remaining is not None:
        logger.info("Reserved %d of variant %s, %d left", quantity, variant_id, remaining)
        return remaining

    row = await variant_repo.get_for_purchase(db, variant_id)
    if row is None:
        raise NotFoundError("Variant not found")
    variant, product = row
    if not _is_sellable(variant, product):
        raise VariantValidationError("variant_unavailable", "This variant is not available")
    logger.info(
        "Stock reservation of %d for variant %s refused (%d left)",
        quantity, variant_id, variant.stock_quantity,
    )
    raise VariantValidationError(
        "insufficient_stock",
        f"Only {variant.stock_quantity} left in stock",
    )

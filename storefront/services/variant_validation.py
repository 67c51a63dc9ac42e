"""Uniqueness rules for variant attribute assignments and SKUs.

The checks here give early, specific rejections. The unique indexes on
``product_variants`` and ``product_variant_attributes`` remain the
authoritative guard when two requests race past these checks.
"""
import logging
from collections.abc import Iterable, Mapping, Sequence
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.exceptions import VariantValidationError
from storefront.models.orm.attribute import AttributeValue
from storefront.repositories import attribute_repo, variant_repo

logger = logging.getLogger(__name__)

_CONSTRAINT_REASONS = {
    "uq_variants_sku": ("duplicate_sku", "SKU already exists"),
    "uq_variants_product_combination": (
        "duplicate_combination",
        "A variant with this combination of attributes already exists",
    ),
    "uq_variant_attributes_attribute": (
        "duplicate_attribute",
        "Cannot have multiple values from the same attribute",
    ),
    "uq_variant_attributes_value": (
        "duplicate_attribute",
        "Cannot have multiple values from the same attribute",
    ),
}


def combination_key(value_ids: Iterable[UUID | str]) -> str | None:
    """Order-independent identity of a set of attribute value ids."""
    ids = sorted(str(v) for v in value_ids)
    return ",".join(ids) if ids else None


def check_amounts(price_cents: int | None, stock_quantity: int | None) -> None:
    if price_cents is not None and price_cents < 0:
        raise VariantValidationError("negative_value", "Price cannot be negative")
    if stock_quantity is not None and stock_quantity < 0:
        raise VariantValidationError("negative_value", "Stock quantity cannot be negative")


def check_values_usable(
    requested_ids: Sequence[UUID], found: Iterable[AttributeValue]
) -> dict[UUID, AttributeValue]:
    """Every requested value must exist and be active, as must its attribute."""
    by_id = {v.id: v for v in found if v.is_active and v.attribute.is_active}
    missing = [v for v in set(requested_ids) if v not in by_id]
    if missing:
        raise VariantValidationError(
            "invalid_attribute_value",
            "One or more attribute values are invalid or inactive",
        )
    return by_id


def check_attribute_exclusivity(
    value_ids: Sequence[UUID], attribute_of: Mapping[UUID, UUID]
) -> None:
    """A variant carries at most one value per attribute."""
    attribute_ids = [attribute_of[v] for v in value_ids]
    if len(set(value_ids)) != len(value_ids) or len(set(attribute_ids)) != len(attribute_ids):
        raise VariantValidationError(
            "duplicate_attribute",
            "Cannot have multiple values from the same attribute",
        )


def check_combination_unique(
    value_ids: Sequence[UUID],
    existing: Mapping[UUID, Iterable[UUID]],
    *,
    exclude_variant_id: UUID | None = None,
) -> None:
    """Reject when another variant of the product has the same value set.

    ``existing`` maps variant id to its assigned value ids.
    """
    key = combination_key(value_ids)
    if key is None:
        return
    for variant_id, other_ids in existing.items():
        if variant_id == exclude_variant_id:
            continue
        if combination_key(other_ids) == key:
            raise VariantValidationError(
                "duplicate_combination",
                "A variant with this combination of attributes already exists",
            )


def translate_integrity_error(exc: IntegrityError) -> VariantValidationError | None:
    """Map a unique-index violation from the store to its validation reason."""
    message = str(exc.orig) if exc.orig is not None else str(exc)
    for constraint, (reason, text) in _CONSTRAINT_REASONS.items():
        if constraint in message:
            return VariantValidationError(reason, text)
    return None


async def validate_assignment(
    db: AsyncSession,
    product_id: UUID,
    value_ids: Sequence[UUID],
    *,
    exclude_variant_id: UUID | None = None,
) -> list[AttributeValue]:
    """Run exclusivity and combination checks for one variant.

    Returns the referenced values in request order, attributes loaded.
    """
    if not value_ids:
        return []

    found = await attribute_repo.get_values_by_ids(db, value_ids)
    by_id = check_values_usable(value_ids, found)
    check_attribute_exclusivity(value_ids, {v: by_id[v].attribute_id for v in value_ids})

    existing = await variant_repo.list_combinations(
        db, product_id, exclude_variant_id=exclude_variant_id
    )
    check_combination_unique(value_ids, existing, exclude_variant_id=exclude_variant_id)
    return [by_id[v] for v in value_ids]


async def ensure_sku_available(
    db: AsyncSession, sku: str, *, exclude_variant_id: UUID | None = None
) -> None:
    if await variant_repo.sku_exists(db, sku, exclude_variant_id=exclude_variant_id):
        logger.info("Rejected duplicate SKU %s", sku)
        raise VariantValidationError("duplicate_sku", "SKU already exists")

"""Variant record lifecycle: create, update, delete, generate and bulk create.

All uniqueness checks run before the first write. Each write runs inside a
SAVEPOINT so a failure while storing the assignments discards the variant
row written just before them.
"""
import logging
import uuid
from collections.abc import Sequence
from contextlib import asynccontextmanager
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.config import settings
from storefront.core.exceptions import (
    BadRequestError,
    ConflictError,
    NotFoundError,
    VariantPersistenceError,
    VariantValidationError,
)
from storefront.core.sku import bulk_sku, disambiguator, generate_sku
from storefront.mappers.variant import display_for_values
from storefront.models.orm.attribute import AttributeValue
from storefront.models.orm.product import Product
from storefront.models.orm.variant import ProductVariant, VariantAttribute
from storefront.repositories import attribute_repo, variant_repo
from storefront.services import product_service
from storefront.services.variant_combinations import generate_combinations
from storefront.services.variant_validation import (
    check_amounts,
    check_attribute_exclusivity,
    check_combination_unique,
    check_values_usable,
    combination_key,
    ensure_sku_available,
    translate_integrity_error,
    validate_assignment,
)

logger = logging.getLogger(__name__)

CANDIDATE_SEPARATOR = " + "

_MUTABLE_VARIANT_FIELDS = {
    "sku", "price_cents", "stock_quantity", "is_active", "variant_name",
    "color", "attributes_display", "image_url", "display_order",
}
_NULLABLE_VARIANT_FIELDS = {"variant_name", "color", "attributes_display", "image_url"}


@asynccontextmanager
async def _savepoint(db: AsyncSession, action: str):
    try:
        async with db.begin_nested():
            yield
    except IntegrityError as exc:
        translated = translate_integrity_error(exc)
        if translated is not None:
            logger.info("Store rejected %s: %s", action, translated.reason)
            raise translated from exc
        logger.exception("Integrity failure while %s; partial rows rolled back", action)
        raise VariantPersistenceError() from exc
    except SQLAlchemyError as exc:
        logger.exception("Database failure while %s; partial rows rolled back", action)
        raise VariantPersistenceError() from exc


def _assignments_for(values: Sequence[AttributeValue]) -> list[VariantAttribute]:
    return [
        VariantAttribute(attribute_value_id=v.id, attribute_id=v.attribute_id, value=v)
        for v in values
    ]


async def _require_variant_product(db: AsyncSession, product_id: UUID) -> Product:
    product = await product_service.get_product(db, product_id)
    if not product.has_variants:
        raise VariantValidationError(
            "variants_not_supported",
            "Product does not support variants. Enable has_variants first.",
        )
    return product


async def _write_variant(
    db: AsyncSession,
    product_id: UUID,
    values: Sequence[AttributeValue],
    *,
    sku: str,
    price_cents: int,
    stock_quantity: int,
    is_active: bool = True,
    variant_name: str | None = None,
    color: str | None = None,
    attributes_display: str | None = None,
    image_url: str | None = None,
    display_order: int = 0,
) -> ProductVariant:
    value_ids = [v.id for v in values]
    variant = ProductVariant(
        id=uuid.uuid4(),
        product_id=product_id,
        sku=sku,
        price_cents=price_cents,
        stock_quantity=stock_quantity,
        is_active=is_active,
        variant_name=variant_name,
        color=color,
        attributes_display=attributes_display or (display_for_values(values) or None),
        image_url=image_url,
        display_order=display_order,
        combination_key=combination_key(value_ids),
        assignments=_assignments_for(values),
    )
    async with _savepoint(db, f"creating variant {sku}"):
        db.add(variant)
        await db.flush()
    await db.refresh(variant, attribute_names=["created_at", "updated_at"])
    return variant


async def list_variants(db: AsyncSession, product_id: UUID) -> list[ProductVariant]:
    await product_service.get_product(db, product_id)
    return await variant_repo.list_for_product(db, product_id)


async def get_variant(db: AsyncSession, product_id: UUID, variant_id: UUID) -> ProductVariant:
    variant = await variant_repo.get_by_id(db, variant_id, product_id=product_id)
    if not variant:
        raise NotFoundError("Variant not found")
    return variant


async def create_variant(
    db: AsyncSession,
    product_id: UUID,
    *,
    price_cents: int | None,
    stock_quantity: int = 0,
    sku: str | None = None,
    is_active: bool = True,
    attribute_value_ids: Sequence[UUID] = (),
    variant_name: str | None = None,
    color: str | None = None,
    attributes_display: str | None = None,
    image_url: str | None = None,
    display_order: int = 0,
) -> ProductVariant:
    await _require_variant_product(db, product_id)

    if price_cents is None:
        raise VariantValidationError("missing_field", "Price is required")
    check_amounts(price_cents, stock_quantity)

    value_ids = list(attribute_value_ids)
    values = await validate_assignment(db, product_id, value_ids)

    sku = sku or generate_sku(variant_name, color)
    await ensure_sku_available(db, sku)

    variant = await _write_variant(
        db,
        product_id,
        values,
        sku=sku,
        price_cents=price_cents,
        stock_quantity=stock_quantity,
        is_active=is_active,
        variant_name=variant_name,
        color=color,
        attributes_display=attributes_display,
        image_url=image_url,
        display_order=display_order,
    )
    logger.info("Created variant %s (%s) for product %s", variant.id, sku, product_id)
    return variant


async def update_variant(
    db: AsyncSession, product_id: UUID, variant_id: UUID, data: dict
) -> tuple[ProductVariant, dict]:
    """Apply a partial update.

    A present ``attribute_value_ids`` replaces the whole assignment set after
    re-validating it against the product's other variants.
    """
    variant = await get_variant(db, product_id, variant_id)
    check_amounts(data.get("price_cents"), data.get("stock_quantity"))

    new_sku = data.get("sku")
    if new_sku is not None and new_sku != variant.sku:
        await ensure_sku_available(db, new_sku, exclude_variant_id=variant_id)

    new_values: list[AttributeValue] | None = None
    value_ids = data.get("attribute_value_ids")
    if value_ids is not None and combination_key(value_ids) != variant.combination_key:
        new_values = await validate_assignment(
            db, product_id, list(value_ids), exclude_variant_id=variant_id
        )

    changes: dict = {}
    async with _savepoint(db, f"updating variant {variant_id}"):
        for field, value in data.items():
            if field not in _MUTABLE_VARIANT_FIELDS:
                continue
            if value is None and field not in _NULLABLE_VARIANT_FIELDS:
                continue
            old_value = getattr(variant, field)
            if old_value != value:
                changes[field] = {"old": old_value, "new": value}
                setattr(variant, field, value)

        if new_values is not None:
            changes["attribute_value_ids"] = {
                "old": [str(v) for v in variant.attribute_value_ids],
                "new": [str(v.id) for v in new_values],
            }
            # Old rows must be gone before the new ones hit the unique indexes
            variant.assignments.clear()
            await db.flush()
            variant.assignments.extend(_assignments_for(new_values))
            variant.combination_key = combination_key([v.id for v in new_values])
            if "attributes_display" not in data:
                variant.attributes_display = display_for_values(new_values) or None

        await db.flush()

    if changes:
        await db.refresh(variant, attribute_names=["updated_at"])
        logger.info("Updated variant %s: %s", variant_id, sorted(changes))
    return variant, changes


async def delete_variant(db: AsyncSession, product_id: UUID, variant_id: UUID) -> str:
    variant = await get_variant(db, product_id, variant_id)
    if await variant_repo.has_order_references(db, variant_id):
        raise ConflictError(
            "Cannot delete a variant that is referenced by orders. Deactivate it instead."
        )
    sku = variant.sku
    await variant_repo.delete_variant(db, variant_id)
    await db.flush()
    logger.info("Deleted variant %s (%s)", variant_id, sku)
    return sku


async def preview_combinations(
    db: AsyncSession, product_id: UUID, selections: dict[UUID, list[UUID]]
) -> list[dict]:
    """Expand the chosen values and flag combinations the product already has."""
    await product_service.get_product(db, product_id)
    combinations = generate_combinations(
        selections, limit=settings.variant_max_combinations
    )

    requested = [v for ids in selections.values() for v in ids]
    by_id = check_values_usable(requested, await attribute_repo.get_values_by_ids(db, requested))
    for attribute_id, ids in selections.items():
        if any(by_id[v].attribute_id != attribute_id for v in ids):
            raise VariantValidationError(
                "invalid_attribute_value",
                f"A selected value does not belong to attribute {attribute_id}",
            )

    existing = await variant_repo.list_combinations(db, product_id)
    existing_by_key = {combination_key(ids): vid for vid, ids in existing.items()}

    candidates = []
    for combination in combinations:
        ids = list(combination.values())
        existing_id = existing_by_key.get(combination_key(ids))
        candidates.append({
            "attribute_value_ids": ids,
            "display_name": CANDIDATE_SEPARATOR.join(by_id[v].value for v in ids),
            "exists": existing_id is not None,
            "existing_variant_id": existing_id,
        })
    return candidates


async def _bulk_sku_for(
    db: AsyncSession, product: Product, spec: dict, taken: set[str]
) -> str:
    explicit = spec.get("sku")
    if explicit:
        if explicit in taken:
            raise VariantValidationError("duplicate_sku", "SKU already exists")
        await ensure_sku_available(db, explicit)
        return explicit

    sku = bulk_sku(product.slug, [str(v) for v in spec["attribute_value_ids"]])
    if sku in taken or await variant_repo.sku_exists(db, sku):
        sku = f"{sku}-{disambiguator()}"
        if sku in taken:
            raise VariantValidationError("duplicate_sku", "SKU already exists")
        await ensure_sku_available(db, sku)
    return sku


async def create_product_with_variants(
    db: AsyncSession, *, product: dict, variants: list[dict]
) -> tuple[Product, list[ProductVariant], list[dict]]:
    """Create a product and as many of its variants as pass validation.

    Returns the product, the created variants and one error entry per
    rejected spec. When no variant survives, the product is removed again
    and the collected errors are raised as a 400.
    """
    requested = list({v for spec in variants for v in spec["attribute_value_ids"]})
    by_id = check_values_usable(requested, await attribute_repo.get_values_by_ids(db, requested))

    parent = await product_service.create_product(
        db,
        name=product["name"],
        slug=product.get("slug"),
        description=product.get("description"),
        is_active=product.get("is_active", True),
        has_variants=True,
    )

    created: list[ProductVariant] = []
    errors: list[dict] = []
    accepted: dict[int, list[UUID]] = {}
    taken_skus: set[str] = set()

    for index, spec in enumerate(variants):
        value_ids = list(spec["attribute_value_ids"])
        try:
            if spec.get("price_cents") is None:
                raise VariantValidationError("missing_field", "Price is required")
            stock_quantity = spec.get("stock_quantity") or 0
            check_amounts(spec["price_cents"], stock_quantity)
            check_attribute_exclusivity(value_ids, {v: by_id[v].attribute_id for v in value_ids})
            check_combination_unique(value_ids, accepted)
            sku = await _bulk_sku_for(db, parent, spec, taken_skus)

            variant = await _write_variant(
                db,
                parent.id,
                [by_id[v] for v in value_ids],
                sku=sku,
                price_cents=spec["price_cents"],
                stock_quantity=stock_quantity,
                image_url=spec.get("image_url"),
                display_order=index,
            )
        except VariantValidationError as exc:
            logger.warning("Bulk variant %d for %s rejected: %s", index, parent.slug, exc.reason)
            errors.append({"variant_index": index, "reason": exc.reason, "error": exc.message})
            continue
        except VariantPersistenceError as exc:
            logger.warning("Bulk variant %d for %s failed to persist", index, parent.slug)
            errors.append({"variant_index": index, "reason": "persistence_error", "error": exc.detail})
            continue

        accepted[index] = value_ids
        taken_skus.add(sku)
        created.append(variant)

    if not created:
        await db.delete(parent)
        await db.flush()
        logger.warning("No variants created for %s; product discarded", parent.slug)
        raise BadRequestError(detail={
            "reason": "no_variants_created",
            "message": "Failed to create any variants",
            "errors": errors,
        })

    logger.info(
        "Bulk created product %s with %d/%d variants",
        parent.id, len(created), len(variants),
    )
    return parent, created, errors

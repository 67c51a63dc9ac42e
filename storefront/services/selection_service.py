from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from storefront.mappers.variant import shopper_variant_to_dict, to_selectable
from storefront.models.orm.variant import ProductVariant
from storefront.repositories import variant_repo
from storefront.services import product_service
from storefront.services.variant_selector import VariantSelector


async def list_shopper_variants(db: AsyncSession, slug: str) -> list[ProductVariant]:
    """Active variants of an active product; empty when it has none."""
    product = await product_service.get_product_by_slug(db, slug)
    if not product.has_variants:
        return []
    return await variant_repo.list_for_product(db, product.id, active_only=True)


async def resolve_selection(
    db: AsyncSession, slug: str, selection: dict[str, UUID]
) -> dict:
    variants = await list_shopper_variants(db, slug)
    by_id = {v.id: v for v in variants}

    selector = VariantSelector([to_selectable(v) for v in variants], selection)
    resolution = selector.resolution()
    return {
        "status": resolution.status.value,
        "variant": (
            shopper_variant_to_dict(by_id[resolution.variant.id])
            if resolution.variant is not None
            else None
        ),
        "available_options": selector.options(),
    }

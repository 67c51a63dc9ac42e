from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.dependencies.database import get_db
from storefront.mappers.variant import shopper_variant_to_dict
from storefront.models.dto.variant import (
    QuoteRequest,
    QuoteResponse,
    ResolutionResponse,
    SelectionRequest,
    ShopperVariantResponse,
)
from storefront.services import purchase_service, selection_service

router = APIRouter(prefix="/products", tags=["products"])


@router.get("/{slug}/variants", response_model=list[ShopperVariantResponse])
async def list_variants(
    slug: str,
    db: AsyncSession = Depends(get_db),
):
    variants = await selection_service.list_shopper_variants(db, slug)
    return [shopper_variant_to_dict(v) for v in variants]


@router.post("/{slug}/variants/resolve", response_model=ResolutionResponse)
async def resolve_variant(
    slug: str,
    body: SelectionRequest,
    db: AsyncSession = Depends(get_db),
):
    return await selection_service.resolve_selection(db, slug, body.selection)


@router.post("/{slug}/variants/{variant_id}/quote", response_model=QuoteResponse)
async def quote_variant(
    slug: str,
    variant_id: UUID,
    body: QuoteRequest,
    db: AsyncSession = Depends(get_db),
):
    return await purchase_service.quote_variant(db, slug, variant_id, body.quantity)

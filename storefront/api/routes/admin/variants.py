from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.dependencies.auth import Principal, require_admin
from storefront.api.dependencies.database import get_db
from storefront.audit.service import audit_admin_action
from storefront.mappers.variant import variant_to_dict
from storefront.models.dto.variant import (
    CombinationPreviewResponse,
    CombinationRequest,
    VariantCreate,
    VariantResponse,
    VariantUpdate,
)
from storefront.services import variant_service

router = APIRouter(prefix="/products/{product_id}/variants", tags=["admin-variants"])


@router.get("", response_model=list[VariantResponse])
async def list_variants(
    product_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    variants = await variant_service.list_variants(db, product_id)
    return [variant_to_dict(v) for v in variants]


@router.post("", response_model=VariantResponse, status_code=201)
async def create_variant(
    product_id: UUID,
    body: VariantCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    variant = await variant_service.create_variant(db, product_id, **body.model_dump())
    await audit_admin_action(
        db, request, admin.id, "admin.variant.created", "product_variant",
        resource_id=variant.id,
        details={
            "product_id": str(product_id),
            "sku": variant.sku,
            "attribute_value_ids": [str(v) for v in body.attribute_value_ids],
        },
    )
    return variant_to_dict(variant)


@router.post("/generate", response_model=CombinationPreviewResponse)
async def generate_combinations(
    product_id: UUID,
    body: CombinationRequest,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    candidates = await variant_service.preview_combinations(db, product_id, body.selections)
    return {
        "total": len(candidates),
        "new_count": sum(1 for c in candidates if not c["exists"]),
        "candidates": candidates,
    }


@router.get("/{variant_id}", response_model=VariantResponse)
async def get_variant(
    product_id: UUID,
    variant_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    variant = await variant_service.get_variant(db, product_id, variant_id)
    return variant_to_dict(variant)


@router.put("/{variant_id}", response_model=VariantResponse)
async def update_variant(
    product_id: UUID,
    variant_id: UUID,
    body: VariantUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    variant, changes = await variant_service.update_variant(
        db, product_id, variant_id, body.model_dump(exclude_unset=True)
    )
    if changes:
        await audit_admin_action(
            db, request, admin.id, "admin.variant.updated", "product_variant",
            resource_id=variant.id, details=changes,
        )
    return variant_to_dict(variant)


@router.delete("/{variant_id}", status_code=204)
async def delete_variant(
    product_id: UUID,
    variant_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    sku = await variant_service.delete_variant(db, product_id, variant_id)
    await audit_admin_action(
        db, request, admin.id, "admin.variant.deleted", "product_variant",
        resource_id=variant_id, details={"product_id": str(product_id), "sku": sku},
    )
    return Response(status_code=204)

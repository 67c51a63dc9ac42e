import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.dependencies.auth import Principal, require_admin
from storefront.api.dependencies.database import get_db
from storefront.audit.service import audit_admin_action
from storefront.mappers.variant import product_to_dict
from storefront.models.dto.product import (
    BulkCreateResponse,
    ProductCreate,
    ProductResponse,
    ProductUpdate,
)
from storefront.models.dto.variant import BulkProductCreate
from storefront.services import product_service, variant_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["admin-products"])


@router.post("", response_model=ProductResponse, status_code=201)
async def create_product(
    body: ProductCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    product = await product_service.create_product(db, **body.model_dump())
    await audit_admin_action(
        db, request, admin.id, "admin.product.created", "product",
        resource_id=product.id,
        details={"name": product.name, "slug": product.slug, "has_variants": product.has_variants},
    )
    return product_to_dict(product)


@router.post("/with-variants", response_model=BulkCreateResponse, status_code=201)
async def create_product_with_variants(
    body: BulkProductCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    product, variants, errors = await variant_service.create_product_with_variants(
        db,
        product=body.product.model_dump(),
        variants=[spec.model_dump() for spec in body.variants],
    )
    await audit_admin_action(
        db, request, admin.id, "admin.product.bulk_created", "product",
        resource_id=product.id,
        details={
            "name": product.name,
            "variants_created": len(variants),
            "variants_failed": len(errors),
            "skus": [v.sku for v in variants],
        },
    )
    return {
        "product": product_to_dict(product, variants),
        "stats": {
            "total_variants_requested": len(body.variants),
            "variants_created": len(variants),
            "variants_failed": len(errors),
        },
        "errors": errors,
    }


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    product = await product_service.get_product(db, product_id)
    return product_to_dict(product)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: UUID,
    body: ProductUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    product, changes = await product_service.update_product(
        db, product_id, body.model_dump(exclude_unset=True)
    )
    if changes:
        await audit_admin_action(
            db, request, admin.id, "admin.product.updated", "product",
            resource_id=product.id, details=changes,
        )
    return product_to_dict(product)

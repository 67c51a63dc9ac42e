from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.dependencies.auth import Principal, require_admin
from storefront.api.dependencies.database import get_db
from storefront.audit.service import audit_admin_action
from storefront.mappers.attribute import attribute_to_dict, value_to_dict
from storefront.models.dto.attribute import (
    AttributeCreate,
    AttributeResponse,
    AttributeUpdate,
    AttributeValueCreate,
    AttributeValueResponse,
    AttributeValueUpdate,
    AttributeValueUpdateResponse,
)
from storefront.services import attribute_service

router = APIRouter(prefix="/attributes", tags=["admin-attributes"])


@router.get("", response_model=list[AttributeResponse])
async def list_attributes(
    include_values: bool = Query(True),
    active_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    attributes = await attribute_service.list_attributes(
        db, include_values=include_values, active_only=active_only
    )
    return [attribute_to_dict(a, include_values=include_values) for a in attributes]


@router.post("", response_model=AttributeResponse, status_code=201)
async def create_attribute(
    body: AttributeCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    attribute = await attribute_service.create_attribute(
        db, name=body.name, display_name=body.display_name, display_order=body.display_order,
    )
    await audit_admin_action(
        db, request, admin.id, "admin.attribute.created", "attribute",
        resource_id=attribute.id, details={"name": attribute.name},
    )
    return attribute_to_dict(attribute, include_values=False)


@router.get("/{attribute_id}", response_model=AttributeResponse)
async def get_attribute(
    attribute_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    attribute = await attribute_service.get_attribute(db, attribute_id)
    return attribute_to_dict(attribute)


@router.put("/{attribute_id}", response_model=AttributeResponse)
async def update_attribute(
    attribute_id: UUID,
    body: AttributeUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    attribute, changes = await attribute_service.update_attribute(
        db, attribute_id, **body.model_dump(exclude_unset=True)
    )
    if changes:
        await audit_admin_action(
            db, request, admin.id, "admin.attribute.updated", "attribute",
            resource_id=attribute.id, details=changes,
        )
    return attribute_to_dict(attribute, include_values=False)


@router.delete("/{attribute_id}", status_code=204)
async def delete_attribute(
    attribute_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    name = await attribute_service.delete_attribute(db, attribute_id)
    await audit_admin_action(
        db, request, admin.id, "admin.attribute.deleted", "attribute",
        resource_id=attribute_id, details={"name": name},
    )
    return Response(status_code=204)


# ── Values ──────────────────────────────────────────────────────────────────


@router.get("/{attribute_id}/values", response_model=list[AttributeValueResponse])
async def list_values(
    attribute_id: UUID,
    active_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    values = await attribute_service.list_values(db, attribute_id, active_only=active_only)
    return [value_to_dict(v) for v in values]


@router.post("/{attribute_id}/values", response_model=AttributeValueResponse, status_code=201)
async def create_value(
    attribute_id: UUID,
    body: AttributeValueCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    value = await attribute_service.create_value(
        db, attribute_id, value=body.value, display_order=body.display_order
    )
    await audit_admin_action(
        db, request, admin.id, "admin.attribute_value.created", "attribute_value",
        resource_id=value.id, details={"attribute_id": str(attribute_id), "value": value.value},
    )
    return value_to_dict(value)


@router.get("/{attribute_id}/values/{value_id}", response_model=AttributeValueResponse)
async def get_value(
    attribute_id: UUID,
    value_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    value = await attribute_service.get_value(db, attribute_id, value_id)
    return value_to_dict(value)


@router.put("/{attribute_id}/values/{value_id}", response_model=AttributeValueUpdateResponse)
async def update_value(
    attribute_id: UUID,
    value_id: UUID,
    body: AttributeValueUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    value, changes, deactivated = await attribute_service.update_value(
        db, attribute_id, value_id, **body.model_dump(exclude_unset=True)
    )
    if changes:
        await audit_admin_action(
            db, request, admin.id, "admin.attribute_value.updated", "attribute_value",
            resource_id=value.id, details=changes,
        )
    return {**value_to_dict(value), "variants_deactivated": deactivated}


@router.delete("/{attribute_id}/values/{value_id}", status_code=204)
async def delete_value(
    attribute_id: UUID,
    value_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    text = await attribute_service.delete_value(db, attribute_id, value_id)
    await audit_admin_action(
        db, request, admin.id, "admin.attribute_value.deleted", "attribute_value",
        resource_id=value_id, details={"attribute_id": str(attribute_id), "value": text},
    )
    return Response(status_code=204)

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from storefront.models.dto.variant import BulkCreateStats, BulkVariantError, VariantResponse


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    slug: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    price_cents: int = Field(default=0, ge=0)
    stock_quantity: int | None = Field(default=None, ge=0)
    has_variants: bool = False
    is_active: bool = True


class ProductUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    price_cents: int | None = Field(default=None, ge=0)
    stock_quantity: int | None = Field(default=None, ge=0)
    has_variants: bool | None = None
    is_active: bool | None = None


class ProductResponse(BaseModel):
    id: UUID
    name: str
    slug: str
    description: str | None = None
    price_cents: int
    stock_quantity: int | None = None
    has_variants: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProductWithVariantsResponse(ProductResponse):
    variants: list[VariantResponse] = []


class BulkCreateResponse(BaseModel):
    product: ProductWithVariantsResponse
    stats: BulkCreateStats
    errors: list[BulkVariantError] = []

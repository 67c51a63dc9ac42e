from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field


class VariantCreate(BaseModel):
    sku: str | None = Field(default=None, min_length=1, max_length=100)
    price_cents: int = Field(ge=0)
    stock_quantity: int = Field(default=0, ge=0)
    is_active: bool = True
    attribute_value_ids: list[UUID] = []
    variant_name: str | None = Field(default=None, max_length=255)
    color: str | None = Field(default=None, max_length=100)
    attributes_display: str | None = Field(default=None, max_length=500)
    image_url: str | None = None
    display_order: int = Field(default=0, ge=0)


class VariantUpdate(BaseModel):
    sku: str | None = Field(default=None, min_length=1, max_length=100)
    price_cents: int | None = Field(default=None, ge=0)
    stock_quantity: int | None = Field(default=None, ge=0)
    is_active: bool | None = None
    attribute_value_ids: list[UUID] | None = None
    variant_name: str | None = Field(default=None, max_length=255)
    color: str | None = Field(default=None, max_length=100)
    attributes_display: str | None = Field(default=None, max_length=500)
    image_url: str | None = None
    display_order: int | None = Field(default=None, ge=0)


class AttributeAssignmentResponse(BaseModel):
    id: UUID
    attribute_id: UUID
    attribute_name: str
    attribute_display_name: str
    attribute_value_id: UUID
    value: str


class VariantResponse(BaseModel):
    id: UUID
    product_id: UUID
    sku: str
    price_cents: int
    stock_quantity: int
    is_active: bool
    variant_name: str | None = None
    color: str | None = None
    attributes_display: str | None = None
    image_url: str | None = None
    display_order: int
    attributes: list[AttributeAssignmentResponse]
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ── Combination generation ──────────────────────────────────────────────────


class CombinationRequest(BaseModel):
    selections: dict[UUID, list[UUID]] = Field(min_length=1)


class CombinationCandidate(BaseModel):
    attribute_value_ids: list[UUID]
    display_name: str
    exists: bool
    existing_variant_id: UUID | None = None


class CombinationPreviewResponse(BaseModel):
    total: int
    new_count: int
    candidates: list[CombinationCandidate]


# ── Bulk creation ───────────────────────────────────────────────────────────


class BulkProductData(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    slug: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    is_active: bool = True


class BulkVariantSpec(BaseModel):
    sku: str | None = Field(default=None, min_length=1, max_length=100)
    price_cents: int = Field(ge=0)
    stock_quantity: int = Field(default=0, ge=0)
    image_url: str | None = None
    attribute_value_ids: list[UUID] = Field(min_length=1)


class BulkProductCreate(BaseModel):
    product: BulkProductData
    variants: list[BulkVariantSpec] = Field(min_length=1)


class BulkVariantError(BaseModel):
    variant_index: int
    reason: str
    error: str


class BulkCreateStats(BaseModel):
    total_variants_requested: int
    variants_created: int
    variants_failed: int


# ── Shopper-facing ──────────────────────────────────────────────────────────


class ShopperVariantAttribute(BaseModel):
    attribute_id: UUID
    attribute_name: str
    attribute_display_name: str
    value_id: UUID
    value_name: str


class ShopperVariantResponse(BaseModel):
    id: UUID
    product_id: UUID
    sku: str
    variant_name: str | None = None
    color: str | None = None
    price_cents: int
    stock_quantity: int
    image_url: str | None = None
    display_order: int
    attributes: list[ShopperVariantAttribute]
    attributes_display: str


class SelectionRequest(BaseModel):
    selection: dict[str, UUID] = {}


class OptionState(BaseModel):
    value_id: UUID
    value_name: str
    selectable: bool
    available_stock: int
    is_selected: bool


class AttributeOptions(BaseModel):
    attribute_name: str
    display_name: str
    selected_value_id: UUID | None = None
    options: list[OptionState]


class ResolutionResponse(BaseModel):
    status: Literal["resolved", "incomplete", "no_match"]
    variant: ShopperVariantResponse | None = None
    available_options: list[AttributeOptions]


class QuoteRequest(BaseModel):
    quantity: int = Field(default=1, ge=1, le=1000)


class QuoteResponse(BaseModel):
    variant_id: UUID
    sku: str
    unit_price_cents: int
    quantity: int
    total_cents: int
    stock_quantity: int

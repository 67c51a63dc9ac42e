from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class AttributeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    display_name: str = Field(min_length=1, max_length=255)
    display_order: int = Field(default=0, ge=0)


class AttributeUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    display_name: str | None = Field(default=None, min_length=1, max_length=255)
    display_order: int | None = Field(default=None, ge=0)
    is_active: bool | None = None


class AttributeValueCreate(BaseModel):
    value: str = Field(min_length=1, max_length=255)
    display_order: int = Field(default=0, ge=0)


class AttributeValueUpdate(BaseModel):
    value: str | None = Field(default=None, min_length=1, max_length=255)
    display_order: int | None = Field(default=None, ge=0)
    is_active: bool | None = None


class AttributeValueResponse(BaseModel):
    id: UUID
    attribute_id: UUID
    value: str
    display_order: int
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AttributeValueUpdateResponse(AttributeValueResponse):
    variants_deactivated: int = 0


class AttributeResponse(BaseModel):
    id: UUID
    name: str
    display_name: str
    display_order: int
    is_active: bool
    created_at: datetime
    updated_at: datetime
    values: list[AttributeValueResponse] | None = None

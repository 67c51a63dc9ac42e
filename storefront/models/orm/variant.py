import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from storefront.models.orm.attribute import AttributeValue
from storefront.models.orm.base import Base


class ProductVariant(Base):
    __tablename__ = "product_variants"
    __table_args__ = (
        UniqueConstraint("sku", name="uq_variants_sku"),
        UniqueConstraint(
            "product_id", "combination_key", name="uq_variants_product_combination"
        ),
        CheckConstraint("price_cents >= 0", name="ck_variants_price_non_negative"),
        CheckConstraint("stock_quantity >= 0", name="ck_variants_stock_non_negative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    sku: Mapped[str] = mapped_column(String(100), nullable=False)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    stock_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    variant_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    color: Mapped[str | None] = mapped_column(String(100), nullable=True)
    attributes_display: Mapped[str | None] = mapped_column(String(500), nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Sorted attribute value ids joined with ",", NULL when unassigned
    combination_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    product: Mapped["Product"] = relationship("Product", back_populates="variants")
    assignments: Mapped[list["VariantAttribute"]] = relationship(
        "VariantAttribute",
        back_populates="variant",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def attribute_value_ids(self) -> list[uuid.UUID]:
        return [a.attribute_value_id for a in self.assignments]


class VariantAttribute(Base):
    __tablename__ = "product_variant_attributes"
    __table_args__ = (
        UniqueConstraint("variant_id", "attribute_id", name="uq_variant_attributes_attribute"),
        UniqueConstraint("variant_id", "attribute_value_id", name="uq_variant_attributes_value"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    variant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("product_variants.id", ondelete="CASCADE"),
        nullable=False,
    )
    attribute_value_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("product_attribute_values.id"), nullable=False
    )
    attribute_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("product_attributes.id"), nullable=False
    )

    variant: Mapped["ProductVariant"] = relationship("ProductVariant", back_populates="assignments")
    value: Mapped["AttributeValue"] = relationship(AttributeValue)

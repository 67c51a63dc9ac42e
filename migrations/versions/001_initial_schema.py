"""Initial schema: attribute catalog, products, variants, orders and audit log

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID, JSONB, INET

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # --- Attribute catalog ---
    op.create_table(
        "product_attributes",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("name", sa.String(100), unique=True, nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("display_order", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        *_timestamps(),
    )

    op.create_table(
        "product_attribute_values",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("attribute_id", UUID(as_uuid=True), sa.ForeignKey("product_attributes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("value", sa.String(255), nullable=False),
        sa.Column("display_order", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        *_timestamps(),
        sa.UniqueConstraint("attribute_id", "value", name="uq_attribute_values_attribute_value"),
    )
    op.create_index("ix_attribute_values_attribute_id", "product_attribute_values", ["attribute_id"])

    # --- Products ---
    op.create_table(
        "products",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), unique=True, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("price_cents", sa.Integer, nullable=False, server_default="0"),
        sa.Column("stock_quantity", sa.Integer, nullable=True),
        sa.Column("has_variants", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        *_timestamps(),
    )

    # --- Variants ---
    op.create_table(
        "product_variants",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("product_id", UUID(as_uuid=True), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sku", sa.String(100), nullable=False),
        sa.Column("price_cents", sa.Integer, nullable=False),
        sa.Column("stock_quantity", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("variant_name", sa.String(255), nullable=True),
        sa.Column("color", sa.String(100), nullable=True),
        sa.Column("attributes_display", sa.String(500), nullable=True),
        sa.Column("image_url", sa.Text, nullable=True),
        sa.Column("display_order", sa.Integer, nullable=False, server_default="0"),
        sa.Column("combination_key", sa.Text, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("sku", name="uq_variants_sku"),
        sa.UniqueConstraint("product_id", "combination_key", name="uq_variants_product_combination"),
        sa.CheckConstraint("price_cents >= 0", name="ck_variants_price_non_negative"),
        sa.CheckConstraint("stock_quantity >= 0", name="ck_variants_stock_non_negative"),
    )
    op.create_index("ix_variants_product_id", "product_variants", ["product_id"])
    op.create_index(
        "ix_variants_product_active",
        "product_variants",
        ["product_id"],
        postgresql_where=sa.text("is_active = true"),
    )

    op.create_table(
        "product_variant_attributes",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("variant_id", UUID(as_uuid=True), sa.ForeignKey("product_variants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("attribute_value_id", UUID(as_uuid=True), sa.ForeignKey("product_attribute_values.id"), nullable=False),
        sa.Column("attribute_id", UUID(as_uuid=True), sa.ForeignKey("product_attributes.id"), nullable=False),
        sa.UniqueConstraint("variant_id", "attribute_id", name="uq_variant_attributes_attribute"),
        sa.UniqueConstraint("variant_id", "attribute_value_id", name="uq_variant_attributes_value"),
    )
    op.create_index("ix_variant_attributes_value_id", "product_variant_attributes", ["attribute_value_id"])
    op.create_index("ix_variant_attributes_attribute_id", "product_variant_attributes", ["attribute_id"])

    # --- Orders (written by checkout, referenced for deletion guards) ---
    op.create_table(
        "orders",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("status", sa.String(50), nullable=False, server_default="pending"),
        sa.Column("total_cents", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "order_items",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("order_id", UUID(as_uuid=True), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", UUID(as_uuid=True), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("variant_id", UUID(as_uuid=True), sa.ForeignKey("product_variants.id", ondelete="RESTRICT"), nullable=True),
        sa.Column("quantity", sa.Integer, nullable=False, server_default="1"),
        sa.Column("price_cents", sa.Integer, nullable=False),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"])
    op.create_index("ix_order_items_variant_id", "order_items", ["variant_id"])

    # --- Audit log ---
    op.create_table(
        "audit_log",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("actor_id", sa.String(255), nullable=False),
        sa.Column("action", sa.String(255), nullable=False),
        sa.Column("resource_type", sa.String(100), nullable=False),
        sa.Column("resource_id", UUID(as_uuid=True), nullable=True),
        sa.Column("details", JSONB, nullable=True),
        sa.Column("ip_address", INET, nullable=True),
        sa.Column("user_agent", sa.String(512), nullable=True),
        sa.Column("correlation_id", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_audit_log_created_at", "audit_log", ["created_at"])
    op.create_index("ix_audit_log_resource", "audit_log", ["resource_type", "resource_id"])


def downgrade() -> None:
    op.drop_table("audit_log")
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("product_variant_attributes")
    op.drop_table("product_variants")
    op.drop_table("products")
    op.drop_table("product_attribute_values")
    op.drop_table("product_attributes")

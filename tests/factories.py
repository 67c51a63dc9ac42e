import uuid
from datetime import datetime, timezone

from storefront.models.orm.attribute import Attribute, AttributeValue
from storefront.models.orm.product import Product
from storefront.models.orm.variant import ProductVariant, VariantAttribute
from storefront.services.variant_validation import combination_key

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_attribute(
    *,
    attribute_id=None,
    name="size",
    display_name=None,
    display_order=0,
    is_active=True,
    values=(),
):
    """Attribute with one AttributeValue per entry of ``values``."""
    attribute = Attribute(
        id=attribute_id or uuid.uuid4(),
        name=name,
        display_name=display_name or name.replace("_", " ").title(),
        display_order=display_order,
        is_active=is_active,
        created_at=NOW,
        updated_at=NOW,
    )
    for order, text in enumerate(values):
        make_value(attribute, text, display_order=order)
    return attribute


def make_value(attribute, value, *, value_id=None, display_order=0, is_active=True):
    return AttributeValue(
        id=value_id or uuid.uuid4(),
        attribute_id=attribute.id,
        attribute=attribute,
        value=value,
        display_order=display_order,
        is_active=is_active,
        created_at=NOW,
        updated_at=NOW,
    )


def value_named(attribute, text):
    return next(v for v in attribute.values if v.value == text)


def make_product(
    *,
    product_id=None,
    name="Water Bottle",
    slug="water-bottle",
    has_variants=True,
    is_active=True,
    price_cents=0,
    stock_quantity=None,
):
    return Product(
        id=product_id or uuid.uuid4(),
        name=name,
        slug=slug,
        description=None,
        price_cents=price_cents,
        stock_quantity=stock_quantity,
        has_variants=has_variants,
        is_active=is_active,
        created_at=NOW,
        updated_at=NOW,
    )


def make_variant(
    product,
    values=(),
    *,
    variant_id=None,
    sku=None,
    price_cents=1999,
    stock_quantity=10,
    is_active=True,
    display_order=0,
):
    variant_id = variant_id or uuid.uuid4()
    return ProductVariant(
        id=variant_id,
        product_id=product.id,
        sku=sku or f"SKU-{variant_id.hex[:8].upper()}",
        price_cents=price_cents,
        stock_quantity=stock_quantity,
        is_active=is_active,
        variant_name=None,
        color=None,
        attributes_display=" • ".join(v.value for v in values) or None,
        image_url=None,
        display_order=display_order,
        combination_key=combination_key([v.id for v in values]),
        created_at=NOW,
        updated_at=NOW,
        assignments=[
            VariantAttribute(
                id=uuid.uuid4(),
                variant_id=variant_id,
                attribute_value_id=v.id,
                attribute_id=v.attribute_id,
                value=v,
            )
            for v in values
        ],
    )

from storefront.models.orm.attribute import AttributeValue
from storefront.models.orm.product import Product
from storefront.models.orm.variant import ProductVariant, VariantAttribute
from storefront.services.variant_selector import SelectableVariant

DISPLAY_SEPARATOR = " • "


def _assignment_sort_key(assignment: VariantAttribute) -> tuple[int, str]:
    attribute = assignment.value.attribute
    return attribute.display_order, attribute.name


def sorted_assignments(variant: ProductVariant) -> list[VariantAttribute]:
    return sorted(variant.assignments, key=_assignment_sort_key)


def display_for_values(values: list[AttributeValue]) -> str:
    ordered = sorted(values, key=lambda v: (v.attribute.display_order, v.attribute.name))
    return DISPLAY_SEPARATOR.join(v.value for v in ordered)


def assignment_to_dict(assignment: VariantAttribute) -> dict:
    value = assignment.value
    attribute = value.attribute
    return {
        "id": assignment.id,
        "attribute_id": attribute.id,
        "attribute_name": attribute.name,
        "attribute_display_name": attribute.display_name,
        "attribute_value_id": value.id,
        "value": value.value,
    }


def variant_to_dict(variant: ProductVariant) -> dict:
    """Admin shape: every stored field plus nested assignment detail."""
    return {
        "id": variant.id,
        "product_id": variant.product_id,
        "sku": variant.sku,
        "price_cents": variant.price_cents,
        "stock_quantity": variant.stock_quantity,
        "is_active": variant.is_active,
        "variant_name": variant.variant_name,
        "color": variant.color,
        "attributes_display": variant.attributes_display,
        "image_url": variant.image_url,
        "display_order": variant.display_order,
        "attributes": [assignment_to_dict(a) for a in sorted_assignments(variant)],
        "created_at": variant.created_at,
        "updated_at": variant.updated_at,
    }


def shopper_variant_to_dict(variant: ProductVariant) -> dict:
    """Flattened shape consumed by the storefront variant picker."""
    attributes = [
        {
            "attribute_id": a.value.attribute.id,
            "attribute_name": a.value.attribute.name,
            "attribute_display_name": a.value.attribute.display_name,
            "value_id": a.value.id,
            "value_name": a.value.value,
        }
        for a in sorted_assignments(variant)
    ]
    return {
        "id": variant.id,
        "product_id": variant.product_id,
        "sku": variant.sku,
        "variant_name": variant.variant_name,
        "color": variant.color,
        "price_cents": variant.price_cents,
        "stock_quantity": variant.stock_quantity,
        "image_url": variant.image_url,
        "display_order": variant.display_order,
        "attributes": attributes,
        "attributes_display": DISPLAY_SEPARATOR.join(a["value_name"] for a in attributes),
    }


def to_selectable(variant: ProductVariant) -> SelectableVariant:
    options = {}
    labels = {}
    value_names = {}
    for assignment in variant.assignments:
        attribute = assignment.value.attribute
        options[attribute.name] = assignment.value.id
        labels[attribute.name] = attribute.display_name
        value_names[assignment.value.id] = assignment.value.value
    return SelectableVariant(
        id=variant.id,
        price_cents=variant.price_cents,
        stock_quantity=variant.stock_quantity,
        options=options,
        value_names=value_names,
        attribute_labels=labels,
        is_active=variant.is_active,
    )


def product_to_dict(product: Product, variants: list[ProductVariant] | None = None) -> dict:
    data = {
        "id": product.id,
        "name": product.name,
        "slug": product.slug,
        "description": product.description,
        "price_cents": product.price_cents,
        "stock_quantity": product.stock_quantity,
        "has_variants": product.has_variants,
        "is_active": product.is_active,
        "created_at": product.created_at,
        "updated_at": product.updated_at,
    }
    if variants is not None:
        data["variants"] = [variant_to_dict(v) for v in variants]
    return data

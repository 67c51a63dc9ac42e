from storefront.models.orm.attribute import Attribute, AttributeValue


def value_to_dict(value: AttributeValue) -> dict:
    return {
        "id": value.id,
        "attribute_id": value.attribute_id,
        "value": value.value,
        "display_order": value.display_order,
        "is_active": value.is_active,
        "created_at": value.created_at,
        "updated_at": value.updated_at,
    }


def attribute_to_dict(attribute: Attribute, *, include_values: bool = True) -> dict:
    values = None
    if include_values:
        ordered = sorted(attribute.values, key=lambda v: (v.display_order, v.value))
        values = [value_to_dict(v) for v in ordered]
    return {
        "id": attribute.id,
        "name": attribute.name,
        "display_name": attribute.display_name,
        "display_order": attribute.display_order,
        "is_active": attribute.is_active,
        "created_at": attribute.created_at,
        "updated_at": attribute.updated_at,
        "values": values,
    }

from storefront.models.orm.attribute import Attribute, AttributeValue
from storefront.models.orm.base import Base
from storefront.models.orm.order import Order, OrderItem
from storefront.models.orm.product import Product
from storefront.models.orm.variant import ProductVariant, VariantAttribute

__all__ = [
    "Attribute",
    "AttributeValue",
    "Base",
    "Order",
    "OrderItem",
    "Product",
    "ProductVariant",
    "VariantAttribute",
]

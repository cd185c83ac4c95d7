"""Catalogue management: adding products and toggling their availability.

There is no HTTP surface for these; they are dispatched by the seeding CLI
and by tests.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from wholesale.catalogue.product import Product
from wholesale.catalogue.stock import find_product
from wholesale.domain import wholesale


@wholesale.command(part_of="Product")
class AddProduct:
    name = String(required=True, max_length=200)
    sku = String(required=True, max_length=50)
    description = Text()
    category = String(max_length=100)
    brand = String(max_length=100)
    unit = String(max_length=20, default="piece")
    price = Float(required=True, min_value=0.0)
    original_price = Float(min_value=0.0)
    stock_quantity = Integer(default=0, min_value=0)
    min_order_quantity = Integer(default=1, min_value=1)
    max_order_quantity = Integer(default=100, min_value=1)
    is_active = Boolean(default=True)


@wholesale.command(part_of="Product")
class DeactivateProduct:
    product_id = Identifier(required=True)


@wholesale.command(part_of="Product")
class ActivateProduct:
    product_id = Identifier(required=True)


@wholesale.command_handler(part_of=Product)
class CatalogueManagementHandler:
    @handle(AddProduct)
    def add_product(self, command):
        repo = current_domain.repository_for(Product)
        if repo.find_by_sku(command.sku) is not None:
            raise ValidationError({"sku": [f"A product with SKU {command.sku} already exists"]})

        product = Product.create(
            name=command.name,
            sku=command.sku,
            price=command.price,
            stock_quantity=command.stock_quantity,
            description=command.description,
            category=command.category,
            brand=command.brand,
            unit=command.unit,
            original_price=command.original_price,
            min_order_quantity=command.min_order_quantity,
            max_order_quantity=command.max_order_quantity,
            is_active=command.is_active,
        )
        repo.add(product)
        return str(product.id)

    @handle(DeactivateProduct)
    def deactivate_product(self, command):
        product = find_product(command.product_id)
        product.deactivate()
        current_domain.repository_for(Product).add(product)

    @handle(ActivateProduct)
    def activate_product(self, command):
        product = find_product(command.product_id)
        product.activate()
        current_domain.repository_for(Product).add(product)

"""Catalog management: create products, add variants, restock, activate."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.catalog.product import Product
from storefront.catalog.stock import get_product
from storefront.domain import storefront
from storefront.errors import NotFound


@storefront.command(part_of="Product")
class CreateProduct:
    name = String(required=True, max_length=255)
    sku = String(required=True, max_length=50)
    price = Float(required=True, min_value=0.01)
    category = String(max_length=100)
    description = Text()
    stock = Integer(default=0, min_value=0)


@storefront.command(part_of="Product")
class AddVariant:
    product_id = Identifier(required=True)
    color = String(required=True, max_length=50)
    size = String(required=True, max_length=20)
    stock = Integer(default=0, min_value=0)


@storefront.command(part_of="Product")
class RestockVariant:
    product_id = Identifier(required=True)
    color = String(max_length=50)
    size = String(max_length=20)
    quantity = Integer(required=True, min_value=1)


@storefront.command(part_of="Product")
class ActivateProduct:
    product_id = Identifier(required=True)


@storefront.command(part_of="Product")
class DeactivateProduct:
    product_id = Identifier(required=True)


@storefront.command_handler(part_of=Product)
class CatalogManagementHandler:
    @handle(CreateProduct)
    def create_product(self, command):
        repo = current_domain.repository_for(Product)
        if repo._dao.query.filter(sku=command.sku).all().items:
            raise ValidationError({"sku": [f"Product with SKU {command.sku} already exists"]})

        product = Product.create(
            name=command.name,
            sku=command.sku,
            price=command.price,
            category=command.category,
            description=command.description,
            stock=command.stock,
        )
        repo.add(product)
        return str(product.id)

    @handle(AddVariant)
    def add_variant(self, command):
        product = get_product(command.product_id)
        variant = product.add_variant(command.color, command.size, command.stock)
        current_domain.repository_for(Product).add(product)
        return str(variant.id)

    @handle(RestockVariant)
    def restock_variant(self, command):
        product = get_product(command.product_id)
        if not product.restore_stock(command.quantity, command.color, command.size):
            raise NotFound("variant", f"{product.name} {command.color}/{command.size}")
        current_domain.repository_for(Product).add(product)

    @handle(ActivateProduct)
    def activate_product(self, command):
        product = get_product(command.product_id)
        product.activate()
        current_domain.repository_for(Product).add(product)

    @handle(DeactivateProduct)
    def deactivate_product(self, command):
        product = get_product(command.product_id)
        product.deactivate()
        current_domain.repository_for(Product).add(product)


def restock(product_id, quantity, color=None, size=None):
    current_domain.process(
        RestockVariant(product_id=product_id, color=color, size=size, quantity=quantity),
        asynchronous=False,
    )

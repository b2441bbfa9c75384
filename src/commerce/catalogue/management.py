"""Catalogue upkeep needed by the pipeline: register, reprice, deactivate, restock.

Full catalogue CRUD is handled elsewhere; these commands cover only the
attributes pricing and stock depend on.
"""

import json

from protean import handle
from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from commerce.catalogue.product import Product
from commerce.domain import commerce
from commerce.stock.ledger import StockLedger
from commerce.tenancy import Tenant


@commerce.command(part_of="Product")
class RegisterProduct:
    tenant = String(required=True, choices=Tenant)
    name = String(required=True, max_length=255)
    base_price = Float(required=True, min_value=0.0)
    b2b_price = Float(min_value=0.0)
    moq = Integer(default=1, min_value=1)
    stock = Integer(default=0, min_value=0)
    bulk_pricing = Text()  # JSON list of {min_qty, price}
    configuration_variants = Text()  # JSON list of {variant_type, value, price_adjustment}
    warranty_options = Text()  # JSON list of {duration, price}


@commerce.command(part_of="Product")
class UpdateProductPricing:
    tenant = String(required=True, choices=Tenant)
    product_id = Identifier(required=True)
    base_price = Float(required=True, min_value=0.0)
    b2b_price = Float(min_value=0.0)
    moq = Integer(min_value=1)
    bulk_pricing = Text()


@commerce.command(part_of="Product")
class DeactivateProduct:
    tenant = String(required=True, choices=Tenant)
    product_id = Identifier(required=True)


@commerce.command(part_of="Product")
class RestockProduct:
    tenant = String(required=True, choices=Tenant)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


def _json_list(raw):
    return json.loads(raw) if raw else []


@commerce.command_handler(part_of=Product)
class ManageProductHandler:
    @handle(RegisterProduct)
    def register_product(self, command):
        product = Product.register(
            tenant=command.tenant,
            name=command.name,
            base_price=command.base_price,
            stock=command.stock,
            b2b_price=command.b2b_price,
            moq=command.moq,
            bulk_pricing=_json_list(command.bulk_pricing),
            configuration_variants=_json_list(command.configuration_variants),
            warranty_options=_json_list(command.warranty_options),
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    @handle(UpdateProductPricing)
    def update_product_pricing(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get_for_tenant(command.tenant, command.product_id)
        product.reprice(
            base_price=command.base_price,
            b2b_price=command.b2b_price,
            moq=command.moq,
            bulk_pricing=_json_list(command.bulk_pricing) if command.bulk_pricing is not None else None,
        )
        repo.add(product)

    @handle(DeactivateProduct)
    def deactivate_product(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get_for_tenant(command.tenant, command.product_id)
        product.deactivate()
        repo.add(product)

    @handle(RestockProduct)
    def restock_product(self, command):
        StockLedger(command.tenant).receive(command.product_id, command.quantity)

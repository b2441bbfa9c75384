"""Product aggregate (CQRS): the price attributes and the stock counter.

Catalogue CRUD lives elsewhere; this aggregate holds only what the commerce
pipeline reads (prices, tiers, variants, warranties, the active flag) and the
one thing it writes: ``stock``. Stock changes only through ``deduct_stock`` and
``restock_units``, which the stock ledger drives.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Integer, String

from commerce.catalogue.events import (
    ProductDeactivated,
    ProductRegistered,
    ProductRepriced,
    StockDeducted,
    StockRestored,
)
from commerce.domain import commerce
from commerce.errors import InsufficientStock, ProductNotFound
from commerce.tenancy import Tenant


class VariantType(Enum):
    RAM = "RAM"
    STORAGE = "STORAGE"


@commerce.entity(part_of="Product")
class PriceTier:
    """Bulk pricing rule: at ``min_qty`` units or more, the unit price is ``price``."""

    min_qty = Integer(required=True, min_value=1)
    price = Float(required=True, min_value=0.0)


@commerce.entity(part_of="Product")
class ConfigurationVariant:
    variant_type = String(required=True, choices=VariantType)
    value = String(required=True, max_length=100)
    price_adjustment = Float(default=0.0)


@commerce.entity(part_of="Product")
class WarrantyOption:
    duration = String(required=True, max_length=100)
    price = Float(default=0.0, min_value=0.0)


def _tiers(bulk_pricing):
    return [PriceTier(min_qty=t["min_qty"], price=t["price"]) for t in bulk_pricing or []]


@commerce.aggregate
class Product:
    tenant = String(required=True, choices=Tenant)
    name = String(required=True, max_length=255)
    base_price = Float(required=True, min_value=0.0)
    b2b_price = Float(min_value=0.0)
    moq = Integer(default=1, min_value=1)
    bulk_pricing = HasMany(PriceTier)
    configuration_variants = HasMany(ConfigurationVariant)
    warranty_options = HasMany(WarrantyOption)
    stock = Integer(default=0, min_value=0)
    is_active = Boolean(default=True)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def stock_never_negative(self):
        if self.stock is not None and self.stock < 0:
            raise ValidationError({"stock": ["Stock cannot go below zero"]})

    @classmethod
    def register(
        cls,
        tenant,
        name,
        base_price,
        stock=0,
        b2b_price=None,
        moq=1,
        bulk_pricing=None,
        configuration_variants=None,
        warranty_options=None,
    ):
        """Create a product.

        ``bulk_pricing``, ``configuration_variants`` and ``warranty_options``
        are lists of plain dicts (``min_qty``/``price``, ``variant_type``/
        ``value``/``price_adjustment``, ``duration``/``price``).
        """
        now = datetime.now(UTC)
        product = cls(
            tenant=Tenant(tenant).value,
            name=name,
            base_price=base_price,
            b2b_price=b2b_price,
            moq=moq or 1,
            stock=stock,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        for tier in _tiers(bulk_pricing):
            product.add_bulk_pricing(tier)
        for variant in configuration_variants or []:
            product.add_configuration_variants(
                ConfigurationVariant(
                    variant_type=variant["variant_type"],
                    value=variant["value"],
                    price_adjustment=variant.get("price_adjustment", 0.0),
                )
            )
        for option in warranty_options or []:
            product.add_warranty_options(WarrantyOption(duration=option["duration"], price=option.get("price", 0.0)))

        product.raise_(
            ProductRegistered(
                product_id=str(product.id),
                tenant=product.tenant,
                name=name,
                base_price=base_price,
                stock=stock,
            )
        )
        return product

    def reprice(self, base_price, b2b_price=None, moq=None, bulk_pricing=None):
        """Replace the price attributes. Carts pick the new prices up on next read."""
        self.base_price = base_price
        self.b2b_price = b2b_price
        if moq is not None:
            self.moq = moq
        if bulk_pricing is not None:
            if self.bulk_pricing:
                self.remove_bulk_pricing(list(self.bulk_pricing))
            for tier in _tiers(bulk_pricing):
                self.add_bulk_pricing(tier)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            ProductRepriced(
                product_id=str(self.id),
                base_price=self.base_price,
                b2b_price=self.b2b_price,
                moq=self.moq,
            )
        )

    def deactivate(self):
        if not self.is_active:
            raise ValidationError({"is_active": ["Product is already inactive"]})
        self.is_active = False
        self.updated_at = datetime.now(UTC)
        self.raise_(ProductDeactivated(product_id=str(self.id)))

    # -------------------------------------------------------------------
    # Stock (driven by the stock ledger)
    # -------------------------------------------------------------------
    def deduct_stock(self, quantity, order_id=None):
        """Decrement-if-sufficient. Raises ``InsufficientStock`` and leaves stock untouched otherwise."""
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        if quantity > self.stock:
            raise InsufficientStock(self.id, available=self.stock, requested=quantity)

        self.stock -= quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            StockDeducted(
                product_id=str(self.id),
                order_id=str(order_id) if order_id else None,
                quantity=quantity,
                remaining=self.stock,
            )
        )

    def restock_units(self, quantity, reason, order_id=None):
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        self.stock += quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            StockRestored(
                product_id=str(self.id),
                order_id=str(order_id) if order_id else None,
                quantity=quantity,
                remaining=self.stock,
                reason=reason,
            )
        )


@commerce.repository(part_of=Product)
class ProductRepository:
    """Tenant-scoped product lookups."""

    def get_for_tenant(self, tenant, product_id) -> Product:
        """Return the product, or raise ``ProductNotFound`` if it is missing or belongs to another tenant."""
        try:
            product = self.get(str(product_id))
        except ObjectNotFoundError:
            raise ProductNotFound(product_id)
        if product.tenant != Tenant(tenant).value:
            raise ProductNotFound(product_id)
        return product

    def find_for_tenant(self, tenant, product_id) -> Product | None:
        try:
            return self.get_for_tenant(tenant, product_id)
        except ProductNotFound:
            return None

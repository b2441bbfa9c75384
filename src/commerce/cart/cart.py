"""Cart aggregate (CQRS): one cart per buyer per tenant.

Lines are keyed by product. Every line carries the unit price the pricing
engine produced the last time the cart was written or read, so the cart always
shows current catalogue prices until checkout freezes them into an order.
"""

from datetime import UTC, datetime

from protean import atomic_change
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String

from commerce.cart.events import (
    CartCleared,
    CartFlaggedAbandoned,
    CartLineAdded,
    CartLineRemoved,
    CartLineUpdated,
    CartRepriced,
)
from commerce.domain import commerce
from commerce.errors import InsufficientStock, ProductInactive
from commerce.pricing import engine
from commerce.pricing.engine import Selections
from commerce.tenancy import Tenant


@commerce.entity(part_of="Cart")
class CartItem:
    product_id = Identifier(required=True)
    product_name = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(default=0.0)
    total_price = Float(default=0.0)
    selected_ram = String(max_length=100)
    selected_storage = String(max_length=100)
    warranty_duration = String(max_length=100)
    warranty_price = Float(default=0.0)

    def selections(self) -> Selections:
        return Selections(ram=self.selected_ram, storage=self.selected_storage, warranty=self.warranty_duration)


@commerce.aggregate
class Cart:
    tenant = String(required=True, choices=Tenant)
    buyer_id = Identifier(required=True)
    items = HasMany(CartItem)
    total_amount = Float(default=0.0)
    admin_notified = Boolean(default=False)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def open(cls, tenant, buyer_id):
        now = datetime.now(UTC)
        return cls(
            tenant=Tenant(tenant).value,
            buyer_id=buyer_id,
            total_amount=0.0,
            admin_notified=False,
            created_at=now,
            updated_at=now,
        )

    def line_for(self, product_id) -> CartItem | None:
        return next((i for i in self.items if str(i.product_id) == str(product_id)), None)

    def _recalculate_total(self):
        self.total_amount = sum(item.total_price for item in self.items)

    def _touch(self):
        self.updated_at = datetime.now(UTC)
        # Any edit restarts the abandonment clock
        self.admin_notified = False

    @staticmethod
    def _price_line(item, product, buyer_class, selections):
        quote = engine.quote(product, item.quantity, buyer_class, selections)
        warranty = quote.warranty

        item.product_name = product.name
        item.unit_price = quote.unit_price
        item.total_price = engine.line_total(quote.unit_price, item.quantity)
        item.selected_ram = selections.ram
        item.selected_storage = selections.storage
        item.warranty_duration = warranty.label if warranty else None
        item.warranty_price = warranty.amount if warranty else 0.0

    @staticmethod
    def _ensure_purchasable(product, quantity):
        if not product.is_active:
            raise ProductInactive(product.id)
        if product.stock < quantity:
            raise InsufficientStock(product.id, available=product.stock, requested=quantity)

    # -------------------------------------------------------------------
    # Line management
    # -------------------------------------------------------------------
    def add_product(self, product, quantity, buyer_class, selections: Selections | None = None):
        """Add ``quantity`` units, merging with an existing line for the same product.

        Stock is checked against the merged quantity. New selections replace
        the line's previous ones; omitted selections keep what the line had.
        """
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        existing = self.line_for(product.id)
        requested_total = quantity + (existing.quantity if existing else 0)
        self._ensure_purchasable(product, requested_total)

        if existing:
            previous = existing.selections()
            selections = selections or Selections()
            has_config = selections.ram is not None or selections.storage is not None
            merged = Selections(
                ram=selections.ram if has_config else previous.ram,
                storage=selections.storage if has_config else previous.storage,
                warranty=selections.warranty if selections.warranty is not None else previous.warranty,
            )
            with atomic_change(self):
                existing.quantity = requested_total
                self._price_line(existing, product, buyer_class, merged)
                self._recalculate_total()
            line = existing
        else:
            line = CartItem(product_id=str(product.id), quantity=quantity)
            self._price_line(line, product, buyer_class, selections or Selections())
            with atomic_change(self):
                self.add_items(line)
                self._recalculate_total()

        self._touch()
        self.raise_(
            CartLineAdded(
                cart_id=str(self.id),
                product_id=str(product.id),
                quantity=line.quantity,
                unit_price=line.unit_price,
            )
        )
        return line

    def change_quantity(self, product, quantity, buyer_class):
        """Set a line's quantity outright. Stock is checked against the new quantity alone."""
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        line = self.line_for(product.id)
        if line is None:
            raise ValidationError({"product_id": [f"Product {product.id} is not in the cart"]})

        self._ensure_purchasable(product, quantity)

        previous_quantity = line.quantity
        with atomic_change(self):
            line.quantity = quantity
            self._price_line(line, product, buyer_class, line.selections())
            self._recalculate_total()
        self._touch()

        self.raise_(
            CartLineUpdated(
                cart_id=str(self.id),
                product_id=str(product.id),
                previous_quantity=previous_quantity,
                new_quantity=quantity,
                unit_price=line.unit_price,
            )
        )

    def remove_product(self, product_id, reason="removed"):
        line = self.line_for(product_id)
        if line is None:
            raise ValidationError({"product_id": [f"Product {product_id} is not in the cart"]})

        with atomic_change(self):
            self.remove_items(line)
            self._recalculate_total()
        self._touch()

        self.raise_(CartLineRemoved(cart_id=str(self.id), product_id=str(product_id), reason=reason))

    def clear(self):
        if self.items:
            with atomic_change(self):
                self.remove_items(list(self.items))
                self._recalculate_total()
        self.total_amount = 0.0
        self._touch()
        self.raise_(CartCleared(cart_id=str(self.id)))

    # -------------------------------------------------------------------
    # Read-time revalidation
    # -------------------------------------------------------------------
    def refresh(self, lookup, buyer_class) -> bool:
        """Drop lines whose product vanished or went inactive and reprice the rest.

        ``lookup`` maps a product id to a product, or ``None`` when the product
        no longer exists. Returns True when anything changed.
        """
        changed = False

        for line in list(self.items):
            product = lookup(line.product_id)
            if product is None or not product.is_active:
                with atomic_change(self):
                    self.remove_items(line)
                self.raise_(
                    CartLineRemoved(
                        cart_id=str(self.id),
                        product_id=str(line.product_id),
                        reason="missing" if product is None else "inactive",
                    )
                )
                changed = True
                continue

            before = (line.unit_price, line.total_price, line.warranty_price, line.product_name)
            self._price_line(line, product, buyer_class, line.selections())
            if (line.unit_price, line.total_price, line.warranty_price, line.product_name) != before:
                changed = True

        if changed:
            self._recalculate_total()
            self.updated_at = datetime.now(UTC)
            self.raise_(CartRepriced(cart_id=str(self.id), total_amount=self.total_amount))

        return changed

    def flag_abandoned(self):
        if self.admin_notified:
            raise ValidationError({"admin_notified": ["Cart was already flagged"]})

        now = datetime.now(UTC)
        self.admin_notified = True
        self.raise_(CartFlaggedAbandoned(cart_id=str(self.id), buyer_id=str(self.buyer_id), flagged_at=now))


@commerce.repository(part_of=Cart)
class CartRepository:
    def for_buyer(self, tenant, buyer_id) -> Cart | None:
        carts = self._dao.query.filter(tenant=Tenant(tenant).value, buyer_id=str(buyer_id)).all().items
        return carts[0] if carts else None

    def idle_since(self, tenant, cutoff) -> list[Cart]:
        """Non-empty carts untouched since ``cutoff`` that nobody was alerted about yet."""
        carts = self._dao.query.filter(tenant=Tenant(tenant).value, admin_notified=False).all().items
        return [c for c in carts if c.items and c.updated_at and _naive(c.updated_at) <= _naive(cutoff)]


def _naive(moment):
    """Stored datetimes may come back without tzinfo; compare everything as naive UTC."""
    if moment.tzinfo is not None:
        return moment.astimezone(UTC).replace(tzinfo=None)
    return moment

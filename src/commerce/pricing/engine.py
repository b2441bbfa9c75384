"""Unit price computation.

Pure functions over a product's price attributes. Nothing here touches a
repository, so carts, order creation and tests can all call it directly.

The order of rules matters:

1. B2B base price applies when the buyer is B2B, the product has a
   ``b2b_price`` and the quantity reaches the product's ``moq``.
2. A matching bulk tier replaces whatever step 1 chose. Tiers are absolute
   prices, not discounts.
3. RAM/STORAGE selections add the matching variant's adjustment.
4. A non-default warranty adds the matching option's price.

Selections that match nothing add nothing. Lookups return ``None`` for that
case instead of failing, and callers can see which selections were honoured
through ``PriceQuote.adjustments``.
"""

from dataclasses import dataclass, field

from commerce.tenancy import BuyerClass

DEFAULT_WARRANTY = "Default"


@dataclass(frozen=True)
class Selections:
    ram: str | None = None
    storage: str | None = None
    warranty: str | None = None

    @classmethod
    def from_dict(cls, data: dict | None) -> "Selections":
        data = data or {}
        return cls(ram=data.get("ram"), storage=data.get("storage"), warranty=data.get("warranty"))


@dataclass(frozen=True)
class Adjustment:
    """A priced selection that matched a catalogue entry."""

    kind: str
    label: str
    amount: float


@dataclass(frozen=True)
class PriceQuote:
    base_price: float
    adjustments: tuple[Adjustment, ...] = field(default_factory=tuple)

    @property
    def unit_price(self) -> float:
        # Negative variant adjustments can never push a price below zero.
        return max(0.0, self.base_price + sum(a.amount for a in self.adjustments))

    @property
    def warranty(self) -> Adjustment | None:
        return next((a for a in self.adjustments if a.kind == "WARRANTY"), None)


def _normalize(value) -> str:
    return str(value).strip().casefold()


def is_default_warranty(duration) -> bool:
    return duration is None or _normalize(duration) in ("", _normalize(DEFAULT_WARRANTY))


def base_price(product, quantity: int, buyer_class: BuyerClass) -> float:
    """Steps 1 and 2: the per-unit price before any selection is added."""
    price = product.base_price

    if (
        BuyerClass(buyer_class) == BuyerClass.B2B
        and product.b2b_price is not None
        and quantity >= (product.moq or 1)
    ):
        price = product.b2b_price

    tiers = sorted(product.bulk_pricing or [], key=lambda t: t.min_qty, reverse=True)
    tier = next((t for t in tiers if t.min_qty <= quantity), None)
    if tier is not None:
        price = tier.price

    return price


def find_config_adjustment(product, variant_type: str, value) -> Adjustment | None:
    if value is None or _normalize(value) == "":
        return None
    for variant in product.configuration_variants or []:
        if _normalize(variant.variant_type) == _normalize(variant_type) and _normalize(variant.value) == _normalize(
            value
        ):
            return Adjustment(kind=variant_type.upper(), label=variant.value, amount=variant.price_adjustment or 0.0)
    return None


def find_warranty(product, duration) -> Adjustment | None:
    if is_default_warranty(duration):
        return None
    for option in product.warranty_options or []:
        if _normalize(option.duration) == _normalize(duration):
            return Adjustment(kind="WARRANTY", label=option.duration, amount=option.price or 0.0)
    return None


def quote(product, quantity: int, buyer_class: BuyerClass, selections: Selections | None = None) -> PriceQuote:
    selections = selections or Selections()

    adjustments = [
        adjustment
        for adjustment in (
            find_config_adjustment(product, "RAM", selections.ram),
            find_config_adjustment(product, "STORAGE", selections.storage),
            find_warranty(product, selections.warranty),
        )
        if adjustment is not None
    ]

    return PriceQuote(base_price=base_price(product, quantity, buyer_class), adjustments=tuple(adjustments))


def unit_price(product, quantity: int, buyer_class: BuyerClass, selections: Selections | None = None) -> float:
    return quote(product, quantity, buyer_class, selections).unit_price


def line_total(price: float, quantity: int) -> float:
    return price * quantity

# backend/services/pricing.py
"""Checkout pricing.

Pure functions only: no settings lookups, no database access. The same
lines and coupon always give the same totals.

Policy:
    subtotal = sum(quantity * unit_price)
    discount = subtotal * coupon% (rounded to cents)
    tax      = (subtotal - discount) * tax% (rounded to cents)
    shipping = flat fee, waived when subtotal >= free-shipping threshold
    total    = (subtotal - discount) + tax + shipping
Shipping is never taxed.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Sequence

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def to_cents(value) -> Decimal:
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PricingConfig:
    tax_rate_percent: Decimal = Decimal("16")
    shipping_fee: Decimal = Decimal("150.00")
    free_shipping_threshold: Optional[Decimal] = None

    @classmethod
    def from_settings(cls, settings) -> "PricingConfig":
        threshold = settings.FREE_SHIPPING_THRESHOLD
        return cls(
            tax_rate_percent=Decimal(str(settings.TAX_RATE_PERCENT)),
            shipping_fee=to_cents(settings.SHIPPING_FEE),
            free_shipping_threshold=to_cents(threshold) if threshold is not None else None,
        )


@dataclass(frozen=True)
class PricedLine:
    product_id: int
    quantity: int
    unit_price: Decimal

    @property
    def line_subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal

    def as_dict(self):
        return {
            "subtotal": self.subtotal,
            "discount": self.discount,
            "tax": self.tax,
            "shipping": self.shipping,
            "total": self.total,
        }


def compute_subtotal(lines: Iterable[PricedLine]) -> Decimal:
    return sum((line.line_subtotal for line in lines), ZERO)


def compute_totals(
    lines: Sequence[PricedLine],
    coupon_percentage: Optional[int] = None,
    config: PricingConfig = PricingConfig(),
) -> Totals:
    for line in lines:
        if line.quantity <= 0:
            raise ValueError(f"quantity must be positive for product {line.product_id}")
        if line.unit_price < 0:
            raise ValueError(f"unit price must not be negative for product {line.product_id}")
    if coupon_percentage is not None and not 0 <= coupon_percentage <= 100:
        raise ValueError("coupon percentage must be between 0 and 100")

    subtotal = compute_subtotal(lines)

    discount = ZERO
    if coupon_percentage:
        discount = to_cents(subtotal * Decimal(coupon_percentage) / HUNDRED)

    taxable = max(subtotal - discount, ZERO)
    tax = to_cents(taxable * config.tax_rate_percent / HUNDRED)

    shipping = to_cents(config.shipping_fee)
    if config.free_shipping_threshold is not None and subtotal >= config.free_shipping_threshold:
        shipping = ZERO

    total = taxable + tax + shipping
    return Totals(
        subtotal=to_cents(subtotal),
        discount=discount,
        tax=tax,
        shipping=shipping,
        total=to_cents(total),
    )

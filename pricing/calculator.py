"""
Purpose: Money math for orders.
What it does:
- subtotal of line items
- delivery charge from distance + rider base fare
- full breakdown (subtotal, platform fee, delivery charge, discount, total)

All amounts are Decimal quantized to cents. The only rounding beyond cents is
the ceiling on the distance part of the delivery charge.

Rule: Pure functions. Coupon lookup is passed in, never fetched here.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP, InvalidOperation
from numbers import Real
from typing import Iterable, Optional, Sequence

from .coupons import Coupon
from .policy import PricingPolicy, default_pricing_policy

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


class InvalidLineItem(ValueError):
    """Raised when a price or quantity is negative, non-numeric or otherwise unusable."""
    kind = "InvalidLineItem"


@dataclass(frozen=True)
class LineItem:
    """
    One medicine on an order. unit_price is stored as Decimal.
    """
    medicine_id: str
    quantity: int
    unit_price: Decimal
    name: str = ""

    @classmethod
    def new(cls, medicine_id: str, quantity, unit_price, name: str = "") -> LineItem:
        return cls(
            medicine_id=str(medicine_id),
            quantity=_validate_quantity(quantity),
            unit_price=_to_money(unit_price, field="unit_price"),
            name=name or "",
        )

    @property
    def line_total(self) -> Decimal:
        return (self.unit_price * self.quantity).quantize(CENTS)


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    platform_fee: Decimal
    delivery_charge: Decimal
    discount: Decimal
    total: Decimal
    coupon_code: Optional[str] = None


def _to_money(value, *, field: str) -> Decimal:
    if isinstance(value, bool):
        raise InvalidLineItem(f"{field} must be a number, got {value!r}")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, Real):
        if not math.isfinite(value):
            raise InvalidLineItem(f"{field} must be finite, got {value!r}")
        # str() keeps 0.1 as 0.1 instead of its binary expansion
        try:
            amount = Decimal(str(value))
        except InvalidOperation:
            raise InvalidLineItem(f"{field} must be a decimal number, got {value!r}")
    else:
        raise InvalidLineItem(f"{field} must be a number, got {value!r}")

    if not amount.is_finite():
        raise InvalidLineItem(f"{field} must be finite, got {value!r}")
    if amount < 0:
        raise InvalidLineItem(f"{field} cannot be negative, got {value!r}")
    try:
        return amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidLineItem(f"{field} is out of range: {value!r}")


def _validate_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, (int, Decimal, Real)):
        raise InvalidLineItem(f"quantity must be a whole number, got {quantity!r}")
    if isinstance(quantity, Decimal):
        finite = quantity.is_finite()
    else:
        finite = math.isfinite(quantity)
    if not finite:
        raise InvalidLineItem(f"quantity must be finite, got {quantity!r}")
    if int(quantity) != quantity:
        raise InvalidLineItem(f"quantity must be a whole number, got {quantity!r}")
    if quantity < 1:
        raise InvalidLineItem(f"quantity must be at least 1, got {quantity!r}")
    return int(quantity)


def subtotal(line_items: Iterable[LineItem]) -> Decimal:
    """
    Sum of unit_price * quantity over all items.
    """
    total = ZERO
    for item in line_items:
        if not isinstance(item, LineItem):
            raise InvalidLineItem(f"Expected a LineItem, got {item!r}")
        # re-check: LineItem(...) can be built without going through new()
        _validate_quantity(item.quantity)
        _to_money(item.unit_price, field="unit_price")
        total += item.unit_price * item.quantity
    return total.quantize(CENTS)


def delivery_charge(
    distance_km: float,
    base_fare=None,
    policy: Optional[PricingPolicy] = None,
) -> Decimal:
    """
    ceil(distance_km * rate_per_km) + base fare.

    base_fare=None falls back to the platform-wide default.
    """
    policy = policy or default_pricing_policy()

    if isinstance(distance_km, bool) or not isinstance(distance_km, (Real, Decimal)):
        raise InvalidLineItem(f"distance_km must be a number, got {distance_km!r}")
    distance = Decimal(str(distance_km))
    if not distance.is_finite() or distance < 0:
        raise InvalidLineItem(f"distance_km must be a finite non-negative number, got {distance_km!r}")

    fare = policy.default_base_fare if base_fare is None else _to_money(base_fare, field="base_fare")
    distance_part = (distance * policy.rate_per_km).to_integral_value(rounding=ROUND_CEILING)
    return (distance_part + fare).quantize(CENTS)


def coupon_discount(amount: Decimal, coupon: Optional[Coupon], today: Optional[date] = None) -> Decimal:
    """
    Percentage discount on `amount`, zero when the coupon is missing or expired.
    """
    if coupon is None or not coupon.is_valid_on(today or date.today()):
        return ZERO
    discount = (amount * coupon.discount_percentage / Decimal("100")).quantize(CENTS, rounding=ROUND_HALF_UP)
    return min(discount, amount)


def order_total(subtotal_amount: Decimal, platform_fee: Decimal, delivery_charge_amount: Decimal, discount: Decimal = ZERO) -> Decimal:
    total = subtotal_amount + platform_fee + delivery_charge_amount - discount
    return max(total, ZERO).quantize(CENTS)


def compute_totals(
    line_items: Sequence[LineItem],
    policy: Optional[PricingPolicy] = None,
    *,
    delivery_charge_amount: Decimal = ZERO,
    coupon: Optional[Coupon] = None,
    today: Optional[date] = None,
) -> OrderTotals:
    """
    Full price breakdown for an order.

    The discount is taken on the item subtotal only; fees are never discounted.
    """
    policy = policy or default_pricing_policy()
    if not line_items:
        raise InvalidLineItem("An order needs at least one line item")

    items_total = subtotal(line_items)
    charge = _to_money(delivery_charge_amount, field="delivery_charge")
    discount = coupon_discount(items_total, coupon, today)
    fee = policy.platform_fee.quantize(CENTS)

    return OrderTotals(
        subtotal=items_total,
        platform_fee=fee,
        delivery_charge=charge,
        discount=discount,
        total=order_total(items_total, fee, charge, discount),
        coupon_code=coupon.code if discount > 0 else None,
    )

from datetime import date
from decimal import Decimal

import pytest

from pricing import (
    Coupon,
    InMemoryCouponBook,
    InvalidLineItem,
    LineItem,
    PricingPolicy,
    compute_totals,
    coupon_discount,
    delivery_charge,
    order_total,
    subtotal,
)


def test_subtotal_sums_price_times_quantity():
    items = [
        LineItem.new("paracetamol", 3, Decimal("12.50")),
        LineItem.new("ors", 2, 20),
    ]
    assert subtotal(items) == Decimal("77.50")


def test_float_prices_do_not_drift():
    items = [LineItem.new("m", 3, 0.1)]
    assert subtotal(items) == Decimal("0.30")


@pytest.mark.parametrize("quantity,price", [
    (0, Decimal("10")),
    (-1, Decimal("10")),
    (1.5, Decimal("10")),
    (True, Decimal("10")),
    (1, Decimal("-0.01")),
    (1, float("nan")),
    (1, Decimal("NaN")),
    (1, "12.50"),
])
def test_invalid_line_items(quantity, price):
    with pytest.raises(InvalidLineItem):
        LineItem.new("m", quantity, price)


def test_delivery_charge_ceils_distance_part_only():
    policy = PricingPolicy(rate_per_km=Decimal("5"), default_base_fare=Decimal("30"))
    # 2.1 km * 5 = 10.5 -> 11, plus base fare 30
    assert delivery_charge(2.1, policy=policy) == Decimal("41.00")
    # rider's own fare wins over the default
    assert delivery_charge(2.1, Decimal("25.50"), policy) == Decimal("36.50")
    assert delivery_charge(0, policy=policy) == Decimal("30.00")


def test_delivery_charge_rejects_negative_distance():
    with pytest.raises(InvalidLineItem):
        delivery_charge(-0.5)


def test_total_of_500_with_fee_10_and_charge_45_is_555():
    items = [LineItem.new("insulin", 2, Decimal("250.00"))]
    policy = PricingPolicy(platform_fee=Decimal("10"))

    totals = compute_totals(items, policy, delivery_charge_amount=Decimal("45"))

    assert totals.subtotal == Decimal("500.00")
    assert totals.total == Decimal("555.00")
    assert order_total(Decimal("500"), Decimal("10"), Decimal("45")) == Decimal("555.00")


def test_coupon_discount_applies_to_subtotal_until_expiry():
    coupon = Coupon("HEALTH10", Decimal("10"), expires_on=date(2025, 3, 31))
    items = [LineItem.new("m", 1, Decimal("200"))]

    totals = compute_totals(items, PricingPolicy(), coupon=coupon, today=date(2025, 3, 31))
    assert totals.discount == Decimal("20.00")
    assert totals.total == Decimal("190.00")
    assert totals.coupon_code == "HEALTH10"

    expired = compute_totals(items, PricingPolicy(), coupon=coupon, today=date(2025, 4, 1))
    assert expired.discount == Decimal("0.00")
    assert expired.coupon_code is None


def test_coupon_discount_never_exceeds_amount():
    coupon = Coupon("FREE", Decimal("100"))
    assert coupon_discount(Decimal("80.00"), coupon, date(2025, 1, 1)) == Decimal("80.00")


def test_coupon_book_is_case_insensitive():
    book = InMemoryCouponBook([Coupon("Welcome5", Decimal("5"))])
    assert book.get(" welcome5 ").code == "Welcome5"
    assert book.get("nope") is None
    assert book.get("") is None


def test_order_needs_items():
    with pytest.raises(InvalidLineItem):
        compute_totals([], PricingPolicy())

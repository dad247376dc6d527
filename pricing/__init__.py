"""
Pricing domain package.

Public API:
- Policy: PricingPolicy, default_pricing_policy
- Calculator: LineItem, OrderTotals, subtotal, delivery_charge, order_total, compute_totals
- Coupons: Coupon, CouponBook, InMemoryCouponBook
"""

from .policy import PricingPolicy, default_pricing_policy
from .coupons import Coupon, CouponBook, InMemoryCouponBook
from .calculator import (
    InvalidLineItem,
    LineItem,
    OrderTotals,
    compute_totals,
    coupon_discount,
    delivery_charge,
    order_total,
    subtotal,
)

__all__ = [
    "PricingPolicy",
    "default_pricing_policy",
    "Coupon",
    "CouponBook",
    "InMemoryCouponBook",
    "InvalidLineItem",
    "LineItem",
    "OrderTotals",
    "compute_totals",
    "coupon_discount",
    "delivery_charge",
    "order_total",
    "subtotal",
]

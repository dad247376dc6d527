"""
Purpose: Coupon model and lookup.
What it does:
- Coupon (code, percentage, expiry date)
- CouponBook protocol so the calculator never talks to storage directly
- InMemoryCouponBook for tests and the simulation script
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, Optional, Protocol


@dataclass(frozen=True)
class Coupon:
    code: str
    discount_percentage: Decimal
    expires_on: Optional[date] = None

    def is_valid_on(self, day: date) -> bool:
        """A coupon is usable up to and including its expiry date."""
        if self.discount_percentage <= 0 or self.discount_percentage > 100:
            return False
        return self.expires_on is None or day <= self.expires_on


class CouponBook(Protocol):
    def get(self, code: str) -> Optional[Coupon]:
        ...


class InMemoryCouponBook:
    """
    Dict-backed coupon lookup. Codes are matched case-insensitively.
    """

    def __init__(self, coupons: Iterable[Coupon] = ()):
        self._coupons: Dict[str, Coupon] = {coupon.code.upper(): coupon for coupon in coupons}

    def add(self, coupon: Coupon) -> None:
        self._coupons[coupon.code.upper()] = coupon

    def get(self, code: str) -> Optional[Coupon]:
        if not code:
            return None
        return self._coupons.get(code.strip().upper())

"""
Purpose: Central configuration for pricing (single source of truth).
What it does:

Stores all tunable money knobs:

RATE_PER_KM = 5
DEFAULT_BASE_FARE = 30
PLATFORM_FEE = 10

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class PricingPolicy:
    """
    Central configuration for delivery charges and order totals.

    Notes:
    - delivery charge = ceil(distance_km * rate_per_km) + rider base fare
    - default_base_fare applies to riders that do not carry their own fare
    - platform_fee is a flat amount added to every order
    """

    # --- Distance component ---
    # Currency units charged per kilometer between rider and customer.
    rate_per_km: Decimal = Decimal("5")

    # --- Rider fare ---
    # Platform-wide base fare, overridable per rider.
    default_base_fare: Decimal = Decimal("30")

    # --- Platform ---
    platform_fee: Decimal = Decimal("10")

    def validate(self) -> None:
        """
        Basic sanity checks. Call once at startup if you want.
        """
        if self.rate_per_km < 0:
            raise ValueError("rate_per_km must be >= 0")

        if self.default_base_fare < 0:
            raise ValueError("default_base_fare must be >= 0")

        if self.platform_fee < 0:
            raise ValueError("platform_fee must be >= 0")


def default_pricing_policy() -> PricingPolicy:
    """
    Convenience factory for the default policy.
    """
    p = PricingPolicy()
    p.validate()
    return p

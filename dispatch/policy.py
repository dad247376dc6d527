"""
Purpose: Central configuration for order dispatch and retries.
What it does:

Stores all tunable thresholds/caps for assigning pharmacies and riders:

RETRY_DELAY_SECONDS = 30
RETRY_BACKOFF_MULTIPLIER = 2.0
MAX_RETRY_DELAY_SECONDS = 300
MAX_ASSIGNMENT_ATTEMPTS = 3
MAX_VENDOR_ATTEMPTS = 3
REJECTION_RETRY_ATTEMPTS = 1
PICKUP_PROXIMITY_M = 400

Rule: No logic here beyond the backoff formula, just parameters so you can
tune without rewriting code.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DispatchPolicy:
    """
    Central configuration for the order lifecycle manager.
    """

    # --- Retry timing ---
    # Delay before the first retry after a rejection or an empty candidate pool.
    retry_delay_seconds: int = 30

    # Each further attempt waits multiplier times longer, up to the cap.
    retry_backoff_multiplier: float = 2.0
    max_retry_delay_seconds: int = 300

    # --- Retry budgets ---
    # Rider search when nobody was eligible (RiderAssignmentPending).
    max_assignment_attempts: int = 3

    # Pharmacy search after no pharmacy or a vendor rejection.
    max_vendor_attempts: int = 3

    # Reassignment attempts after a rider rejects.
    rejection_retry_attempts: int = 1

    # --- Pickup ---
    # Rider must be this close to the pharmacy when uploading the pickup proof.
    pickup_proximity_m: float = 400.0
    require_pickup_proximity: bool = True

    # --- ETA ---
    average_speed_kmh: float = 30.0

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        if self.retry_delay_seconds < 0:
            raise ValueError("retry_delay_seconds must be >= 0")

        if self.retry_backoff_multiplier < 1:
            raise ValueError("retry_backoff_multiplier must be >= 1")

        if self.max_retry_delay_seconds < self.retry_delay_seconds:
            raise ValueError("max_retry_delay_seconds must be >= retry_delay_seconds")

        if self.max_assignment_attempts < 1 or self.max_vendor_attempts < 1:
            raise ValueError("retry budgets must be >= 1")

        if self.rejection_retry_attempts < 1:
            raise ValueError("rejection_retry_attempts must be >= 1")

        if self.pickup_proximity_m <= 0:
            raise ValueError("pickup_proximity_m must be > 0")

        if self.average_speed_kmh <= 0:
            raise ValueError("average_speed_kmh must be > 0")

    def retry_delay_for(self, attempt: int) -> float:
        """
        Seconds to wait before retry number `attempt` (1-based).
        """
        attempt = max(1, attempt)
        delay = self.retry_delay_seconds * (self.retry_backoff_multiplier ** (attempt - 1))
        return min(delay, self.max_retry_delay_seconds)


def default_dispatch_policy() -> DispatchPolicy:
    """
    Convenience factory for the default policy.
    """
    p = DispatchPolicy()
    p.validate()
    return p

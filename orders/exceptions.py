"""
Purpose: Error taxonomy shared by the dispatch core.
What it does:
Every error carries a stable `kind` string so the request boundary can
translate it to a client-visible failure without inspecting messages.

InvalidCoordinate (routing.distance) and InvalidLineItem (pricing.calculator)
belong to the same taxonomy but live next to the pure calculators that raise them.
"""


class DispatchError(Exception):
    """Base class for lifecycle, wallet and directory failures."""
    kind = "DispatchError"


class NotFound(DispatchError):
    """Raised when an order, rider, pharmacy or request id does not resolve."""
    kind = "NotFound"


class InvalidState(DispatchError):
    """Raised when an operation is not valid for the entity's current lifecycle state."""
    kind = "InvalidState"


class NotAssigned(InvalidState):
    """Raised when a rider or pharmacy acts on an order that is not assigned to them."""
    pass


class ProofMissing(InvalidState):
    """Raised when a pickup or delivery is marked before its proof image is attached."""
    pass


class TooFarFromPickup(InvalidState):
    """Raised when a pickup proof is uploaded away from the pharmacy."""

    def __init__(self, message: str, distance_m: float, radius_m: float):
        super().__init__(message)
        self.distance_m = distance_m
        self.radius_m = radius_m


class InsufficientFunds(DispatchError):
    """Raised when a wallet debit exceeds the current balance."""
    kind = "InsufficientFunds"


class NoCandidateAvailable(DispatchError):
    """Raised when the selector finds no eligible rider or pharmacy."""
    kind = "NoCandidateAvailable"


class ConcurrentModification(DispatchError):
    """Raised when a compare-and-swap on an entity's version loses a race."""
    kind = "ConcurrentModification"

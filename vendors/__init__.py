from .models import Pharmacy, PharmacyStatus
from .directory import InMemoryPharmacyDirectory, PharmacyDirectory

__all__ = [
    "Pharmacy",
    "PharmacyStatus",
    "InMemoryPharmacyDirectory",
    "PharmacyDirectory",
]

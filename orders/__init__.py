"""
Purpose: Package entry + stable exports.
What it does:

Marks orders as a Python package and re-exports the public API so other
modules can do:

from orders import Order, OrderStatus, TimelineEntry

Should not contain business logic.

Orders domain package.

Public API:
- Domain models: Order, TimelineEntry, ProofAttachment, Address, CodCollection
- Enums: OrderStatus, TimelineReason, PaymentMethod, PaymentStatus, PlanType, CodPaymentMode
- Vocabulary mapping: EXTERNAL_STATUS, RIDER_STATUS
- Error taxonomy: see orders.exceptions
"""
from .models import (
    EXTERNAL_STATUS,
    RIDER_STATUS,
    TERMINAL_STATUSES,
    Address,
    CodCollection,
    CodPaymentMode,
    InvalidCodCollection,
    Order,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    PlanType,
    ProofAttachment,
    TimelineEntry,
    TimelineReason,
)

__all__ = ["Order",
           "TimelineEntry",
             "ProofAttachment",
               "Address",
               "CodCollection",
               "OrderStatus",
               "TimelineReason",
               "PaymentMethod",
               "PaymentStatus",
               "PlanType",
               "CodPaymentMode",
               "InvalidCodCollection",
               "EXTERNAL_STATUS",
               "RIDER_STATUS",
               "TERMINAL_STATUSES",
               ]

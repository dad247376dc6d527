"""
Purpose: The rider wallet ledger.
What it does:
Every balance change goes through credit() or debit(), which move the balance
and append the matching transaction in the same call. Callers provide the
atomic unit (a lock in memory, a database transaction in Django).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

from orders.exceptions import InsufficientFunds

from .models import Rider, TransactionType, WalletTransaction

CENTS = Decimal("0.01")


class InvalidAmount(ValueError):
    """Raised when a wallet amount is zero, negative or not a number."""
    kind = "InvalidAmount"


def normalize_amount(amount) -> Decimal:
    if isinstance(amount, bool):
        raise InvalidAmount(f"Amount must be a number, got {amount!r}")
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise InvalidAmount(f"Amount must be a number, got {amount!r}")
    if not value.is_finite() or value <= 0:
        raise InvalidAmount(f"Amount must be a positive number, got {amount!r}")
    return value.quantize(CENTS)


def ledger_balance(transactions: Iterable[WalletTransaction]) -> Decimal:
    """Signed sum of the ledger: credits minus debits."""
    return sum((t.signed_amount for t in transactions), Decimal("0.00")).quantize(CENTS)


def credit(
    rider: Rider,
    amount,
    *,
    now: datetime,
    reason: str = "",
    order_id: Optional[str] = None,
) -> WalletTransaction:
    value = normalize_amount(amount)
    transaction = WalletTransaction(
        type=TransactionType.CREDIT,
        amount=value,
        created_at=now,
        reason=reason,
        order_id=order_id,
    )
    rider.wallet_balance = (rider.wallet_balance + value).quantize(CENTS)
    rider.transactions.append(transaction)
    return transaction


def debit(
    rider: Rider,
    amount,
    *,
    now: datetime,
    reason: str = "",
    reference: Optional[str] = None,
) -> WalletTransaction:
    value = normalize_amount(amount)
    if rider.wallet_balance < value:
        raise InsufficientFunds(
            f"Rider {rider.id} has {rider.wallet_balance} in wallet, cannot debit {value}"
        )
    transaction = WalletTransaction(
        type=TransactionType.DEBIT,
        amount=value,
        created_at=now,
        reason=reason,
        reference=reference,
    )
    rider.wallet_balance = (rider.wallet_balance - value).quantize(CENTS)
    rider.transactions.append(transaction)
    return transaction

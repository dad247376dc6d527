"""
Riders domain package.

Public API:
- Domain models: Rider, RiderStatus, LicenseStatus, WalletTransaction, BankAccount
- Wallet ledger: credit, debit, ledger_balance
- Directory: RiderDirectory, InMemoryRiderDirectory
- Payouts: WithdrawalDesk, WithdrawalRequest, WithdrawalStatus
"""

from .models import BankAccount, LicenseStatus, Rider, RiderStatus, TransactionType, WalletTransaction
from .wallet import InvalidAmount, credit, debit, ledger_balance
from .directory import InMemoryRiderDirectory, RiderDirectory
from .withdrawals import InMemoryWithdrawalStore, WithdrawalDesk, WithdrawalRequest, WithdrawalStatus

__all__ = [
    "BankAccount",
    "LicenseStatus",
    "Rider",
    "RiderStatus",
    "TransactionType",
    "WalletTransaction",
    "InvalidAmount",
    "credit",
    "debit",
    "ledger_balance",
    "InMemoryRiderDirectory",
    "RiderDirectory",
    "InMemoryWithdrawalStore",
    "WithdrawalDesk",
    "WithdrawalRequest",
    "WithdrawalStatus",
]

"""Domain models for the ledger kernel."""

from ledger_kernel.models.account import Account, AccountStatus, AccountType
from ledger_kernel.models.currency import Currency
from ledger_kernel.models.exchange_rate import ExchangeRate
from ledger_kernel.models.journal import (
    Journal,
    JournalStatus,
    Transaction,
    TransactionType,
)
from ledger_kernel.models.workplace import Workplace

__all__ = [
    "Account",
    "AccountStatus",
    "AccountType",
    "Currency",
    "ExchangeRate",
    "Journal",
    "JournalStatus",
    "Transaction",
    "TransactionType",
    "Workplace",
]

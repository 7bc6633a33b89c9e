"""Services for the ledger kernel (write side)."""

from ledger_kernel.services.account_service import AccountService
from ledger_kernel.services.currency_service import CurrencyService
from ledger_kernel.services.exchange_rate_service import ExchangeRateService
from ledger_kernel.services.journal_service import JournalService
from ledger_kernel.services.sequence_service import SequenceService
from ledger_kernel.services.workplace_service import WorkplaceService

__all__ = [
    "AccountService",
    "CurrencyService",
    "ExchangeRateService",
    "JournalService",
    "SequenceService",
    "WorkplaceService",
]

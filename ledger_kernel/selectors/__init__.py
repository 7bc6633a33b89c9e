"""Selectors for the ledger kernel (read side)."""

from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.selectors.report_selector import ReportSelector
from ledger_kernel.selectors.transaction_selector import TransactionSelector

__all__ = [
    "JournalSelector",
    "LedgerSelector",
    "ReportSelector",
    "TransactionSelector",
]

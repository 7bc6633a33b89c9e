"""
DTOs -- immutable records crossing the kernel boundary.

Responsibility:
    Services and selectors never hand ORM instances to callers.  Every value
    that leaves the kernel is one of these frozen dataclasses, built from the
    ORM row inside the unit of work that loaded it.

Architecture position:
    Kernel > Domain.  Imports model enums only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from ledger_kernel.exceptions import LedgerIntegrityError
from ledger_kernel.models.account import AccountStatus, AccountType
from ledger_kernel.models.journal import JournalStatus, TransactionType


# =============================================================================
# Reference data
# =============================================================================


@dataclass(frozen=True)
class CurrencyRecord:
    code: str
    name: str
    precision: int
    symbol: str | None = None

    @classmethod
    def from_model(cls, row: Any) -> CurrencyRecord:
        return cls(code=row.code, name=row.name, precision=row.precision, symbol=row.symbol)


@dataclass(frozen=True)
class ExchangeRateRecord:
    id: UUID
    from_currency: str
    to_currency: str
    rate: Decimal
    date_effective: date
    seq: int

    @classmethod
    def from_model(cls, row: Any) -> ExchangeRateRecord:
        return cls(
            id=row.id,
            from_currency=row.from_currency,
            to_currency=row.to_currency,
            rate=row.rate,
            date_effective=row.date_effective,
            seq=row.seq,
        )


@dataclass(frozen=True)
class WorkplaceRecord:
    id: UUID
    name: str
    default_currency_code: str
    created_by_id: UUID
    created_at: datetime | None = None

    @classmethod
    def from_model(cls, row: Any) -> WorkplaceRecord:
        return cls(
            id=row.id,
            name=row.name,
            default_currency_code=row.default_currency_code,
            created_by_id=row.created_by_id,
            created_at=row.created_at,
        )


# =============================================================================
# Accounts
# =============================================================================


@dataclass(frozen=True)
class AccountRecord:
    id: UUID
    workplace_id: UUID
    name: str
    account_type: AccountType
    currency_code: str
    status: AccountStatus
    version: int
    created_by_id: UUID
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    updated_by_id: UUID | None = None

    @property
    def is_active(self) -> bool:
        return self.status is AccountStatus.ACTIVE

    @classmethod
    def from_model(cls, row: Any) -> AccountRecord:
        return cls(
            id=row.id,
            workplace_id=row.workplace_id,
            name=row.name,
            account_type=AccountType(row.account_type),
            currency_code=row.currency_code,
            status=AccountStatus(row.status),
            version=row.version,
            created_by_id=row.created_by_id,
            description=row.description,
            created_at=row.created_at,
            updated_at=row.updated_at,
            updated_by_id=row.updated_by_id,
        )


# =============================================================================
# Journals
# =============================================================================


@dataclass(frozen=True)
class EntryRequest:
    """
    One requested debit or credit.

    ``amount`` is in the account's own currency.  Strings and ints are
    accepted and parsed exactly; floats are rejected at posting time.
    """

    account_id: UUID
    amount: Decimal | int | str
    transaction_type: TransactionType | str
    notes: str | None = None

    @classmethod
    def debit(cls, account_id: UUID, amount: Decimal | int | str, notes: str | None = None) -> EntryRequest:
        return cls(account_id, amount, TransactionType.DEBIT, notes)

    @classmethod
    def credit(cls, account_id: UUID, amount: Decimal | int | str, notes: str | None = None) -> EntryRequest:
        return cls(account_id, amount, TransactionType.CREDIT, notes)


@dataclass(frozen=True)
class TransactionRecord:
    id: UUID
    journal_id: UUID
    account_id: UUID
    amount: Decimal
    transaction_type: TransactionType
    currency_code: str
    journal_date: date
    seq: int
    created_by_id: UUID
    original_amount: Decimal | None = None
    original_currency_code: str | None = None
    exchange_rate_id: UUID | None = None
    notes: str | None = None
    created_at: datetime | None = None

    @property
    def native_amount(self) -> Decimal:
        return self.original_amount if self.original_amount is not None else self.amount

    @property
    def is_converted(self) -> bool:
        return self.original_currency_code is not None

    @classmethod
    def from_model(cls, row: Any, journal_date: date) -> TransactionRecord:
        return cls(
            id=row.id,
            journal_id=row.journal_id,
            account_id=row.account_id,
            amount=row.amount,
            transaction_type=TransactionType(row.transaction_type),
            currency_code=row.currency_code,
            journal_date=journal_date,
            seq=row.seq,
            created_by_id=row.created_by_id,
            original_amount=row.original_amount,
            original_currency_code=row.original_currency_code,
            exchange_rate_id=row.exchange_rate_id,
            notes=row.notes,
            created_at=row.created_at,
        )


@dataclass(frozen=True)
class JournalRecord:
    id: UUID
    workplace_id: UUID
    journal_date: date
    description: str
    currency_code: str
    amount: Decimal
    status: JournalStatus
    seq: int
    created_by_id: UUID
    reversal_of_id: UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    updated_by_id: UUID | None = None
    transactions: tuple[TransactionRecord, ...] = ()

    @property
    def is_reversed(self) -> bool:
        return self.status is JournalStatus.REVERSED

    @property
    def is_reversal(self) -> bool:
        return self.reversal_of_id is not None

    @property
    def total_debits(self) -> Decimal:
        return sum(
            (t.amount for t in self.transactions if t.transaction_type is TransactionType.DEBIT),
            Decimal("0"),
        )

    @property
    def total_credits(self) -> Decimal:
        return sum(
            (t.amount for t in self.transactions if t.transaction_type is TransactionType.CREDIT),
            Decimal("0"),
        )

    @classmethod
    def from_model(cls, row: Any, include_transactions: bool = True) -> JournalRecord:
        transactions: tuple[TransactionRecord, ...] = ()
        if include_transactions:
            transactions = tuple(
                TransactionRecord.from_model(t, row.journal_date) for t in row.transactions
            )
        return cls(
            id=row.id,
            workplace_id=row.workplace_id,
            journal_date=row.journal_date,
            description=row.description,
            currency_code=row.currency_code,
            amount=row.amount,
            status=JournalStatus(row.status),
            seq=row.seq,
            created_by_id=row.created_by_id,
            reversal_of_id=row.reversal_of_id,
            created_at=row.created_at,
            updated_at=row.updated_at,
            updated_by_id=row.updated_by_id,
            transactions=transactions,
        )


# =============================================================================
# Listings
# =============================================================================


@dataclass(frozen=True)
class TransactionFilter:
    """Filter and ordering for an account's transaction listing."""

    from_date: date | None = None
    to_date: date | None = None
    ascending: bool = False
    limit: int | None = None
    cursor: str | None = None


@dataclass(frozen=True)
class TransactionPage:
    items: tuple[TransactionRecord, ...]
    next_cursor: str | None = None

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None


@dataclass(frozen=True)
class JournalPage:
    items: tuple[JournalRecord, ...]
    next_cursor: str | None = None

    @property
    def has_more(self) -> bool:
        return self.next_cursor is not None


# =============================================================================
# Reports
# =============================================================================


@dataclass(frozen=True)
class TrialBalanceRow:
    account_id: UUID
    account_name: str
    account_type: AccountType
    currency_code: str
    debit_total: Decimal
    credit_total: Decimal
    net_balance: Decimal


@dataclass(frozen=True)
class TrialBalanceReport:
    """
    Trial balance as of a date.

    One row per (account, journal currency).  Within each currency the
    debit totals equal the credit totals for a sound ledger.
    """

    workplace_id: UUID
    as_of_date: date
    rows: tuple[TrialBalanceRow, ...]
    generated_at: datetime | None = None

    def totals_by_currency(self) -> dict[str, tuple[Decimal, Decimal]]:
        totals: dict[str, tuple[Decimal, Decimal]] = {}
        for row in self.rows:
            debits, credits = totals.get(row.currency_code, (Decimal("0"), Decimal("0")))
            totals[row.currency_code] = (debits + row.debit_total, credits + row.credit_total)
        return totals

    @property
    def is_balanced(self) -> bool:
        return all(d == c for d, c in self.totals_by_currency().values())

    def __iter__(self):
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)


@dataclass(frozen=True)
class ReportLine:
    account_id: UUID
    account_name: str
    account_type: AccountType
    amount: Decimal


@dataclass(frozen=True)
class ProfitAndLossReport:
    workplace_id: UUID
    from_date: date
    to_date: date
    currency_code: str
    revenue_lines: tuple[ReportLine, ...]
    expense_lines: tuple[ReportLine, ...]
    total_revenue: Decimal
    total_expenses: Decimal
    net_income: Decimal


@dataclass(frozen=True)
class BalanceSheetReport:
    """
    Balance sheet as of a date.

    ``total_equity`` includes ``retained_earnings``: income minus expenses
    from inception to ``as_of_date`` that has not been closed into an equity
    account.
    """

    workplace_id: UUID
    as_of_date: date
    currency_code: str
    asset_lines: tuple[ReportLine, ...]
    liability_lines: tuple[ReportLine, ...]
    equity_lines: tuple[ReportLine, ...]
    total_assets: Decimal
    total_liabilities: Decimal
    retained_earnings: Decimal
    total_equity: Decimal
    balanced: bool = field(default=False)

    @property
    def imbalance(self) -> Decimal:
        return self.total_assets - (self.total_liabilities + self.total_equity)

    def raise_for_imbalance(self) -> None:
        if not self.balanced:
            raise LedgerIntegrityError(
                report="balance_sheet",
                expected=str(self.total_assets),
                actual=str(self.total_liabilities + self.total_equity),
            )

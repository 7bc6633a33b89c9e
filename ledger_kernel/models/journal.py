"""
Module: ledger_kernel.models.journal
Responsibility: ORM persistence for journals and their transactions -- the
    authoritative financial record.  Balances and reports are always derived
    from Transaction rows; nothing is stored pre-aggregated.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Balance: sum(DEBIT amounts) == sum(CREDIT amounts) per journal, in the
      journal currency (enforced by JournalService before the flush).
    - A journal has at least two transactions, all in the journal currency.
    - Transactions are never updated or deleted.  A journal changes only by
      the POSTED -> REVERSED status move (db/immutability.py).
    - original_amount and original_currency_code are either both NULL or
      both set, together with exchange_rate_id.
    - seq is a strictly monotonic posting/creation sequence that gives a
      total order for stable pagination.

Failure modes:
    - ImmutabilityViolationError on any UPDATE/DELETE of a Transaction, or
      on any Journal change other than marking it REVERSED.
    - IntegrityError on a duplicate seq or a second reversal of one journal.

Audit relevance:
    A reversed journal keeps its rows untouched; the reversing journal points
    back at it through reversal_of_id, so the full history stays queryable.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import ExactDecimal, TrackedBase, UUIDString


class JournalStatus(str, Enum):
    """Journal lifecycle states."""

    POSTED = "posted"
    REVERSED = "reversed"


class TransactionType(str, Enum):
    """Debit or credit side of a transaction."""

    DEBIT = "debit"
    CREDIT = "credit"

    def flipped(self) -> TransactionType:
        return TransactionType.CREDIT if self is TransactionType.DEBIT else TransactionType.DEBIT


class Journal(TrackedBase):
    """
    A balanced group of transactions posted atomically.

    Contract:
        Created POSTED.  May move to REVERSED exactly once, in the same unit
        of work that creates its reversing journal.

    Guarantees:
        - amount equals the total of the debit side.
        - reversal_of_id is set only on reversing journals and is unique, so a
          journal can have at most one reversal.
    """

    __tablename__ = "journals"

    __table_args__ = (
        Index("idx_journal_workplace_date", "workplace_id", "journal_date"),
        Index("idx_journal_status", "status"),
        Index("idx_journal_reversal_of", "reversal_of_id", unique=True),
    )

    workplace_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("workplaces.id"),
        nullable=False,
    )

    journal_date: Mapped[date] = mapped_column(Date, nullable=False)

    description: Mapped[str] = mapped_column(String(4000), nullable=False)

    currency_code: Mapped[str] = mapped_column(
        String(3),
        ForeignKey("currencies.code"),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(ExactDecimal(38, 18), nullable=False)

    status: Mapped[JournalStatus] = mapped_column(
        String(20),
        nullable=False,
        default=JournalStatus.POSTED.value,
    )

    reversal_of_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("journals.id"),
        nullable=True,
    )

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    transactions: Mapped[list[Transaction]] = relationship(
        back_populates="journal",
        order_by="Transaction.seq",
    )

    reversal_of: Mapped[Journal | None] = relationship(
        remote_side="Journal.id",
        foreign_keys=[reversal_of_id],
    )

    def __repr__(self) -> str:
        return f"<Journal {self.id} {self.journal_date} [{self.status}]>"

    @property
    def is_reversed(self) -> bool:
        return self.status == JournalStatus.REVERSED

    @property
    def is_reversal(self) -> bool:
        return self.reversal_of_id is not None


class Transaction(TrackedBase):
    """
    A single debit or credit against one account.

    Contract:
        ``amount`` is strictly positive and expressed in the journal
        currency.  When the account's native currency differs, the native
        amount is kept in ``original_amount`` / ``original_currency_code``
        and the rate used in ``exchange_rate_id``.
    """

    __tablename__ = "transactions"

    __table_args__ = (
        Index("idx_transaction_journal", "journal_id"),
        Index("idx_transaction_account", "account_id"),
        CheckConstraint(
            "(original_amount IS NULL AND original_currency_code IS NULL) OR "
            "(original_amount IS NOT NULL AND original_currency_code IS NOT NULL)",
            name="ck_transaction_original_pair",
        ),
    )

    journal_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journals.id"),
        nullable=False,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(ExactDecimal(38, 18), nullable=False)

    transaction_type: Mapped[TransactionType] = mapped_column(String(10), nullable=False)

    currency_code: Mapped[str] = mapped_column(
        String(3),
        ForeignKey("currencies.code"),
        nullable=False,
    )

    original_amount: Mapped[Decimal | None] = mapped_column(
        ExactDecimal(38, 18),
        nullable=True,
    )

    original_currency_code: Mapped[str | None] = mapped_column(
        String(3),
        ForeignKey("currencies.code"),
        nullable=True,
    )

    exchange_rate_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("exchange_rates.id"),
        nullable=True,
    )

    notes: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)

    journal: Mapped[Journal] = relationship(back_populates="transactions")

    def __repr__(self) -> str:
        return f"<Transaction {self.transaction_type} {self.amount} {self.currency_code}>"

    @property
    def native_amount(self) -> Decimal:
        """Amount in the account's own currency."""
        return self.original_amount if self.original_amount is not None else self.amount

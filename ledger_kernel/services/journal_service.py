"""
JournalService -- balanced posting and reversal.

Responsibility:
    Validates a requested journal, converts every entry into the journal
    currency, checks the balance, and writes the journal with its
    transactions.  Reverses a posted journal by marking it REVERSED and
    posting its mirror image, both inside the caller's unit of work.

Architecture position:
    Kernel > Services -- imperative shell.  Consumes WorkplaceService,
    AccountService, CurrencyService, ExchangeRateService and SequenceService.

Invariants enforced:
    - A journal has at least two entries over at least two different
      accounts, and a non-blank description.
    - Every amount is a strictly positive Decimal with no more decimal
      places than its account's currency allows.
    - Conversion uses the latest rate effective on or before the journal
      date and rounds half-to-even to the journal currency precision.
    - sum(debits) == sum(credits) exactly in the journal currency.  A
      difference rejects the journal; no residual is redistributed.
    - Every account belongs to the workplace and is ACTIVE.
    - POSTED -> REVERSED happens once, together with the reversing journal.
      A reversing journal cannot itself be reversed.

Failure modes:
    - TooFewEntriesError, TooFewAccountsError, InvalidInputError,
      InvalidAmountError, AmountPrecisionError, InvalidCurrencyError,
      ExchangeRateUnavailableError, UnbalancedJournalError,
      AccountInactiveError (all VALIDATION).
    - JournalAlreadyReversedError, ReversalNotReversibleError (VALIDATION).
    - WorkplaceNotFoundError, AccountNotFoundError, JournalNotFoundError
      (NOT_FOUND).
    Nothing is flushed before validation completes, so a rejected journal
    leaves no rows behind even before the unit of work rolls back.

Audit relevance:
    Transactions keep the original amount, original currency and the exact
    exchange-rate row used, so any converted amount can be recomputed.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.db.types import (
    decimal_places,
    exact_product,
    exact_sum,
    round_money,
    to_decimal,
)
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import EntryRequest, JournalRecord
from ledger_kernel.domain.lifecycle import check_journal_transition
from ledger_kernel.exceptions import (
    AmountPrecisionError,
    InvalidAmountError,
    InvalidInputError,
    JournalAlreadyReversedError,
    JournalNotFoundError,
    ReversalNotReversibleError,
    TooFewAccountsError,
    TooFewEntriesError,
    UnbalancedJournalError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.currency import Currency
from ledger_kernel.models.journal import Journal, JournalStatus, Transaction, TransactionType
from ledger_kernel.services.account_service import AccountService
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.currency_service import CurrencyService
from ledger_kernel.services.exchange_rate_service import ExchangeRateService
from ledger_kernel.services.sequence_service import SequenceService
from ledger_kernel.services.workplace_service import WorkplaceService

logger = get_logger("services.journal")

MIN_ENTRIES = 2
MIN_ACCOUNTS = 2
REVERSAL_PREFIX = "Reversal of Journal: "


@dataclass(frozen=True)
class _PreparedLine:
    """One entry after validation and conversion, ready to persist."""

    account_id: UUID
    transaction_type: TransactionType
    amount: Decimal
    original_amount: Decimal | None
    original_currency_code: str | None
    exchange_rate_id: UUID | None
    notes: str | None


class JournalService(BaseService[Journal]):
    """
    Write side of the journal engine.

    Contract:
        ``post_journal`` and ``reverse_journal`` flush; the unit of work
        commits.

    Non-goals:
        - Reads.  Journals and transaction listings come from
          selectors/journal_selector.py and selectors/transaction_selector.py.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
    ):
        super().__init__(session, clock)
        self.currencies = CurrencyService(session, self.clock)
        self.sequences = SequenceService(session)
        self.rates = ExchangeRateService(session, self.clock, self.currencies, self.sequences)
        self.workplaces = WorkplaceService(session, self.clock)
        self.accounts = AccountService(session, self.clock)

    # -------------------------------------------------------------------------
    # Posting
    # -------------------------------------------------------------------------

    def post_journal(
        self,
        workplace_id: UUID,
        journal_date: date,
        description: str,
        currency_code: str,
        entries: Sequence[EntryRequest],
        creator_id: UUID,
    ) -> JournalRecord:
        entries = list(entries)
        requested = self._validate_request(description, entries)

        self.workplaces.require(workplace_id)
        base = self.currencies.require_for_posting(currency_code)
        accounts = self.accounts.require_postable(
            workplace_id, [account_id for account_id, _, _, _ in requested]
        )

        lines = [
            self._prepare_line(accounts[account_id], amount, side, notes, base, journal_date)
            for account_id, amount, side, notes in requested
        ]
        total = self._check_balance(lines, base.code)

        journal = self._write(
            workplace_id=workplace_id,
            journal_date=journal_date,
            description=description.strip(),
            currency_code=base.code,
            amount=total,
            lines=lines,
            actor_id=creator_id,
        )

        logger.info(
            "journal_posted",
            extra={
                "journal_id": str(journal.id),
                "journal_seq": journal.seq,
                "journal_date": journal_date,
                "currency": base.code,
                "amount": total,
                "entry_count": len(lines),
                "converted_count": sum(1 for line in lines if line.exchange_rate_id),
            },
        )
        return JournalRecord.from_model(journal)

    def _validate_request(
        self,
        description: str,
        entries: list[EntryRequest],
    ) -> list[tuple[UUID, Decimal, TransactionType, str | None]]:
        if len(entries) < MIN_ENTRIES:
            raise TooFewEntriesError(len(entries), MIN_ENTRIES)
        if not description or not description.strip():
            raise InvalidInputError("description", "journal description is required")

        requested = []
        for entry in entries:
            try:
                account_id = entry.account_id if isinstance(entry.account_id, UUID) else UUID(str(entry.account_id))
            except ValueError as exc:
                raise InvalidInputError("account_id", f"malformed account id {entry.account_id!r}") from exc
            amount = to_decimal(entry.amount)
            if amount <= 0:
                raise InvalidAmountError(str(amount), "amount must be strictly positive")
            try:
                side = TransactionType(entry.transaction_type)
            except ValueError as exc:
                raise InvalidInputError(
                    "transaction_type", f"unknown transaction type {entry.transaction_type!r}"
                ) from exc
            requested.append((account_id, amount, side, entry.notes))

        distinct = len({account_id for account_id, _, _, _ in requested})
        if distinct < MIN_ACCOUNTS:
            raise TooFewAccountsError(distinct, MIN_ACCOUNTS)
        return requested

    def _prepare_line(
        self,
        account: Account,
        amount: Decimal,
        side: TransactionType,
        notes: str | None,
        base: Currency,
        journal_date: date,
    ) -> _PreparedLine:
        native_precision = self.currencies.precision_of(account.currency_code)
        if decimal_places(amount) > native_precision:
            raise AmountPrecisionError(str(amount), account.currency_code, native_precision)

        if account.currency_code == base.code:
            return _PreparedLine(account.id, side, amount, None, None, None, notes)

        rate = self.rates.rate_for_posting(account.currency_code, base.code, journal_date)
        converted = self.convert(amount, rate.rate, base.precision)
        if converted <= 0:
            raise InvalidAmountError(
                str(amount),
                f"converts to {converted} {base.code} at rate {rate.rate}",
            )
        return _PreparedLine(
            account_id=account.id,
            transaction_type=side,
            amount=converted,
            original_amount=amount,
            original_currency_code=account.currency_code,
            exchange_rate_id=rate.id,
            notes=notes,
        )

    @staticmethod
    def convert(amount: Decimal, rate: Decimal, precision: int) -> Decimal:
        """``amount * rate`` rounded half-to-even to ``precision`` places."""
        return round_money(exact_product(amount, rate), precision)

    @staticmethod
    def _check_balance(lines: list[_PreparedLine], currency: str) -> Decimal:
        debits = exact_sum(
            line.amount for line in lines if line.transaction_type is TransactionType.DEBIT
        )
        credits = exact_sum(
            line.amount for line in lines if line.transaction_type is TransactionType.CREDIT
        )
        if debits != credits:
            logger.info(
                "journal_rejected_unbalanced",
                extra={"debits": debits, "credits": credits, "currency": currency},
            )
            raise UnbalancedJournalError(str(debits), str(credits), currency)
        return debits

    def _write(
        self,
        *,
        workplace_id: UUID,
        journal_date: date,
        description: str,
        currency_code: str,
        amount: Decimal,
        lines: list[_PreparedLine],
        actor_id: UUID,
        reversal_of_id: UUID | None = None,
    ) -> Journal:
        journal_seq = self.sequences.next_value(SequenceService.JOURNAL)
        first_line_seq = self.sequences.next_block(SequenceService.TRANSACTION, len(lines))
        now = self._now()

        journal = Journal(
            workplace_id=workplace_id,
            journal_date=journal_date,
            description=description,
            currency_code=currency_code,
            amount=amount,
            status=JournalStatus.POSTED.value,
            reversal_of_id=reversal_of_id,
            seq=journal_seq,
            created_at=now,
            updated_at=now,
            created_by_id=actor_id,
            transactions=[
                Transaction(
                    account_id=line.account_id,
                    amount=line.amount,
                    transaction_type=line.transaction_type.value,
                    currency_code=currency_code,
                    original_amount=line.original_amount,
                    original_currency_code=line.original_currency_code,
                    exchange_rate_id=line.exchange_rate_id,
                    notes=line.notes,
                    seq=first_line_seq + offset,
                    created_at=now,
                    updated_at=now,
                    created_by_id=actor_id,
                )
                for offset, line in enumerate(lines)
            ],
        )
        self.session.add(journal)
        self.session.flush()
        return journal

    # -------------------------------------------------------------------------
    # Reversal
    # -------------------------------------------------------------------------

    def reverse_journal(self, workplace_id: UUID, journal_id: UUID, actor_id: UUID) -> JournalRecord:
        """
        Reverse a POSTED journal.

        Postconditions:
            - The original is REVERSED; its transactions are untouched.
            - A new POSTED journal dated today (clock date) carries the same
              accounts, amounts and original amounts with sides swapped, and
              ``reversal_of_id`` pointing at the original.
        """
        with LogContext.bind(journal_id=journal_id):
            original = self._load_for_reversal(workplace_id, journal_id)
            self.accounts.require_postable(
                workplace_id, {t.account_id for t in original.transactions}
            )

            original.status = check_journal_transition(
                str(original.id), original.status, JournalStatus.REVERSED
            ).value
            original.updated_at = self._now()
            original.updated_by_id = actor_id
            self.session.flush()

            reversal = self._write(
                workplace_id=workplace_id,
                journal_date=self.clock.today(),
                description=f"{REVERSAL_PREFIX}{original.description}",
                currency_code=original.currency_code,
                amount=original.amount,
                lines=[
                    _PreparedLine(
                        account_id=t.account_id,
                        transaction_type=TransactionType(t.transaction_type).flipped(),
                        amount=t.amount,
                        original_amount=t.original_amount,
                        original_currency_code=t.original_currency_code,
                        exchange_rate_id=t.exchange_rate_id,
                        notes=t.notes,
                    )
                    for t in original.transactions
                ],
                actor_id=actor_id,
                reversal_of_id=original.id,
            )

            logger.info(
                "journal_reversed",
                extra={
                    "original_journal_id": str(original.id),
                    "reversal_journal_id": str(reversal.id),
                    "reversal_seq": reversal.seq,
                    "reversal_date": reversal.journal_date,
                },
            )
            return JournalRecord.from_model(reversal)

    def _load_for_reversal(self, workplace_id: UUID, journal_id: UUID) -> Journal:
        original = self.session.execute(
            select(Journal)
            .where(Journal.id == journal_id, Journal.workplace_id == workplace_id)
            .with_for_update()
        ).scalar_one_or_none()
        if original is None:
            raise JournalNotFoundError(str(journal_id), str(workplace_id))

        if original.reversal_of_id is not None:
            raise ReversalNotReversibleError(str(original.id), str(original.reversal_of_id))

        if original.status == JournalStatus.REVERSED:
            reversed_by = self.session.execute(
                select(Journal.id).where(Journal.reversal_of_id == original.id)
            ).scalar_one_or_none()
            raise JournalAlreadyReversedError(
                str(original.id), str(reversed_by) if reversed_by else None
            )
        return original

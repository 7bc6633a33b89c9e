"""
Module: ledger_kernel.selectors.report_selector
Responsibility: Trial balance, profit-and-loss and balance sheet.
Architecture position: Kernel > Selectors.  Reads Transaction rows joined
    to Journal and Account; never reads or writes stored balances.

Invariants enforced:
    - Each report is built from one SELECT; figures are aggregated in Python
      with exact Decimal arithmetic so SQLite and PostgreSQL agree to the
      last digit.
    - Journals of every status count.  A reversed journal is cancelled by
      its reversing journal, which is itself a committed journal.
    - Amounts are the journal-currency amounts (``Transaction.amount``).
      The trial balance partitions by journal currency; P&L and balance
      sheet only aggregate transactions in the report currency.
    - Lines are ordered by account type, then account name, then id.

Failure modes:
    - WorkplaceNotFoundError for an unknown workplace.
    - InvalidDateRangeError when from_date > to_date.
    - InvalidCurrencyError for an unknown report currency.

Audit relevance:
    Every report logs ``report_generated`` with the requester.  An
    unbalanced balance sheet logs ``balance_sheet_unbalanced`` at ERROR.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from ledger_kernel.db.types import exact_sum
from ledger_kernel.domain.balance import net_balance
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import (
    BalanceSheetReport,
    ProfitAndLossReport,
    ReportLine,
    TrialBalanceReport,
    TrialBalanceRow,
)
from ledger_kernel.exceptions import InvalidCurrencyError, InvalidDateRangeError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account, AccountType
from ledger_kernel.models.currency import Currency
from ledger_kernel.models.journal import Journal, Transaction, TransactionType
from ledger_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.report")

ZERO = Decimal("0")

_TYPE_ORDER = {
    AccountType.ASSET.value: 0,
    AccountType.LIABILITY.value: 1,
    AccountType.EQUITY.value: 2,
    AccountType.INCOME.value: 3,
    AccountType.EXPENSE.value: 4,
}


class _Totals:
    """Debit and credit amounts collected for one account."""

    __slots__ = ("account_id", "name", "account_type", "debits", "credits")

    def __init__(self, account_id: UUID, name: str, account_type: str):
        self.account_id = account_id
        self.name = name
        self.account_type = account_type
        self.debits: list[Decimal] = []
        self.credits: list[Decimal] = []

    def add(self, side: str, amount: Decimal) -> None:
        if side == TransactionType.DEBIT.value:
            self.debits.append(amount)
        else:
            self.credits.append(amount)

    @property
    def debit_total(self) -> Decimal:
        return exact_sum(self.debits)

    @property
    def credit_total(self) -> Decimal:
        return exact_sum(self.credits)

    @property
    def balance(self) -> Decimal:
        return net_balance(self.account_type, self.debit_total, self.credit_total)

    def sort_key(self):
        return (_TYPE_ORDER[self.account_type], self.name, str(self.account_id))

    def line(self) -> ReportLine:
        return ReportLine(
            account_id=self.account_id,
            account_name=self.name,
            account_type=AccountType(self.account_type),
            amount=self.balance,
        )


class ReportSelector(BaseSelector[Transaction]):
    """
    Financial statements derived from committed transactions.

    Contract:
        ``requester_id`` is recorded in the audit log only; authorization is
        the caller's concern.

    Non-goals:
        - Currency translation.  A report never converts between currencies.
        - Period closing.  Retained earnings are computed, not posted.
    """

    def __init__(self, session, clock: Clock | None = None):
        super().__init__(session)
        self.clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Trial balance
    # ------------------------------------------------------------------

    def trial_balance(
        self,
        workplace_id: UUID,
        as_of_date: date,
        requester_id: UUID,
    ) -> TrialBalanceReport:
        self._require_workplace(workplace_id)

        rows = self.session.execute(
            self._base_query(workplace_id).where(Journal.journal_date <= as_of_date)
        )

        buckets: dict[tuple[UUID, str], _Totals] = {}
        for account_id, name, account_type, currency, side, amount in rows:
            key = (account_id, currency)
            if key not in buckets:
                buckets[key] = _Totals(account_id, name, account_type)
            buckets[key].add(side, amount)

        ordered = sorted(buckets.items(), key=lambda item: (item[1].sort_key(), item[0][1]))
        report = TrialBalanceReport(
            workplace_id=workplace_id,
            as_of_date=as_of_date,
            rows=tuple(
                TrialBalanceRow(
                    account_id=totals.account_id,
                    account_name=totals.name,
                    account_type=AccountType(totals.account_type),
                    currency_code=currency,
                    debit_total=totals.debit_total,
                    credit_total=totals.credit_total,
                    net_balance=totals.balance,
                )
                for (_, currency), totals in ordered
            ),
            generated_at=self.clock.now(),
        )

        logger.info(
            "report_generated",
            extra={
                "report": "trial_balance",
                "workplace_id": str(workplace_id),
                "requester_id": str(requester_id),
                "as_of_date": as_of_date,
                "row_count": len(report.rows),
                "balanced": report.is_balanced,
            },
        )
        if not report.is_balanced:
            logger.error(
                "trial_balance_unbalanced",
                extra={"workplace_id": str(workplace_id), "as_of_date": as_of_date},
            )
        return report

    # ------------------------------------------------------------------
    # Profit and loss
    # ------------------------------------------------------------------

    def profit_and_loss(
        self,
        workplace_id: UUID,
        from_date: date,
        to_date: date,
        requester_id: UUID,
        currency_code: str | None = None,
    ) -> ProfitAndLossReport:
        if from_date > to_date:
            raise InvalidDateRangeError(from_date.isoformat(), to_date.isoformat())
        currency = self._report_currency(workplace_id, currency_code)

        totals = self._collect(
            self._base_query(workplace_id).where(
                Transaction.currency_code == currency,
                Journal.journal_date >= from_date,
                Journal.journal_date <= to_date,
                Account.account_type.in_(
                    (AccountType.INCOME.value, AccountType.EXPENSE.value)
                ),
            )
        )

        revenue = [t.line() for t in totals if t.account_type == AccountType.INCOME.value]
        expenses = [t.line() for t in totals if t.account_type == AccountType.EXPENSE.value]
        total_revenue = exact_sum(line.amount for line in revenue)
        total_expenses = exact_sum(line.amount for line in expenses)

        report = ProfitAndLossReport(
            workplace_id=workplace_id,
            from_date=from_date,
            to_date=to_date,
            currency_code=currency,
            revenue_lines=tuple(revenue),
            expense_lines=tuple(expenses),
            total_revenue=total_revenue,
            total_expenses=total_expenses,
            net_income=total_revenue - total_expenses,
        )

        logger.info(
            "report_generated",
            extra={
                "report": "profit_and_loss",
                "workplace_id": str(workplace_id),
                "requester_id": str(requester_id),
                "from_date": from_date,
                "to_date": to_date,
                "currency": currency,
                "net_income": report.net_income,
            },
        )
        return report

    # ------------------------------------------------------------------
    # Balance sheet
    # ------------------------------------------------------------------

    def balance_sheet(
        self,
        workplace_id: UUID,
        as_of_date: date,
        requester_id: UUID,
        currency_code: str | None = None,
    ) -> BalanceSheetReport:
        currency = self._report_currency(workplace_id, currency_code)

        totals = self._collect(
            self._base_query(workplace_id).where(
                Transaction.currency_code == currency,
                Journal.journal_date <= as_of_date,
            )
        )

        def lines_of(kind: AccountType) -> list[ReportLine]:
            return [t.line() for t in totals if t.account_type == kind.value]

        assets = lines_of(AccountType.ASSET)
        liabilities = lines_of(AccountType.LIABILITY)
        equity = lines_of(AccountType.EQUITY)
        income = exact_sum(line.amount for line in lines_of(AccountType.INCOME))
        expense = exact_sum(line.amount for line in lines_of(AccountType.EXPENSE))

        total_assets = exact_sum(line.amount for line in assets)
        total_liabilities = exact_sum(line.amount for line in liabilities)
        retained_earnings = income - expense
        total_equity = exact_sum(line.amount for line in equity) + retained_earnings

        report = BalanceSheetReport(
            workplace_id=workplace_id,
            as_of_date=as_of_date,
            currency_code=currency,
            asset_lines=tuple(assets),
            liability_lines=tuple(liabilities),
            equity_lines=tuple(equity),
            total_assets=total_assets,
            total_liabilities=total_liabilities,
            retained_earnings=retained_earnings,
            total_equity=total_equity,
            balanced=total_assets == total_liabilities + total_equity,
        )

        logger.info(
            "report_generated",
            extra={
                "report": "balance_sheet",
                "workplace_id": str(workplace_id),
                "requester_id": str(requester_id),
                "as_of_date": as_of_date,
                "currency": currency,
                "balanced": report.balanced,
            },
        )
        if not report.balanced:
            logger.error(
                "balance_sheet_unbalanced",
                extra={
                    "workplace_id": str(workplace_id),
                    "as_of_date": as_of_date,
                    "currency": currency,
                    "total_assets": total_assets,
                    "total_liabilities": total_liabilities,
                    "total_equity": total_equity,
                    "imbalance": report.imbalance,
                },
            )
        return report

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _base_query(self, workplace_id: UUID):
        return (
            select(
                Account.id,
                Account.name,
                Account.account_type,
                Transaction.currency_code,
                Transaction.transaction_type,
                Transaction.amount,
            )
            .join(Journal, Transaction.journal_id == Journal.id)
            .join(Account, Transaction.account_id == Account.id)
            .where(Journal.workplace_id == workplace_id)
        )

    def _collect(self, stmt) -> list[_Totals]:
        by_account: dict[UUID, _Totals] = {}
        for account_id, name, account_type, _currency, side, amount in self.session.execute(stmt):
            if account_id not in by_account:
                by_account[account_id] = _Totals(account_id, name, account_type)
            by_account[account_id].add(side, amount)
        return sorted(by_account.values(), key=_Totals.sort_key)

    def _report_currency(self, workplace_id: UUID, currency_code: str | None) -> str:
        workplace = self._require_workplace(workplace_id)
        if currency_code is None:
            return workplace.default_currency_code
        code = currency_code.strip().upper()
        exists = self.session.execute(
            select(Currency.code).where(Currency.code == code)
        ).scalar_one_or_none()
        if exists is None:
            raise InvalidCurrencyError(currency_code, "unknown currency")
        return code

"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: Point-in-time account balances.

Invariants enforced:
    - A balance is the signed sum of every committed transaction on the
      account dated on or before the cutoff.  Both POSTED and REVERSED
      journals count: a reversed journal's effect is cancelled by its
      reversing journal, so history before the reversal date stays intact.
    - ``balance_as_of`` sums ``Transaction.amount``, the figure each journal
      balanced in.  Summed with signs over every account of a workplace it
      is zero, and it matches the trial balance row by row.
    - ``native_balance_as_of`` sums the account's own currency instead: the
      original amount where a conversion took place, the journal amount
      otherwise.
    - Sign follows domain/balance.py.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from ledger_kernel.db.types import exact_sum
from ledger_kernel.domain.balance import signed_amount
from ledger_kernel.exceptions import AccountNotFoundError
from ledger_kernel.models.account import Account
from ledger_kernel.models.journal import Journal, Transaction
from ledger_kernel.selectors.base import BaseSelector


class LedgerSelector(BaseSelector[Transaction]):
    """
    Balance computation over Transaction rows.

    Guarantees:
        - Returns Decimal zero for an account with no transactions.
        - Side-effect free.
    """

    def balance_as_of(
        self,
        account_id: UUID,
        as_of_date: date,
        workplace_id: UUID | None = None,
    ) -> Decimal:
        account = self._account(account_id, workplace_id)
        return exact_sum(
            signed_amount(account.account_type, side, amount)
            for side, amount, _ in self._lines(account_id, as_of_date)
        )

    def native_balance_as_of(
        self,
        account_id: UUID,
        as_of_date: date,
        workplace_id: UUID | None = None,
    ) -> Decimal:
        """Balance in the account's own currency, ignoring conversions."""
        account = self._account(account_id, workplace_id)
        return exact_sum(
            signed_amount(
                account.account_type,
                side,
                original if original is not None else amount,
            )
            for side, amount, original in self._lines(account_id, as_of_date)
        )

    def _account(self, account_id: UUID, workplace_id: UUID | None) -> Account:
        account = self.session.get(Account, account_id)
        if account is None or (workplace_id is not None and account.workplace_id != workplace_id):
            raise AccountNotFoundError(str(account_id), str(workplace_id) if workplace_id else None)
        return account

    def _lines(self, account_id: UUID, as_of_date: date):
        return self.session.execute(
            select(
                Transaction.transaction_type,
                Transaction.amount,
                Transaction.original_amount,
            )
            .join(Journal, Transaction.journal_id == Journal.id)
            .where(
                Transaction.account_id == account_id,
                Journal.journal_date <= as_of_date,
            )
        )

"""
Module: ledger_kernel.selectors.transaction_selector
Responsibility: Paginated and streamed transaction history of one account.

Invariants enforced:
    - Ordering is by (journal_date, transaction seq), descending unless the
      filter asks for ascending.  seq is unique, so the order is total.
    - A cursor encodes the sort key of the last row returned; the next page
      starts strictly after it.  Rows committed between two page requests
      either sort after the cursor (and appear) or before it (and do not
      disturb pages already read).
    - Date filters are inclusive on both ends.

Failure modes:
    - AccountNotFoundError when the account is not in the workplace.
    - InvalidCursorError on a malformed cursor.
    - InvalidDateRangeError when from_date > to_date.
"""

from collections.abc import Callable, Iterator
from dataclasses import replace
from uuid import UUID

from sqlalchemy import and_, or_, select

from ledger_kernel.domain.dtos import TransactionFilter, TransactionPage, TransactionRecord
from ledger_kernel.domain.pagination import PageCursor
from ledger_kernel.exceptions import AccountNotFoundError, InvalidDateRangeError
from ledger_kernel.models.account import Account
from ledger_kernel.models.journal import Journal, Transaction
from ledger_kernel.selectors.base import BaseSelector
from ledger_kernel.selectors.journal_selector import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    clamp_page_size,
)


def iter_pages(
    fetch_page: Callable[[TransactionFilter], TransactionPage],
    filter: TransactionFilter | None = None,
) -> Iterator[TransactionRecord]:
    """
    Follow cursors from ``filter`` until the last page.

    ``fetch_page`` decides the unit of work each page is read in.
    """
    filter = filter or TransactionFilter()
    while True:
        page = fetch_page(filter)
        yield from page.items
        if page.next_cursor is None:
            return
        filter = replace(filter, cursor=page.next_cursor)

class TransactionSelector(BaseSelector[Transaction]):
    """
    Account transaction listings.

    Guarantees:
        - Each page is read in one statement.
        - ``iter_transactions_by_account`` yields lazily, one page at a time,
          and can be restarted from any cursor it has produced.
    """

    def __init__(self, session, default_page_size: int = DEFAULT_PAGE_SIZE, max_page_size: int = MAX_PAGE_SIZE):
        super().__init__(session)
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    def list_transactions_by_account(
        self,
        workplace_id: UUID,
        account_id: UUID,
        filter: TransactionFilter | None = None,
    ) -> TransactionPage:
        filter = filter or TransactionFilter()
        self._check_account(workplace_id, account_id)
        if filter.from_date and filter.to_date and filter.from_date > filter.to_date:
            raise InvalidDateRangeError(filter.from_date.isoformat(), filter.to_date.isoformat())

        size = clamp_page_size(filter.limit, self.default_page_size, self.max_page_size)

        stmt = (
            select(Transaction, Journal.journal_date)
            .join(Journal, Transaction.journal_id == Journal.id)
            .where(
                Transaction.account_id == account_id,
                Journal.workplace_id == workplace_id,
            )
        )
        if filter.from_date is not None:
            stmt = stmt.where(Journal.journal_date >= filter.from_date)
        if filter.to_date is not None:
            stmt = stmt.where(Journal.journal_date <= filter.to_date)

        if filter.cursor:
            after = PageCursor.decode(filter.cursor)
            if filter.ascending:
                stmt = stmt.where(
                    or_(
                        Journal.journal_date > after.journal_date,
                        and_(Journal.journal_date == after.journal_date, Transaction.seq > after.seq),
                    )
                )
            else:
                stmt = stmt.where(
                    or_(
                        Journal.journal_date < after.journal_date,
                        and_(Journal.journal_date == after.journal_date, Transaction.seq < after.seq),
                    )
                )

        if filter.ascending:
            stmt = stmt.order_by(Journal.journal_date.asc(), Transaction.seq.asc())
        else:
            stmt = stmt.order_by(Journal.journal_date.desc(), Transaction.seq.desc())

        rows = self.session.execute(stmt.limit(size + 1)).all()

        next_cursor = None
        if len(rows) > size:
            rows = rows[:size]
            last, last_date = rows[-1]
            next_cursor = PageCursor(last_date, last.seq).encode()

        return TransactionPage(
            items=tuple(TransactionRecord.from_model(row, journal_date) for row, journal_date in rows),
            next_cursor=next_cursor,
        )

    def iter_transactions_by_account(
        self,
        workplace_id: UUID,
        account_id: UUID,
        filter: TransactionFilter | None = None,
    ) -> Iterator[TransactionRecord]:
        """Yield every matching transaction, fetching one page at a time."""
        return iter_pages(
            lambda page_filter: self.list_transactions_by_account(workplace_id, account_id, page_filter),
            filter,
        )

    def _check_account(self, workplace_id: UUID, account_id: UUID) -> None:
        found = self.session.execute(
            select(Account.id).where(
                Account.id == account_id,
                Account.workplace_id == workplace_id,
            )
        ).scalar_one_or_none()
        if found is None:
            raise AccountNotFoundError(str(account_id), str(workplace_id))

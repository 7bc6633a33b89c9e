"""
Tests for keyset-paginated listings.

- Order is (journal_date, seq), newest first unless ascending is asked for.
- Walking the cursors visits every row exactly once, even when new rows
  are posted between pages.
- Page sizes are clamped to [1, max]; malformed cursors are rejected.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from ledger_kernel.domain.dtos import EntryRequest, TransactionFilter, TransactionPage
from ledger_kernel.exceptions import (
    AccountNotFoundError,
    InvalidCursorError,
    InvalidDateRangeError,
    WorkplaceNotFoundError,
)
from ledger_kernel.selectors.transaction_selector import TransactionSelector, iter_pages


@pytest.fixture
def history(standard_accounts, post):
    """Twelve sales spread over six days, two per day, newest posted first."""
    cash, revenue = standard_accounts["cash"], standard_accounts["revenue"]
    journals = []
    for day in reversed(range(6)):
        for n in range(2):
            amount = f"{day + 1}.{n}0"
            journals.append(
                post(
                    [EntryRequest.debit(cash.id, amount), EntryRequest.credit(revenue.id, amount)],
                    journal_date=date(2024, 6, 1) + timedelta(days=day),
                )
            )
    return journals


def _sort_key(record):
    return (record.journal_date, record.seq)


class TestTransactionListing:

    def test_default_order_is_newest_first(self, ledger, workplace, standard_accounts, history):
        page = ledger.list_transactions_by_account(workplace.id, standard_accounts["cash"].id)
        assert len(page.items) == 12
        assert page.next_cursor is None
        assert not page.has_more
        keys = [_sort_key(t) for t in page.items]
        assert keys == sorted(keys, reverse=True)
        assert page.items[0].journal_date == date(2024, 6, 6)

    def test_ascending(self, ledger, workplace, standard_accounts, history):
        page = ledger.list_transactions_by_account(
            workplace.id, standard_accounts["cash"].id, TransactionFilter(ascending=True)
        )
        keys = [_sort_key(t) for t in page.items]
        assert keys == sorted(keys)

    def test_only_the_accounts_transactions(self, ledger, workplace, standard_accounts, history):
        page = ledger.list_transactions_by_account(workplace.id, standard_accounts["revenue"].id)
        assert {t.account_id for t in page.items} == {standard_accounts["revenue"].id}
        assert all(t.transaction_type.value == "credit" for t in page.items)

    def test_date_filter_is_inclusive(self, ledger, workplace, standard_accounts, history):
        page = ledger.list_transactions_by_account(
            workplace.id,
            standard_accounts["cash"].id,
            TransactionFilter(from_date=date(2024, 6, 2), to_date=date(2024, 6, 3)),
        )
        assert {t.journal_date for t in page.items} == {date(2024, 6, 2), date(2024, 6, 3)}
        assert len(page.items) == 4

    def test_inverted_date_range(self, ledger, workplace, standard_accounts):
        with pytest.raises(InvalidDateRangeError):
            ledger.list_transactions_by_account(
                workplace.id,
                standard_accounts["cash"].id,
                TransactionFilter(from_date=date(2024, 6, 3), to_date=date(2024, 6, 2)),
            )

    @pytest.mark.parametrize("ascending", [False, True])
    def test_cursor_walk_visits_every_row_once(self, ledger, workplace, standard_accounts, history, ascending):
        cash = standard_accounts["cash"]
        seen = []
        query = TransactionFilter(limit=5, ascending=ascending)
        while True:
            page = ledger.list_transactions_by_account(workplace.id, cash.id, query)
            assert len(page.items) <= 5
            seen.extend(page.items)
            if not page.has_more:
                break
            query = TransactionFilter(limit=5, ascending=ascending, cursor=page.next_cursor)

        assert len(seen) == 12
        assert len({t.id for t in seen}) == 12
        keys = [_sort_key(t) for t in seen]
        assert keys == sorted(keys, reverse=not ascending)

    def test_exact_multiple_of_page_size_has_no_empty_trailing_page(
        self, ledger, workplace, standard_accounts, history
    ):
        first = ledger.list_transactions_by_account(
            workplace.id, standard_accounts["cash"].id, TransactionFilter(limit=6)
        )
        second = ledger.list_transactions_by_account(
            workplace.id, standard_accounts["cash"].id, TransactionFilter(limit=6, cursor=first.next_cursor)
        )
        assert len(second.items) == 6
        assert second.next_cursor is None

    def test_concurrent_appends_do_not_shift_pages(self, ledger, workplace, standard_accounts, history, post):
        cash, revenue = standard_accounts["cash"], standard_accounts["revenue"]
        first = ledger.list_transactions_by_account(workplace.id, cash.id, TransactionFilter(limit=4))

        # Newer rows sort before the cursor and must not appear on later pages
        post([EntryRequest.debit(cash.id, "99.00"), EntryRequest.credit(revenue.id, "99.00")],
             journal_date=date(2024, 7, 1))

        rest = list(
            ledger.iter_transactions_by_account(
                workplace.id, cash.id, TransactionFilter(limit=4, cursor=first.next_cursor)
            )
        )
        assert len(first.items) + len(rest) == 12
        assert Decimal("99.00") not in {t.amount for t in rest}

    def test_iterator_walks_all_pages(self, ledger, workplace, standard_accounts, history):
        rows = list(
            ledger.iter_transactions_by_account(
                workplace.id, standard_accounts["cash"].id, TransactionFilter(limit=1)
            )
        )
        assert len(rows) == 12

    def test_selector_iterator(self, workplace, standard_accounts, history, session):
        selector = TransactionSelector(session, default_page_size=5)
        rows = list(selector.iter_transactions_by_account(workplace.id, standard_accounts["cash"].id))
        assert len(rows) == 12

    def test_iter_pages_keeps_filter_between_pages(self):
        pages = {
            None: TransactionPage(items=("a", "b"), next_cursor="c1"),
            "c1": TransactionPage(items=("c",), next_cursor="c2"),
            "c2": TransactionPage(items=(), next_cursor=None),
        }
        seen = []

        def fetch(page_filter):
            seen.append(page_filter)
            return pages[page_filter.cursor]

        start = TransactionFilter(from_date=date(2024, 1, 1), ascending=True, limit=2)
        assert list(iter_pages(fetch, start)) == ["a", "b", "c"]
        assert [f.cursor for f in seen] == [None, "c1", "c2"]
        assert all((f.from_date, f.ascending, f.limit) == (date(2024, 1, 1), True, 2) for f in seen)

    @pytest.mark.parametrize("limit,expected", [(0, 20), (-1, 20), (1000, 100)])
    def test_limit_is_clamped(self, ledger, workplace, standard_accounts, post, limit, expected):
        cash, revenue = standard_accounts["cash"], standard_accounts["revenue"]
        for _ in range(60):
            post([EntryRequest.debit(cash.id, "1"), EntryRequest.credit(revenue.id, "1")])
        page = ledger.list_transactions_by_account(workplace.id, cash.id, TransactionFilter(limit=limit))
        assert len(page.items) == min(expected, 60)

    def test_malformed_cursor(self, ledger, workplace, standard_accounts):
        with pytest.raises(InvalidCursorError):
            ledger.list_transactions_by_account(
                workplace.id, standard_accounts["cash"].id, TransactionFilter(cursor="garbage!")
            )

    def test_account_in_other_workplace(self, ledger, other_workplace, standard_accounts):
        with pytest.raises(AccountNotFoundError):
            ledger.list_transactions_by_account(other_workplace.id, standard_accounts["cash"].id)


class TestJournalListing:

    def test_newest_first_with_transactions(self, ledger, workplace, history):
        page = ledger.list_journals(workplace.id, limit=3)
        assert len(page.items) == 3
        assert page.has_more
        assert [j.journal_date for j in page.items][0] == date(2024, 6, 6)
        assert all(len(j.transactions) == 2 for j in page.items)

    def test_cursor_walk(self, ledger, workplace, history):
        seen = []
        cursor = None
        while True:
            page = ledger.list_journals(workplace.id, limit=5, cursor=cursor)
            seen.extend(page.items)
            cursor = page.next_cursor
            if cursor is None:
                break
        assert {j.id for j in seen} == {j.id for j in history}
        keys = [(j.journal_date, j.seq) for j in seen]
        assert keys == sorted(keys, reverse=True)

    def test_empty_workplace(self, ledger, other_workplace):
        page = ledger.list_journals(other_workplace.id)
        assert page.items == ()
        assert page.next_cursor is None

    def test_unknown_workplace(self, ledger, currencies):
        from uuid import uuid4

        with pytest.raises(WorkplaceNotFoundError):
            ledger.list_journals(uuid4())

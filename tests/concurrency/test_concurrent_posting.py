"""
Concurrency tests through the engine.

Threads share one LedgerEngine; every call runs in its own unit of work on
its own connection.  On SQLite writers serialize on the database lock, on
PostgreSQL on row locks.  Either way:

- Concurrent posts all commit, with unique and increasing seq values.
- Balances equal the sum of everything posted.
- Of two racing state changes on one row, exactly one wins.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import date
from decimal import Decimal
from threading import Barrier

import pytest

from ledger_kernel.domain.dtos import EntryRequest
from ledger_kernel.exceptions import (
    AccountAlreadyInactiveError,
    ConflictError,
    JournalAlreadyReversedError,
)
from ledger_kernel.models.account import AccountStatus
from ledger_kernel.models.journal import JournalStatus

pytestmark = pytest.mark.slow_locks

NUM_THREADS = 8
POSTS_PER_THREAD = 5


def _race(fn, count: int):
    """Run ``fn`` in ``count`` threads released together; return (results, errors)."""
    barrier = Barrier(count, timeout=30)

    def run(i):
        barrier.wait()
        return fn(i)

    results, errors = [], []
    with ThreadPoolExecutor(max_workers=count) as pool:
        futures = [pool.submit(run, i) for i in range(count)]
        for future in as_completed(futures):
            exc = future.exception()
            if exc is None:
                results.append(future.result())
            else:
                errors.append(exc)
    return results, errors


class TestConcurrentPosting:

    def test_parallel_posts_all_commit(self, ledger, workplace, standard_accounts, test_actor_id):
        cash, revenue = standard_accounts["cash"], standard_accounts["revenue"]

        def post_batch(thread_id):
            journals = []
            for n in range(POSTS_PER_THREAD):
                journals.append(
                    ledger.post_journal(
                        workplace.id,
                        date(2024, 6, 1),
                        f"Sale {thread_id}-{n}",
                        "USD",
                        [EntryRequest.debit(cash.id, "1.25"), EntryRequest.credit(revenue.id, "1.25")],
                        test_actor_id,
                    )
                )
            return journals

        results, errors = _race(post_batch, NUM_THREADS)

        assert errors == []
        journals = [j for batch in results for j in batch]
        assert len(journals) == NUM_THREADS * POSTS_PER_THREAD

        seqs = [j.seq for j in journals]
        assert len(set(seqs)) == len(seqs)
        # Each thread sees its own posts in increasing order
        for batch in results:
            assert [j.seq for j in batch] == sorted(j.seq for j in batch)

        expected = Decimal("1.25") * NUM_THREADS * POSTS_PER_THREAD
        assert ledger.balance_as_of(cash.id, date(2024, 6, 1)) == expected
        assert ledger.balance_as_of(revenue.id, date(2024, 6, 1)) == expected
        assert ledger.trial_balance(workplace.id, date(2024, 6, 1), test_actor_id).is_balanced

    def test_transaction_seqs_are_unique_under_load(self, ledger, workplace, standard_accounts, test_actor_id):
        cash, revenue = standard_accounts["cash"], standard_accounts["revenue"]

        def post_one(thread_id):
            return ledger.post_journal(
                workplace.id,
                date(2024, 6, 2),
                f"Sale {thread_id}",
                "USD",
                [EntryRequest.debit(cash.id, "3"), EntryRequest.credit(revenue.id, "3")],
                test_actor_id,
            )

        results, errors = _race(post_one, NUM_THREADS)

        assert errors == []
        line_seqs = [t.seq for j in results for t in j.transactions]
        assert len(line_seqs) == 2 * NUM_THREADS
        assert len(set(line_seqs)) == len(line_seqs)

        listed = list(ledger.iter_transactions_by_account(workplace.id, cash.id))
        assert len(listed) == NUM_THREADS


class TestRacingStateChanges:

    def test_deactivation_race_has_one_winner(self, ledger, workplace, standard_accounts, test_actor_id):
        rent = standard_accounts["rent"]

        results, errors = _race(
            lambda _: ledger.deactivate_account(workplace.id, rent.id, test_actor_id), 2
        )

        assert len(results) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], (AccountAlreadyInactiveError, ConflictError))

        account = ledger.get_account(workplace.id, rent.id)
        assert account.status is AccountStatus.INACTIVE
        assert account.version == 2

    def test_reversal_race_has_one_winner(self, ledger, workplace, standard_accounts, post, test_actor_id):
        journal = post([
            EntryRequest.debit(standard_accounts["cash"].id, "40.00"),
            EntryRequest.credit(standard_accounts["revenue"].id, "40.00"),
        ])

        results, errors = _race(
            lambda _: ledger.reverse_journal(workplace.id, journal.id, test_actor_id), 3
        )

        assert len(results) == 1
        assert len(errors) == 2
        for exc in errors:
            assert isinstance(exc, (JournalAlreadyReversedError, ConflictError))

        original, _ = ledger.get_journal_with_transactions(workplace.id, journal.id)
        assert original.status is JournalStatus.REVERSED
        assert len(ledger.list_journals(workplace.id).items) == 2

"""
Module: ledger_kernel.selectors.journal_selector
Responsibility: Read access to journals and their transactions.

Invariants enforced:
    - A journal outside the requested workplace is reported as missing.
    - Listing order is (journal_date, seq) descending; continuation uses a
      keyset cursor so concurrent postings never shift a page.
"""

from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import selectinload

from ledger_kernel.domain.dtos import JournalPage, JournalRecord, TransactionRecord
from ledger_kernel.domain.pagination import PageCursor
from ledger_kernel.exceptions import JournalNotFoundError
from ledger_kernel.models.journal import Journal
from ledger_kernel.selectors.base import BaseSelector

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def clamp_page_size(limit: int | None, default: int = DEFAULT_PAGE_SIZE, maximum: int = MAX_PAGE_SIZE) -> int:
    """Non-positive or missing limits fall back to the default; large ones are capped."""
    if limit is None or limit <= 0:
        return default
    return min(limit, maximum)


class JournalSelector(BaseSelector[Journal]):

    def __init__(self, session, default_page_size: int = DEFAULT_PAGE_SIZE, max_page_size: int = MAX_PAGE_SIZE):
        super().__init__(session)
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    def get_journal_with_transactions(
        self,
        workplace_id: UUID,
        journal_id: UUID,
    ) -> tuple[JournalRecord, list[TransactionRecord]]:
        journal = self.session.execute(
            select(Journal)
            .where(Journal.id == journal_id, Journal.workplace_id == workplace_id)
            .options(selectinload(Journal.transactions))
        ).scalar_one_or_none()
        if journal is None:
            raise JournalNotFoundError(str(journal_id), str(workplace_id))
        record = JournalRecord.from_model(journal)
        return record, list(record.transactions)

    def list_journals(
        self,
        workplace_id: UUID,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> JournalPage:
        # Distinguishes an unknown workplace from an empty one
        self._require_workplace(workplace_id)

        size = clamp_page_size(limit, self.default_page_size, self.max_page_size)
        stmt = (
            select(Journal)
            .where(Journal.workplace_id == workplace_id)
            .options(selectinload(Journal.transactions))
        )
        if cursor:
            after = PageCursor.decode(cursor)
            stmt = stmt.where(
                or_(
                    Journal.journal_date < after.journal_date,
                    and_(Journal.journal_date == after.journal_date, Journal.seq < after.seq),
                )
            )
        rows = list(
            self.session.execute(
                stmt.order_by(Journal.journal_date.desc(), Journal.seq.desc()).limit(size + 1)
            ).scalars()
        )

        next_cursor = None
        if len(rows) > size:
            rows = rows[:size]
            last = rows[-1]
            next_cursor = PageCursor(last.journal_date, last.seq).encode()
        return JournalPage(
            items=tuple(JournalRecord.from_model(row) for row in rows),
            next_cursor=next_cursor,
        )

"""
SequenceService -- monotonic sequence allocation via locked counter rows.

Responsibility:
    Provides strictly monotonically increasing sequence numbers for
    journals, transactions and exchange rates.  Uses a dedicated counter
    table that is incremented in place, so the row lock taken by the UPDATE
    serializes concurrent allocations.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by JournalService (journal and transaction sequences) and
    ExchangeRateService (rate insertion order).

Invariants enforced:
    - Sequence monotonicity: values are allocated by
      ``UPDATE ... SET current_value = current_value + 1``.  The
      aggregate-max-plus-one pattern is never used.
    - Transactional: an increment is only visible after the caller's
      transaction commits.  Rollback returns the value.

Failure modes:
    - RuntimeError if a counter row is missing (create_tables() seeds them).

Audit relevance:
    Sequence allocation is logged at DEBUG level with sequence_name and
    value.  Journal seq gives the total order used by stable pagination.
"""

from sqlalchemy import BigInteger, String, select, update
from sqlalchemy.orm import Mapped, Session, mapped_column

from ledger_kernel.db.base import Base
from ledger_kernel.logging_config import get_logger

logger = get_logger("services.sequence")


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row represents a named sequence with its current value.
    """

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Contract:
        Accepts a sequence name and returns the next strictly-monotonic
        integer value.  The increment commits with the caller's transaction.

    Guarantees:
        - The first allocation in a write transaction takes the counter row
          lock, which orders concurrent writers.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    JOURNAL = "journal"
    TRANSACTION = "transaction"
    EXCHANGE_RATE = "exchange_rate"

    ALL_SEQUENCES = (JOURNAL, TRANSACTION, EXCHANGE_RATE)

    def __init__(self, session: Session):
        self._session = session

    def ensure_counters(self) -> None:
        """Create any missing counter rows (idempotent)."""
        existing = set(
            self._session.execute(select(SequenceCounter.name)).scalars().all()
        )
        for name in self.ALL_SEQUENCES:
            if name not in existing:
                self._session.add(SequenceCounter(name=name, current_value=0))
        self._session.flush()

    def next_value(self, sequence_name: str) -> int:
        """
        Get the next value for a named sequence.

        Postconditions:
            - Returns an integer > 0 strictly greater than any value
              previously returned for this sequence.
            - The counter row stays locked until the transaction completes.
        """
        return self.next_block(sequence_name, 1)

    def next_block(self, sequence_name: str, count: int) -> int:
        """
        Reserve ``count`` consecutive values and return the first of them.

        Raises:
            ValueError: if count < 1.
            RuntimeError: if the counter row does not exist.
        """
        if count < 1:
            raise ValueError(f"count must be positive, got {count}")

        result = self._session.execute(
            update(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .values(current_value=SequenceCounter.current_value + count)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise RuntimeError(f"Sequence counter '{sequence_name}' is not initialized")

        last = self._session.execute(
            select(SequenceCounter.current_value).where(
                SequenceCounter.name == sequence_name
            )
        ).scalar_one()
        first = last - count + 1
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "first": first, "count": count},
        )
        return first

    def current_value(self, sequence_name: str) -> int | None:
        """Current value of a sequence without incrementing."""
        return self._session.execute(
            select(SequenceCounter.current_value).where(
                SequenceCounter.name == sequence_name
            )
        ).scalar_one_or_none()

"""
Module: ledger_kernel.models.exchange_rate
Responsibility: ORM persistence for dated, directional exchange rates.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Append-only.  Rows are never updated or deleted (db/immutability.py).
    - rate > 0 and from_currency != to_currency (validated by the service;
      the distinct pair is also a CHECK constraint).
    - seq is a monotonic insertion sequence; among rates for the same pair
      and date_effective, the highest seq is authoritative.

Audit relevance:
    Transactions store exchange_rate_id, so every converted amount can be
    recomputed from the exact rate row that produced it.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import BigInteger, CheckConstraint, Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import ExactDecimal, TrackedBase


class ExchangeRate(TrackedBase):
    """
    One directional conversion factor: ``amount_from * rate = amount_to``.

    Non-goals:
        - No inverse or triangulated lookups.  A USD->EUR row says nothing
          about EUR->USD.
    """

    __tablename__ = "exchange_rates"

    __table_args__ = (
        CheckConstraint("from_currency <> to_currency", name="ck_rate_distinct_pair"),
        Index(
            "idx_rate_lookup",
            "from_currency",
            "to_currency",
            "date_effective",
            "seq",
        ),
    )

    from_currency: Mapped[str] = mapped_column(
        String(3),
        ForeignKey("currencies.code"),
        nullable=False,
    )

    to_currency: Mapped[str] = mapped_column(
        String(3),
        ForeignKey("currencies.code"),
        nullable=False,
    )

    rate: Mapped[Decimal] = mapped_column(ExactDecimal(38, 18), nullable=False)

    date_effective: Mapped[date] = mapped_column(Date, nullable=False)

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)

    def __repr__(self) -> str:
        return (
            f"<ExchangeRate {self.from_currency}->{self.to_currency} "
            f"{self.rate} @ {self.date_effective}>"
        )

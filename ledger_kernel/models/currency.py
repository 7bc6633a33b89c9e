"""
Module: ledger_kernel.models.currency
Responsibility: ORM persistence for the currency directory.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - code is unique and exactly three uppercase letters.
    - precision is between 0 and 18.
    - code and precision are frozen once any account or transaction
      references the currency (db/immutability.py).
"""

from sqlalchemy import CheckConstraint, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase


class Currency(TrackedBase):
    """
    A currency known to the kernel.

    Contract:
        ``precision`` is the number of minor-unit decimal places amounts in
        this currency may carry (JPY = 0, USD = 2, KWD = 3, BTC = 8).
    """

    __tablename__ = "currencies"

    __table_args__ = (
        UniqueConstraint("code", name="uq_currency_code"),
        CheckConstraint("precision >= 0 AND precision <= 18", name="ck_currency_precision"),
    )

    code: Mapped[str] = mapped_column(String(3), nullable=False)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    symbol: Mapped[str | None] = mapped_column(String(10), nullable=True)

    precision: Mapped[int] = mapped_column(Integer, nullable=False, default=2)

    def __repr__(self) -> str:
        return f"<Currency {self.code} ({self.precision})>"

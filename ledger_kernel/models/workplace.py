"""
Module: ledger_kernel.models.workplace
Responsibility: ORM persistence for workplaces, the tenant boundary.  Every
    account and journal belongs to exactly one workplace.
Architecture position: Kernel > Models.  May import from db/ only.
"""

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase


class Workplace(TrackedBase):
    """Tenant boundary for accounts and journals."""

    __tablename__ = "workplaces"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Reporting currency used when a report does not name one
    default_currency_code: Mapped[str] = mapped_column(
        String(3),
        ForeignKey("currencies.code"),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Workplace {self.id}: {self.name}>"

"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for ledger accounts -- the target of every
    transaction.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Every account belongs to exactly one workplace.
    - account_type and currency_code never change after creation.
    - status moves only along the transitions in domain/lifecycle.py;
      ``version`` turns concurrent status changes into StaleDataError.

Failure modes:
    - AccountNotFoundError when a posting references an account outside the
      journal's workplace.
    - AccountInactiveError when a posting targets an INACTIVE account.

Audit relevance:
    Accounts are never deleted.  Deactivation keeps the history queryable
    while refusing new postings.
"""

from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase, UUIDString


class AccountType(str, Enum):
    """Types of accounts in the chart of accounts."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    INCOME = "income"
    EXPENSE = "expense"


class AccountStatus(str, Enum):
    """Whether the account accepts new postings."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class Account(TrackedBase):
    """
    A ledger account inside a workplace.

    Contract:
        Amounts posted to this account are expressed in ``currency_code``.

    Guarantees:
        - account_type is one of ASSET, LIABILITY, EQUITY, INCOME, EXPENSE.
        - status is ACTIVE or INACTIVE.

    Non-goals:
        - Hierarchies, account codes and tags are not modelled.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        Index("idx_account_workplace", "workplace_id"),
        Index("idx_account_workplace_type", "workplace_id", "account_type"),
    )

    workplace_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("workplaces.id"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    account_type: Mapped[AccountType] = mapped_column(String(20), nullable=False)

    currency_code: Mapped[str] = mapped_column(
        String(3),
        ForeignKey("currencies.code"),
        nullable=False,
    )

    status: Mapped[AccountStatus] = mapped_column(
        String(20),
        nullable=False,
        default=AccountStatus.ACTIVE.value,
    )

    # Optimistic concurrency counter
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Account {self.name} ({self.account_type})>"

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE

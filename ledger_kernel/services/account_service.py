"""
AccountService -- account creation and status lifecycle.

Responsibility:
    Creates and renames accounts inside a workplace, moves them between
    ACTIVE and INACTIVE, and resolves the accounts a journal posts to.

Architecture position:
    Kernel > Services.  Depends on CurrencyService and WorkplaceService.

Invariants enforced:
    - Accounts never cross workplaces: a lookup with the wrong workplace is
      indistinguishable from a missing account.
    - Status changes follow domain/lifecycle.py.  The row is locked
      ``FOR UPDATE`` (PostgreSQL) and guarded by the ``version`` column, so a
      lost race surfaces as ConcurrentModificationError from the unit of
      work.  The kernel never retries.
    - Posting reads accounts ``FOR SHARE`` so a concurrent deactivation
      either completes before the posting sees the account or waits for the
      posting to commit.

Failure modes:
    - InvalidInputError / InvalidCurrencyError (VALIDATION) on bad input.
    - AccountNotFoundError / WorkplaceNotFoundError (NOT_FOUND).
    - AccountAlreadyInactiveError, AccountAlreadyActiveError (VALIDATION).
    - AccountInactiveError (VALIDATION) from ``require_postable``.
"""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select

from ledger_kernel.domain.dtos import AccountRecord
from ledger_kernel.domain.lifecycle import check_account_transition
from ledger_kernel.exceptions import (
    AccountInactiveError,
    AccountNotFoundError,
    InvalidInputError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account, AccountStatus, AccountType
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.currency_service import CurrencyService
from ledger_kernel.services.workplace_service import WorkplaceService

logger = get_logger("services.account")


class AccountService(BaseService[Account]):
    """
    Write side of the account ledger.

    Non-goals:
        - Balances.  Those are derived by selectors/ledger_selector.py.
    """

    def create_account(
        self,
        workplace_id: UUID,
        name: str,
        account_type: AccountType | str,
        currency_code: str,
        creator_id: UUID,
        description: str | None = None,
    ) -> AccountRecord:
        name = _required_name(name)
        try:
            kind = AccountType(account_type)
        except ValueError as exc:
            raise InvalidInputError("account_type", f"unknown account type {account_type!r}") from exc

        WorkplaceService(self.session, self.clock).require(workplace_id)
        currency = CurrencyService(self.session, self.clock).require_for_posting(currency_code)

        now = self._now()
        account = Account(
            workplace_id=workplace_id,
            name=name,
            description=description,
            account_type=kind.value,
            currency_code=currency.code,
            status=AccountStatus.ACTIVE.value,
            created_at=now,
            updated_at=now,
            created_by_id=creator_id,
        )
        self.session.add(account)
        self.session.flush()

        logger.info(
            "account_created",
            extra={
                "account_id": str(account.id),
                "account_type": kind.value,
                "currency": currency.code,
            },
        )
        return AccountRecord.from_model(account)

    def get_account(self, workplace_id: UUID, account_id: UUID) -> AccountRecord:
        return AccountRecord.from_model(self.require(workplace_id, account_id))

    def list_accounts(self, workplace_id: UUID, include_inactive: bool = True) -> list[AccountRecord]:
        WorkplaceService(self.session, self.clock).require(workplace_id)
        stmt = select(Account).where(Account.workplace_id == workplace_id)
        if not include_inactive:
            stmt = stmt.where(Account.status == AccountStatus.ACTIVE.value)
        rows = self.session.execute(stmt.order_by(Account.account_type, Account.name)).scalars()
        return [AccountRecord.from_model(row) for row in rows]

    def update_account(
        self,
        workplace_id: UUID,
        account_id: UUID,
        actor_id: UUID,
        name: str | None = None,
        description: str | None = None,
    ) -> AccountRecord:
        """
        Rename an account or change its description.

        ``None`` leaves a field as it is.  Type and currency are fixed for
        the life of the account; inactive accounts may still be renamed.
        """
        account = self.require(workplace_id, account_id, lock=True)

        changed: list[str] = []
        if name is not None:
            name = _required_name(name)
            if name != account.name:
                account.name = name
                changed.append("name")
        if description is not None and description != account.description:
            account.description = description
            changed.append("description")
        if not changed:
            return AccountRecord.from_model(account)

        account.updated_at = self._now()
        account.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "account_updated",
            extra={
                "account_id": str(account.id),
                "fields": changed,
                "version": account.version,
            },
        )
        return AccountRecord.from_model(account)

    def deactivate_account(self, workplace_id: UUID, account_id: UUID, actor_id: UUID) -> AccountRecord:
        return self._transition(workplace_id, account_id, AccountStatus.INACTIVE, actor_id)

    def reactivate_account(self, workplace_id: UUID, account_id: UUID, actor_id: UUID) -> AccountRecord:
        return self._transition(workplace_id, account_id, AccountStatus.ACTIVE, actor_id)

    def require(self, workplace_id: UUID, account_id: UUID, lock: bool = False) -> Account:
        stmt = select(Account).where(
            Account.id == account_id,
            Account.workplace_id == workplace_id,
        )
        if lock:
            stmt = stmt.with_for_update()
        account = self.session.execute(stmt).scalar_one_or_none()
        if account is None:
            raise AccountNotFoundError(str(account_id), str(workplace_id))
        return account

    def require_postable(self, workplace_id: UUID, account_ids: Iterable[UUID]) -> dict[UUID, Account]:
        """
        Load every account a journal touches, share-locked, and check each
        one belongs to the workplace and is ACTIVE.
        """
        wanted = set(account_ids)
        rows = self.session.execute(
            select(Account)
            .where(Account.id.in_(wanted), Account.workplace_id == workplace_id)
            .with_for_update(read=True)
        ).scalars()
        found = {row.id: row for row in rows}

        missing = sorted(wanted - found.keys(), key=str)
        if missing:
            raise AccountNotFoundError(str(missing[0]), str(workplace_id))
        for account in sorted(found.values(), key=lambda a: str(a.id)):
            if not account.is_active:
                raise AccountInactiveError(str(account.id))
        return found

    def _transition(
        self,
        workplace_id: UUID,
        account_id: UUID,
        target: AccountStatus,
        actor_id: UUID,
    ) -> AccountRecord:
        account = self.require(workplace_id, account_id, lock=True)
        check_account_transition(str(account.id), account.status, target)

        previous = account.status
        account.status = target.value
        account.updated_at = self._now()
        account.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "account_status_changed",
            extra={
                "account_id": str(account.id),
                "from_status": previous,
                "to_status": target.value,
                "version": account.version,
            },
        )
        return AccountRecord.from_model(account)


def _required_name(name: str) -> str:
    if not name or not name.strip():
        raise InvalidInputError("name", "account name is required")
    return name.strip()

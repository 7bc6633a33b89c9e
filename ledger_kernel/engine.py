"""
ledger_kernel.engine -- The public entry point of the ledger kernel.

Responsibility:
    Runs every kernel operation inside its own unit of work.  Mutations run
    in a read-write unit that commits on success and rolls back on any
    error; reads run in a read-only unit and see committed rows only.

Architecture position:
    Top of the kernel.  The transport layer (HTTP, CLI, jobs) calls
    LedgerEngine and never touches sessions, services or selectors.

Invariants enforced:
    - One operation, one unit of work.  A reversal (status change plus the
      reversing journal) is therefore atomic.
    - Services and selectors are built per unit and share its session.
    - Every call binds ``workplace_id`` and ``actor_id`` into the log
      context so service events carry them.
    - Constructing an engine registers the ORM immutability guards, however
      the session factory was built.

Failure modes:
    - Any LedgerError from the layers below propagates unchanged.
    - Storage failures surface as StorageError or ConcurrentModificationError
      (translated by the unit of work).

Usage:
    from ledger_kernel.config import load_settings
    from ledger_kernel.engine import LedgerEngine

    ledger = LedgerEngine.from_settings(load_settings(), create_schema=True)
    ledger.seed_standard_currencies(actor_id)
    workplace = ledger.create_workplace("Acme", "USD", actor_id)
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker

from ledger_kernel.config import LedgerSettings
from ledger_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from ledger_kernel.db.immutability import register_immutability_listeners
from ledger_kernel.db.unit_of_work import SqlAlchemyUnitOfWork
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import (
    AccountRecord,
    BalanceSheetReport,
    CurrencyRecord,
    EntryRequest,
    ExchangeRateRecord,
    JournalPage,
    JournalRecord,
    ProfitAndLossReport,
    TransactionFilter,
    TransactionPage,
    TransactionRecord,
    TrialBalanceReport,
    WorkplaceRecord,
)
from ledger_kernel.logging_config import LogContext, configure_logging, get_logger
from ledger_kernel.models.account import AccountType
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.selectors.report_selector import ReportSelector
from ledger_kernel.selectors.transaction_selector import TransactionSelector, iter_pages
from ledger_kernel.services.account_service import AccountService
from ledger_kernel.services.currency_service import CurrencyService
from ledger_kernel.services.exchange_rate_service import ExchangeRateService
from ledger_kernel.services.journal_service import JournalService
from ledger_kernel.services.workplace_service import WorkplaceService

logger = get_logger("engine")


class LedgerEngine:
    """
    Facade over the kernel's services and selectors.

    Contract:
        Every method is a complete transaction.  Returned values are frozen
        DTOs that stay valid after the unit of work has closed.

    Non-goals:
        - Authorization.  ``actor_id`` and ``requester_id`` are recorded,
          never checked.
        - Retries.  A ConflictError is returned to the caller as-is.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        settings: LedgerSettings | None = None,
    ):
        self.session_factory = session_factory
        self.clock = clock or SystemClock()
        self.settings = settings or LedgerSettings()
        register_immutability_listeners()

    @classmethod
    def from_settings(
        cls,
        settings: LedgerSettings,
        clock: Clock | None = None,
        create_schema: bool = False,
    ) -> LedgerEngine:
        """Initialize logging and the database engine, then build the engine."""
        configure_logging(level=settings.log_level_value)
        init_engine_from_url(
            settings.database_url,
            echo=settings.echo,
            pool_size=settings.pool_size,
            max_overflow=settings.max_overflow,
            pool_timeout=settings.pool_timeout,
        )
        if create_schema:
            create_tables()
        return cls(get_session_factory(), clock=clock, settings=settings)

    def _write(self, operation: str) -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork(self.session_factory, operation=operation)

    def _read(self, operation: str) -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork(self.session_factory, operation=operation, read_only=True)

    def _journal_selector(self, session: Session) -> JournalSelector:
        return JournalSelector(
            session, self.settings.default_page_size, self.settings.max_page_size
        )

    def _transaction_selector(self, session: Session) -> TransactionSelector:
        return TransactionSelector(
            session, self.settings.default_page_size, self.settings.max_page_size
        )

    # -------------------------------------------------------------------------
    # Reference data
    # -------------------------------------------------------------------------

    def register_currency(
        self,
        code: str,
        name: str,
        precision: int,
        actor_id: UUID,
        symbol: str | None = None,
    ) -> CurrencyRecord:
        with LogContext.bind(actor_id=actor_id), self._write("register_currency") as uow:
            return CurrencyService(uow.session, self.clock).register_currency(
                code, name, actor_id, precision=precision, symbol=symbol
            )

    def seed_standard_currencies(self, actor_id: UUID) -> list[CurrencyRecord]:
        with LogContext.bind(actor_id=actor_id), self._write("seed_currencies") as uow:
            return CurrencyService(uow.session, self.clock).seed_standard_currencies(actor_id)

    def get_currency(self, code: str) -> CurrencyRecord:
        with self._read("get_currency") as uow:
            return CurrencyService(uow.session, self.clock).get_currency(code)

    def list_currencies(self) -> list[CurrencyRecord]:
        with self._read("list_currencies") as uow:
            return CurrencyService(uow.session, self.clock).list_currencies()

    def add_exchange_rate(
        self,
        from_currency: str,
        to_currency: str,
        rate: Decimal | int | str,
        date_effective: date,
        actor_id: UUID,
    ) -> ExchangeRateRecord:
        with LogContext.bind(actor_id=actor_id), self._write("add_exchange_rate") as uow:
            return ExchangeRateService(uow.session, self.clock).add_rate(
                from_currency, to_currency, rate, date_effective, actor_id
            )

    def get_exchange_rate(self, from_currency: str, to_currency: str, on_date: date) -> ExchangeRateRecord:
        with self._read("get_exchange_rate") as uow:
            return ExchangeRateService(uow.session, self.clock).get_rate(
                from_currency, to_currency, on_date
            )

    def create_workplace(self, name: str, default_currency_code: str, actor_id: UUID) -> WorkplaceRecord:
        with LogContext.bind(actor_id=actor_id), self._write("create_workplace") as uow:
            return WorkplaceService(uow.session, self.clock).create_workplace(
                name, default_currency_code, actor_id
            )

    def get_workplace(self, workplace_id: UUID) -> WorkplaceRecord:
        with self._read("get_workplace") as uow:
            return WorkplaceService(uow.session, self.clock).get_workplace(workplace_id)

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    def create_account(
        self,
        workplace_id: UUID,
        name: str,
        account_type: AccountType | str,
        currency_code: str,
        creator_id: UUID,
        description: str | None = None,
    ) -> AccountRecord:
        with LogContext.bind(workplace_id=workplace_id, actor_id=creator_id), \
                self._write("create_account") as uow:
            return AccountService(uow.session, self.clock).create_account(
                workplace_id, name, account_type, currency_code, creator_id, description
            )

    def update_account(
        self,
        workplace_id: UUID,
        account_id: UUID,
        actor_id: UUID,
        name: str | None = None,
        description: str | None = None,
    ) -> AccountRecord:
        with LogContext.bind(workplace_id=workplace_id, actor_id=actor_id), \
                self._write("update_account") as uow:
            return AccountService(uow.session, self.clock).update_account(
                workplace_id, account_id, actor_id, name, description
            )

    def get_account(self, workplace_id: UUID, account_id: UUID) -> AccountRecord:
        with self._read("get_account") as uow:
            return AccountService(uow.session, self.clock).get_account(workplace_id, account_id)

    def list_accounts(self, workplace_id: UUID, include_inactive: bool = True) -> list[AccountRecord]:
        with self._read("list_accounts") as uow:
            return AccountService(uow.session, self.clock).list_accounts(
                workplace_id, include_inactive
            )

    def deactivate_account(self, workplace_id: UUID, account_id: UUID, actor_id: UUID) -> AccountRecord:
        with LogContext.bind(workplace_id=workplace_id, actor_id=actor_id), \
                self._write("deactivate_account") as uow:
            return AccountService(uow.session, self.clock).deactivate_account(
                workplace_id, account_id, actor_id
            )

    def reactivate_account(self, workplace_id: UUID, account_id: UUID, actor_id: UUID) -> AccountRecord:
        with LogContext.bind(workplace_id=workplace_id, actor_id=actor_id), \
                self._write("reactivate_account") as uow:
            return AccountService(uow.session, self.clock).reactivate_account(
                workplace_id, account_id, actor_id
            )

    def balance_as_of(
        self,
        account_id: UUID,
        as_of_date: date,
        workplace_id: UUID | None = None,
    ) -> Decimal:
        with self._read("balance_as_of") as uow:
            return LedgerSelector(uow.session).balance_as_of(account_id, as_of_date, workplace_id)

    def native_balance_as_of(
        self,
        account_id: UUID,
        as_of_date: date,
        workplace_id: UUID | None = None,
    ) -> Decimal:
        with self._read("native_balance_as_of") as uow:
            return LedgerSelector(uow.session).native_balance_as_of(
                account_id, as_of_date, workplace_id
            )

    # -------------------------------------------------------------------------
    # Journals
    # -------------------------------------------------------------------------

    def post_journal(
        self,
        workplace_id: UUID,
        journal_date: date,
        description: str,
        currency_code: str,
        entries: Sequence[EntryRequest],
        creator_id: UUID,
    ) -> JournalRecord:
        with LogContext.bind(workplace_id=workplace_id, actor_id=creator_id), \
                self._write("post_journal") as uow:
            return JournalService(uow.session, self.clock).post_journal(
                workplace_id, journal_date, description, currency_code, entries, creator_id
            )

    def reverse_journal(self, workplace_id: UUID, journal_id: UUID, actor_id: UUID) -> JournalRecord:
        with LogContext.bind(workplace_id=workplace_id, actor_id=actor_id), \
                self._write("reverse_journal") as uow:
            return JournalService(uow.session, self.clock).reverse_journal(
                workplace_id, journal_id, actor_id
            )

    def get_journal_with_transactions(
        self,
        workplace_id: UUID,
        journal_id: UUID,
    ) -> tuple[JournalRecord, list[TransactionRecord]]:
        with self._read("get_journal") as uow:
            return self._journal_selector(uow.session).get_journal_with_transactions(
                workplace_id, journal_id
            )

    def list_journals(
        self,
        workplace_id: UUID,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> JournalPage:
        with self._read("list_journals") as uow:
            return self._journal_selector(uow.session).list_journals(workplace_id, limit, cursor)

    def list_transactions_by_account(
        self,
        workplace_id: UUID,
        account_id: UUID,
        filter: TransactionFilter | None = None,
    ) -> TransactionPage:
        with self._read("list_transactions") as uow:
            return self._transaction_selector(uow.session).list_transactions_by_account(
                workplace_id, account_id, filter
            )

    def iter_transactions_by_account(
        self,
        workplace_id: UUID,
        account_id: UUID,
        filter: TransactionFilter | None = None,
    ) -> Iterator[TransactionRecord]:
        """
        Yield every matching transaction.

        Each page is read in its own short read-only unit of work, so a slow
        consumer never holds a database transaction open.  Pages continue
        from the cursor, so rows posted mid-iteration never cause
        duplicates or skips among rows already sorted before the cursor.
        """
        return iter_pages(
            lambda page_filter: self.list_transactions_by_account(workplace_id, account_id, page_filter),
            filter,
        )

    # -------------------------------------------------------------------------
    # Reports
    # -------------------------------------------------------------------------

    def trial_balance(self, workplace_id: UUID, as_of_date: date, requester_id: UUID) -> TrialBalanceReport:
        with LogContext.bind(workplace_id=workplace_id, actor_id=requester_id), \
                self._read("trial_balance") as uow:
            return ReportSelector(uow.session, self.clock).trial_balance(
                workplace_id, as_of_date, requester_id
            )

    def profit_and_loss(
        self,
        workplace_id: UUID,
        from_date: date,
        to_date: date,
        requester_id: UUID,
        currency_code: str | None = None,
    ) -> ProfitAndLossReport:
        with LogContext.bind(workplace_id=workplace_id, actor_id=requester_id), \
                self._read("profit_and_loss") as uow:
            return ReportSelector(uow.session, self.clock).profit_and_loss(
                workplace_id, from_date, to_date, requester_id, currency_code
            )

    def balance_sheet(
        self,
        workplace_id: UUID,
        as_of_date: date,
        requester_id: UUID,
        currency_code: str | None = None,
    ) -> BalanceSheetReport:
        with LogContext.bind(workplace_id=workplace_id, actor_id=requester_id), \
                self._read("balance_sheet") as uow:
            return ReportSelector(uow.session, self.clock).balance_sheet(
                workplace_id, as_of_date, requester_id, currency_code
            )

"""
Module: ledger_kernel.db.unit_of_work
Responsibility: The transactional boundary for every kernel operation.  A
    unit of work owns one Session; services and selectors receive that session
    and only flush.  The unit of work commits on success and rolls back on
    any exception.
Architecture position: Kernel > DB.  May import from db/engine.py and
    exceptions.py.  MUST NOT import from models/, services/, or selectors/.

Invariants enforced:
    - Atomicity: either every write in the unit commits or none does.
    - Error taxonomy: storage exceptions leave the unit as LedgerError
      subclasses.  StaleDataError (a lost optimistic-concurrency race)
      becomes ConcurrentModificationError; any other SQLAlchemyError becomes
      StorageError.  LedgerError subclasses pass through unchanged.

Failure modes:
    - ConcurrentModificationError (CONFLICT) on a lost race.
    - StorageError (INTERNAL) on any other database failure, including a
      failed COMMIT.
"""

from abc import ABC, abstractmethod
from types import TracebackType

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from ledger_kernel.db.engine import READ_ONLY_OPTION
from ledger_kernel.exceptions import (
    ConcurrentModificationError,
    LedgerError,
    StorageError,
)
from ledger_kernel.logging_config import get_logger

logger = get_logger("db.unit_of_work")


def translate_storage_error(exc: BaseException, operation: str) -> LedgerError | None:
    """Map a storage exception onto the kernel taxonomy.

    Returns None for exceptions that should propagate unchanged.
    """
    if isinstance(exc, LedgerError):
        return None
    if isinstance(exc, StaleDataError):
        return ConcurrentModificationError(entity_type=operation)
    if isinstance(exc, SQLAlchemyError):
        return StorageError(operation=operation, detail=str(exc).splitlines()[0])
    return None


class UnitOfWork(ABC):
    """
    Abstract transactional boundary.

    Contract:
        Used as a context manager.  ``session`` is valid only inside the
        ``with`` block.  Leaving the block normally commits; leaving it with
        an exception rolls back and re-raises (translated into the kernel
        taxonomy where it is a storage error).
    """

    session: Session

    @abstractmethod
    def commit(self) -> None:
        ...

    @abstractmethod
    def rollback(self) -> None:
        ...

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        return False


class SqlAlchemyUnitOfWork(UnitOfWork):
    """
    Unit of work backed by a SQLAlchemy session.

    Guarantees:
        - A read-only unit never writes: ``commit()`` on it only ends the
          transaction.
        - The session is always closed on exit.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        operation: str = "unit_of_work",
        read_only: bool = False,
    ):
        self._session_factory = session_factory
        self.operation = operation
        self.read_only = read_only

    def __enter__(self) -> "SqlAlchemyUnitOfWork":
        self.session = self._session_factory()
        if self.read_only:
            self.session.connection(execution_options={READ_ONLY_OPTION: True})
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc is None:
                self.commit()
            else:
                self.rollback()
                translated = translate_storage_error(exc, self.operation)
                if translated is not None:
                    logger.warning(
                        "unit_of_work_failed",
                        extra={
                            "operation": self.operation,
                            "error_code": translated.code,
                            "cause": type(exc).__name__,
                        },
                    )
                    raise translated from exc
        finally:
            self.session.close()
        return False

    def commit(self) -> None:
        if self.read_only:
            self.session.rollback()
            return
        try:
            self.session.commit()
        except Exception as exc:
            self.session.rollback()
            translated = translate_storage_error(exc, self.operation)
            if translated is None:
                raise
            logger.error(
                "unit_of_work_commit_failed",
                extra={"operation": self.operation, "error_code": translated.code},
            )
            raise translated from exc
        logger.debug("unit_of_work_committed", extra={"operation": self.operation})

    def rollback(self) -> None:
        self.session.rollback()
        logger.debug("unit_of_work_rolled_back", extra={"operation": self.operation})

"""
Module: ledger_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.
    Selectors are the query side of the kernel: they compute balances,
    listings and reports from Transaction rows and never mutate anything.
Architecture position: Kernel > Selectors.  May import from db/, domain/
    and models/.  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors never call add(), delete(), flush() or
      commit() on the session.
    - DTO return convention: selectors return frozen dataclasses, never ORM
      instances.
    - No stored balances: every figure is derived at query time.
"""

from abc import ABC
from typing import Generic, TypeVar

from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.db.base import Base
from ledger_kernel.exceptions import WorkplaceNotFoundError
from ledger_kernel.models.workplace import Workplace

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Non-goals:
        - BaseSelector defines no queries; subclasses implement the
          domain-specific ones.
    """

    def __init__(self, session: Session):
        self.session = session

    def _require_workplace(self, workplace_id: UUID) -> Workplace:
        workplace = self.session.get(Workplace, workplace_id)
        if workplace is None:
            raise WorkplaceNotFoundError(str(workplace_id))
        return workplace

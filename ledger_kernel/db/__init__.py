"""Database layer - engine, base classes, types, and unit of work."""

from ledger_kernel.db.base import Base, ExactDecimal, TrackedBase, UUIDString
from ledger_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)
from ledger_kernel.db.unit_of_work import SqlAlchemyUnitOfWork, UnitOfWork

__all__ = [
    "Base",
    "ExactDecimal",
    "TrackedBase",
    "UUIDString",
    "create_tables",
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "session_scope",
    "SqlAlchemyUnitOfWork",
    "UnitOfWork",
]

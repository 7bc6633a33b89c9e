"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

Committed ledger rows must be tamper-proof.  A posted journal is never edited;
it is reversed by a new journal that leaves a visible trail.  These listeners
catch modifications made through SQLAlchemy before the SQL reaches the
database.

    session.flush()
         |
         v
    [before_update event] --> _check_*_immutability() --> ImmutabilityViolationError
         |
         v
    [before_delete event] --> _check_*_delete() -------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity        | Rule                                         | Why
--------------|----------------------------------------------|-----------------------------
Journal       | Only POSTED -> REVERSED; never deleted       | Reversal is the only edit
Transaction   | ALWAYS immutable, never deleted              | The financial record itself
ExchangeRate  | ALWAYS immutable, never deleted              | Append-only rate history
Currency      | code/precision frozen once referenced        | Would reinterpret amounts
Account       | account_type/currency/workplace never change | Would reinterpret history

===============================================================================
DESIGN DECISIONS
===============================================================================

1. updated_at / updated_by_id / version may change on any protected row.
   They are audit and concurrency metadata, not financial data.

2. Inline model imports avoid a db <-> models import cycle.

3. Bulk UPDATE/DELETE statements bypass mapper events.  The kernel never
   issues them against protected tables (SequenceService only updates
   sequence_counters).

===============================================================================
USAGE
===============================================================================

    from ledger_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # idempotent, called at startup

TESTS ONLY:

    unregister_immutability_listeners()
"""

from sqlalchemy import event, inspect, select
from sqlalchemy.orm.attributes import get_history

from ledger_kernel.exceptions import ImmutabilityViolationError
from ledger_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_METADATA_FIELDS = frozenset({"updated_at", "updated_by_id", "version"})


def _changed_fields(target) -> list[str]:
    return [
        attr.key
        for attr in inspect(target).attrs
        if attr.key not in _METADATA_FIELDS and attr.history.has_changes()
    ]


def _block(entity_type: str, target, operation: str, reason: str, field: str | None = None):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
            "field": field,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _check_journal_immutability(mapper, connection, target):
    """
    Allow exactly one change on a journal: status POSTED -> REVERSED.
    """
    from ledger_kernel.models.journal import JournalStatus

    for key in _changed_fields(target):
        if key != "status":
            _block("Journal", target, "UPDATE", f"Cannot modify field '{key}' on a journal", key)

    status_history = get_history(target, "status")
    if status_history.deleted:
        old_status = status_history.deleted[0]
        new_status = status_history.added[0] if status_history.added else None
        if not (old_status == JournalStatus.POSTED and new_status == JournalStatus.REVERSED):
            _block(
                "Journal",
                target,
                "UPDATE",
                f"Illegal status change {old_status} -> {new_status}",
                "status",
            )


def _check_journal_delete(mapper, connection, target):
    _block("Journal", target, "DELETE", "Journals cannot be deleted")


def _check_transaction_immutability(mapper, connection, target):
    changed = _changed_fields(target)
    if changed:
        _block(
            "Transaction",
            target,
            "UPDATE",
            "Transactions cannot be modified",
            changed[0],
        )


def _check_transaction_delete(mapper, connection, target):
    _block("Transaction", target, "DELETE", "Transactions cannot be deleted")


def _check_exchange_rate_immutability(mapper, connection, target):
    changed = _changed_fields(target)
    if changed:
        _block(
            "ExchangeRate",
            target,
            "UPDATE",
            "Exchange rates are append-only",
            changed[0],
        )


def _check_exchange_rate_delete(mapper, connection, target):
    _block("ExchangeRate", target, "DELETE", "Exchange rates are append-only")


def _currency_is_referenced(connection, code: str) -> bool:
    from ledger_kernel.models.account import Account
    from ledger_kernel.models.journal import Transaction

    for stmt in (
        select(Account.id).where(Account.currency_code == code).limit(1),
        select(Transaction.id).where(Transaction.currency_code == code).limit(1),
    ):
        if connection.execute(stmt).first() is not None:
            return True
    return False


def _check_currency_immutability(mapper, connection, target):
    for key in ("code", "precision"):
        hist = get_history(target, key)
        if not hist.has_changes():
            continue
        original_code = hist.deleted[0] if key == "code" and hist.deleted else target.code
        if _currency_is_referenced(connection, original_code):
            _block(
                "Currency",
                target,
                "UPDATE",
                f"Cannot change '{key}' of a referenced currency",
                key,
            )


def _check_currency_delete(mapper, connection, target):
    if _currency_is_referenced(connection, target.code):
        _block("Currency", target, "DELETE", "Referenced currencies cannot be deleted")


def _check_account_structural_immutability(mapper, connection, target):
    for key in ("workplace_id", "account_type", "currency_code"):
        if get_history(target, key).has_changes():
            _block("Account", target, "UPDATE", f"Cannot modify structural field '{key}'", key)


def _check_account_delete(mapper, connection, target):
    _block("Account", target, "DELETE", "Accounts are deactivated, never deleted")


def _listeners():
    from ledger_kernel.models.account import Account
    from ledger_kernel.models.currency import Currency
    from ledger_kernel.models.exchange_rate import ExchangeRate
    from ledger_kernel.models.journal import Journal, Transaction

    return [
        (Journal, "before_update", _check_journal_immutability),
        (Journal, "before_delete", _check_journal_delete),
        (Transaction, "before_update", _check_transaction_immutability),
        (Transaction, "before_delete", _check_transaction_delete),
        (ExchangeRate, "before_update", _check_exchange_rate_immutability),
        (ExchangeRate, "before_delete", _check_exchange_rate_delete),
        (Currency, "before_update", _check_currency_immutability),
        (Currency, "before_delete", _check_currency_delete),
        (Account, "before_update", _check_account_structural_immutability),
        (Account, "before_delete", _check_account_delete),
    ]


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Safe to call more than once.
    """
    for target, event_name, fn in _listeners():
        if not event.contains(target, event_name, fn):
            event.listen(target, event_name, fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    for target, event_name, fn in _listeners():
        if event.contains(target, event_name, fn):
            event.remove(target, event_name, fn)

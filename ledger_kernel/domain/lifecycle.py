"""
Lifecycle -- explicit transition tables for accounts and journals.

Journal:  POSTED -> REVERSED.  REVERSED is terminal.
Account:  ACTIVE <-> INACTIVE.

Any transition not listed raises the matching InvalidTransitionError
subclass.
"""

from ledger_kernel.exceptions import (
    AccountAlreadyActiveError,
    AccountAlreadyInactiveError,
    InvalidTransitionError,
    JournalAlreadyReversedError,
)
from ledger_kernel.models.account import AccountStatus
from ledger_kernel.models.journal import JournalStatus

JOURNAL_TRANSITIONS: dict[JournalStatus, frozenset[JournalStatus]] = {
    JournalStatus.POSTED: frozenset({JournalStatus.REVERSED}),
    # Terminal
    JournalStatus.REVERSED: frozenset(),
}

ACCOUNT_TRANSITIONS: dict[AccountStatus, frozenset[AccountStatus]] = {
    AccountStatus.ACTIVE: frozenset({AccountStatus.INACTIVE}),
    AccountStatus.INACTIVE: frozenset({AccountStatus.ACTIVE}),
}


def check_journal_transition(journal_id: str, current: str, target: JournalStatus) -> JournalStatus:
    current_status = JournalStatus(current)
    if target in JOURNAL_TRANSITIONS[current_status]:
        return target
    if current_status is JournalStatus.REVERSED:
        raise JournalAlreadyReversedError(journal_id)
    raise InvalidTransitionError("Journal", journal_id, current_status.value, target.value)


def check_account_transition(account_id: str, current: str, target: AccountStatus) -> AccountStatus:
    current_status = AccountStatus(current)
    if target in ACCOUNT_TRANSITIONS[current_status]:
        return target
    if target is AccountStatus.INACTIVE:
        raise AccountAlreadyInactiveError(account_id)
    raise AccountAlreadyActiveError(account_id)

"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the kernel (an HTTP layer, a CLI, a batch importer) must map every
failure onto a response without parsing message strings.  Every error:

  1. Has a TYPED exception class (catch by type, not message)
  2. Has a CODE attribute (machine-readable, API-safe)
  3. Has a KIND (one of four closed categories)
  4. Carries structured DATA (not just a message string)

Example - WRONG way to handle errors:
    try:
        engine.post_journal(...)
    except Exception as e:
        if "unbalanced" in str(e):  # FRAGILE - message might change
            ...

Example - RIGHT way:
    try:
        engine.post_journal(...)
    except UnbalancedJournalError as e:
        api_response(400, code=e.code, debits=e.debits, credits=e.credits)
    except LedgerError as e:
        api_response(STATUS_BY_KIND[e.kind], code=e.code)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from LedgerError:

    LedgerError (base)
    |
    +-- ValidationError                       kind = VALIDATION
    |   +-- InvalidInputError
    |   +-- TooFewEntriesError
    |   +-- TooFewAccountsError
    |   +-- InvalidAmountError
    |   +-- AmountPrecisionError
    |   +-- UnbalancedJournalError
    |   +-- InvalidCurrencyError
    |   +-- ExchangeRateUnavailableError
    |   +-- InvalidExchangeRateError
    |   +-- AccountInactiveError
    |   +-- InvalidTransitionError
    |   |   +-- AccountAlreadyInactiveError
    |   |   +-- AccountAlreadyActiveError
    |   |   +-- JournalAlreadyReversedError
    |   |   +-- ReversalNotReversibleError
    |   +-- InvalidDateRangeError
    |   +-- InvalidCursorError
    |
    +-- NotFoundError                         kind = NOT_FOUND
    |   +-- WorkplaceNotFoundError
    |   +-- AccountNotFoundError
    |   +-- JournalNotFoundError
    |   +-- CurrencyNotFoundError
    |   +-- ExchangeRateNotFoundError
    |
    +-- ConflictError                         kind = CONFLICT
    |   +-- ConcurrentModificationError
    |   +-- CurrencyAlreadyExistsError
    |
    +-- InternalError                         kind = INTERNAL
        +-- StorageError
        +-- ImmutabilityViolationError
        +-- LedgerIntegrityError
        +-- ConfigurationError

===============================================================================
DESIGN DECISIONS
===============================================================================

1. WHY A CLOSED SET OF KINDS?
   The outer layer maps kinds to transport status codes (400 / 404 / 409 /
   500).  Exhaustive matching over ErrorKind means a new leaf class can never
   fall through to a generic handler.

2. WHY code AS A CLASS ATTRIBUTE?
   Codes are static per exception type and usable without instantiation.

3. WHY IS ImmutabilityViolationError INTERNAL?
   No kernel operation modifies a committed transaction.  Reaching that
   guard means a programming error or direct ORM misuse, not bad input.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of error categories."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal"


class LedgerError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification and inherit `kind` from their category.
    """

    code: str = "LEDGER_ERROR"
    kind: ErrorKind = ErrorKind.INTERNAL


def error_kind(exc: BaseException) -> ErrorKind:
    """Classify any exception; non-ledger exceptions are INTERNAL."""
    if isinstance(exc, LedgerError):
        return exc.kind
    return ErrorKind.INTERNAL


# =============================================================================
# Validation
# =============================================================================


class ValidationError(LedgerError):
    """Base exception for rejected input."""

    code: str = "VALIDATION_ERROR"
    kind: ErrorKind = ErrorKind.VALIDATION


class InvalidInputError(ValidationError):
    """A required field is missing, blank, or malformed."""

    code: str = "INVALID_INPUT"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class TooFewEntriesError(ValidationError):
    """A journal needs at least two entries."""

    code: str = "TOO_FEW_ENTRIES"

    def __init__(self, count: int, minimum: int = 2):
        self.count = count
        self.minimum = minimum
        super().__init__(
            f"Journal must have at least {minimum} entries, got {count}"
        )


class TooFewAccountsError(ValidationError):
    """A journal must move value between at least two different accounts."""

    code: str = "TOO_FEW_ACCOUNTS"

    def __init__(self, count: int, minimum: int = 2):
        self.count = count
        self.minimum = minimum
        super().__init__(
            f"Journal must touch at least {minimum} different accounts, got {count}"
        )


class InvalidAmountError(ValidationError):
    """Amount is not a strictly positive decimal."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: str, reason: str = "amount must be positive"):
        self.amount = amount
        self.reason = reason
        super().__init__(f"Invalid amount {amount}: {reason}")


class AmountPrecisionError(ValidationError):
    """Amount has more decimal places than its currency allows."""

    code: str = "AMOUNT_PRECISION_EXCEEDED"

    def __init__(self, amount: str, currency: str, precision: int):
        self.amount = amount
        self.currency = currency
        self.precision = precision
        super().__init__(
            f"Amount {amount} exceeds {precision} decimal places allowed for {currency}"
        )


class UnbalancedJournalError(ValidationError):
    """Journal debits do not equal credits in the base currency."""

    code: str = "UNBALANCED_JOURNAL"

    def __init__(self, debits: str, credits: str, currency: str):
        self.debits = debits
        self.credits = credits
        self.currency = currency
        super().__init__(
            f"Journal unbalanced in {currency}: debits={debits}, credits={credits}"
        )


class InvalidCurrencyError(ValidationError):
    """Currency code is malformed or not registered."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str, reason: str = "unknown currency"):
        self.currency = currency
        self.reason = reason
        super().__init__(f"Invalid currency '{currency}': {reason}")


class ExchangeRateUnavailableError(ValidationError):
    """No rate exists for the pair on or before the journal date."""

    code: str = "EXCHANGE_RATE_UNAVAILABLE"

    def __init__(self, from_currency: str, to_currency: str, as_of: str):
        self.from_currency = from_currency
        self.to_currency = to_currency
        self.as_of = as_of
        super().__init__(
            f"No rate available for {from_currency}->{to_currency} as of {as_of}"
        )


class InvalidExchangeRateError(ValidationError):
    """Rate value or currency pair is not acceptable."""

    code: str = "INVALID_EXCHANGE_RATE"

    def __init__(self, rate: str, reason: str):
        self.rate = rate
        self.reason = reason
        super().__init__(f"Invalid exchange rate {rate}: {reason}")


class AccountInactiveError(ValidationError):
    """Account cannot receive postings."""

    code: str = "ACCOUNT_INACTIVE"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account is inactive: {account_id}")


class InvalidTransitionError(ValidationError):
    """Lifecycle transition is not in the transition table."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, entity_type: str, entity_id: str, from_state: str, to_state: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"{entity_type} {entity_id} cannot move from {from_state} to {to_state}"
        )


class AccountAlreadyInactiveError(InvalidTransitionError):
    """Account is already inactive."""

    code: str = "ACCOUNT_ALREADY_INACTIVE"

    def __init__(self, account_id: str):
        super().__init__("Account", account_id, "inactive", "inactive")


class AccountAlreadyActiveError(InvalidTransitionError):
    """Account is already active."""

    code: str = "ACCOUNT_ALREADY_ACTIVE"

    def __init__(self, account_id: str):
        super().__init__("Account", account_id, "active", "active")


class JournalAlreadyReversedError(InvalidTransitionError):
    """Journal has already been reversed."""

    code: str = "JOURNAL_ALREADY_REVERSED"

    def __init__(self, journal_id: str, reversed_by_id: str | None = None):
        self.reversed_by_id = reversed_by_id
        super().__init__("Journal", journal_id, "reversed", "reversed")


class ReversalNotReversibleError(InvalidTransitionError):
    """A reversing journal cannot itself be reversed."""

    code: str = "REVERSAL_NOT_REVERSIBLE"

    def __init__(self, journal_id: str, reversal_of_id: str):
        self.reversal_of_id = reversal_of_id
        super().__init__("Journal", journal_id, "posted", "reversed")


class InvalidDateRangeError(ValidationError):
    """Start date is after end date."""

    code: str = "INVALID_DATE_RANGE"

    def __init__(self, from_date: str, to_date: str):
        self.from_date = from_date
        self.to_date = to_date
        super().__init__(f"from_date {from_date} is after to_date {to_date}")


class InvalidCursorError(ValidationError):
    """Pagination cursor could not be decoded."""

    code: str = "INVALID_CURSOR"

    def __init__(self, cursor: str):
        self.cursor = cursor
        super().__init__(f"Invalid pagination cursor: {cursor!r}")


# =============================================================================
# Not found
# =============================================================================


class NotFoundError(LedgerError):
    """Base exception for missing or foreign-workplace entities."""

    code: str = "NOT_FOUND"
    kind: ErrorKind = ErrorKind.NOT_FOUND


class WorkplaceNotFoundError(NotFoundError):
    """Workplace with given ID was not found."""

    code: str = "WORKPLACE_NOT_FOUND"

    def __init__(self, workplace_id: str):
        self.workplace_id = workplace_id
        super().__init__(f"Workplace not found: {workplace_id}")


class AccountNotFoundError(NotFoundError):
    """Account does not exist in the requested workplace."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_id: str, workplace_id: str | None = None):
        self.account_id = account_id
        self.workplace_id = workplace_id
        super().__init__(f"Account not found: {account_id}")


class JournalNotFoundError(NotFoundError):
    """Journal does not exist in the requested workplace."""

    code: str = "JOURNAL_NOT_FOUND"

    def __init__(self, journal_id: str, workplace_id: str | None = None):
        self.journal_id = journal_id
        self.workplace_id = workplace_id
        super().__init__(f"Journal not found: {journal_id}")


class CurrencyNotFoundError(NotFoundError):
    """Currency code is not registered."""

    code: str = "CURRENCY_NOT_FOUND"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Currency not found: {currency}")


class ExchangeRateNotFoundError(NotFoundError):
    """No rate found for a direct lookup."""

    code: str = "EXCHANGE_RATE_NOT_FOUND"

    def __init__(self, from_currency: str, to_currency: str, as_of: str):
        self.from_currency = from_currency
        self.to_currency = to_currency
        self.as_of = as_of
        super().__init__(
            f"Exchange rate not found: {from_currency}->{to_currency} as of {as_of}"
        )


# =============================================================================
# Conflict
# =============================================================================


class ConflictError(LedgerError):
    """Base exception for lost races and uniqueness conflicts."""

    code: str = "CONFLICT"
    kind: ErrorKind = ErrorKind.CONFLICT


class ConcurrentModificationError(ConflictError):
    """Row was modified by another transaction."""

    code: str = "CONCURRENT_MODIFICATION"

    def __init__(self, entity_type: str, entity_id: str | None = None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Concurrent modification of {entity_type} {entity_id or ''}".rstrip()
        )


class CurrencyAlreadyExistsError(ConflictError):
    """Currency code is already registered."""

    code: str = "CURRENCY_ALREADY_EXISTS"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Currency already exists: {currency}")


# =============================================================================
# Internal
# =============================================================================


class InternalError(LedgerError):
    """Base exception for storage faults and broken invariants."""

    code: str = "INTERNAL_ERROR"
    kind: ErrorKind = ErrorKind.INTERNAL


class StorageError(InternalError):
    """Underlying store failed; the unit of work was rolled back."""

    code: str = "STORAGE_ERROR"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Storage failure during {operation}: {detail}")


class ImmutabilityViolationError(InternalError):
    """Attempted to modify or delete an immutable record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


class LedgerIntegrityError(InternalError):
    """Derived figures disagree with the double-entry identity."""

    code: str = "LEDGER_INTEGRITY_VIOLATION"

    def __init__(self, report: str, expected: str, actual: str):
        self.report = report
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{report} out of balance: expected {expected}, got {actual}"
        )


class ConfigurationError(InternalError):
    """Settings could not be loaded or are invalid."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid configuration '{key}': {reason}")

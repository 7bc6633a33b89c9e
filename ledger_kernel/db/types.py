"""
Module: ledger_kernel.db.types
Responsibility: Utility functions for exact monetary arithmetic.  Centralizes precision, rounding, and currency-code format
    checks so that every model and service uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats anywhere in the kernel.  to_decimal() rejects float input.
    - round_money() is the ONLY sanctioned rounding function, and it rounds
      half-to-even.
    - Currency codes are exactly three ASCII uppercase letters.

Failure modes:
    - InvalidAmountError on float, non-numeric, NaN or infinite input.
    - InvalidCurrencyError on malformed currency codes.
"""

import re
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation, localcontext

from ledger_kernel.exceptions import InvalidAmountError, InvalidCurrencyError

MAX_CURRENCY_PRECISION = 18
RATE_DECIMAL_PLACES = 18
DEFAULT_ROUNDING = ROUND_HALF_EVEN

# Digits carried through intermediate products (38 + 38)
WORKING_PRECISION = 76

_CURRENCY_CODE_RE = re.compile(r"^[A-Z]{3}$")


def to_decimal(value: Decimal | int | str) -> Decimal:
    """
    Coerce a caller-supplied amount into a finite Decimal.

    Floats are rejected outright: a float has already lost the exact value
    the caller meant.

    Raises:
        InvalidAmountError: on float, unparsable, NaN or infinite input.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidAmountError(repr(value), "floating point amounts are not accepted")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(value)
        except InvalidOperation as exc:
            raise InvalidAmountError(repr(value), "not a decimal number") from exc
    else:
        raise InvalidAmountError(repr(value), f"unsupported type {type(value).__name__}")
    if not result.is_finite():
        raise InvalidAmountError(str(result), "amount must be finite")
    return result


def decimal_places(value: Decimal) -> int:
    """Number of significant fractional digits (trailing zeros ignored)."""
    exponent = value.normalize().as_tuple().exponent
    return max(0, -exponent) if isinstance(exponent, int) else 0


def round_money(
    value: Decimal,
    places: int = 2,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given number of decimal places.

    This is the ONLY sanctioned rounding function for financial values in the
    kernel.  Default rounding is half-to-even.
    """
    with localcontext() as ctx:
        ctx.prec = WORKING_PRECISION
        return value.quantize(Decimal(1).scaleb(-places), rounding=rounding)


def validate_currency_code(code: str) -> str:
    """
    Normalize and validate a currency code format.

    Returns:
        The uppercase, trimmed code.

    Raises:
        InvalidCurrencyError: if the code is not three ASCII letters.
    """
    if not isinstance(code, str) or not code.strip():
        raise InvalidCurrencyError(str(code), "currency code is required")
    normalized = code.strip().upper()
    if not _CURRENCY_CODE_RE.match(normalized):
        raise InvalidCurrencyError(code, "must be three letters")
    return normalized


def exact_sum(values) -> Decimal:
    """Sum Decimals without the default context's 28-digit rounding."""
    with localcontext() as ctx:
        ctx.prec = WORKING_PRECISION
        return sum(values, Decimal("0"))


def exact_product(a: Decimal, b: Decimal) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = WORKING_PRECISION
        return a * b

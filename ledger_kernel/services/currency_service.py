"""
CurrencyService -- the currency directory.

Responsibility:
    Registers currencies and resolves currency codes to their precision.
    Every other service that touches an amount asks this service how many
    decimal places the amount may carry.

Architecture position:
    Kernel > Services.  Leaf service: depends on nothing but the session.

Invariants enforced:
    - Codes are three uppercase letters and unique.
    - precision is within 0..18.
    - A referenced currency's code and precision never change (enforced by
      db/immutability.py; this service offers no update operation).

Failure modes:
    - InvalidCurrencyError (VALIDATION) on malformed codes or precision, and
      from ``require_for_posting`` when a code is not registered.
    - CurrencyAlreadyExistsError (CONFLICT) on duplicate registration.
    - CurrencyNotFoundError (NOT_FOUND) from ``get_currency``.
"""

from uuid import UUID

from sqlalchemy import select

from ledger_kernel.db.types import MAX_CURRENCY_PRECISION, validate_currency_code
from ledger_kernel.domain.currency import STANDARD_CURRENCIES, default_precision
from ledger_kernel.domain.dtos import CurrencyRecord
from ledger_kernel.exceptions import (
    CurrencyAlreadyExistsError,
    CurrencyNotFoundError,
    InvalidCurrencyError,
    InvalidInputError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.currency import Currency
from ledger_kernel.services.base import BaseService

logger = get_logger("services.currency")


class CurrencyService(BaseService[Currency]):
    """
    Registry of currencies known to the ledger.

    Contract:
        ``register_currency`` validates and inserts; lookups never insert.
    """

    def register_currency(
        self,
        code: str,
        name: str,
        actor_id: UUID,
        precision: int | None = None,
        symbol: str | None = None,
    ) -> CurrencyRecord:
        normalized = validate_currency_code(code)
        if not name or not name.strip():
            raise InvalidInputError("name", "currency name is required")
        if precision is None:
            precision = default_precision(normalized)
        if isinstance(precision, bool) or not isinstance(precision, int):
            raise InvalidCurrencyError(normalized, "precision must be an integer")
        if not 0 <= precision <= MAX_CURRENCY_PRECISION:
            raise InvalidCurrencyError(
                normalized, f"precision must be between 0 and {MAX_CURRENCY_PRECISION}"
            )

        if self._find(normalized) is not None:
            raise CurrencyAlreadyExistsError(normalized)

        now = self._now()
        currency = Currency(
            code=normalized,
            name=name.strip(),
            symbol=symbol,
            precision=precision,
            created_at=now,
            updated_at=now,
            created_by_id=actor_id,
        )
        self.session.add(currency)
        self.session.flush()

        logger.info(
            "currency_registered",
            extra={"currency": normalized, "precision": precision},
        )
        return CurrencyRecord.from_model(currency)

    def seed_standard_currencies(self, actor_id: UUID) -> list[CurrencyRecord]:
        """Register any standard currency not yet present (idempotent)."""
        created = []
        for info in STANDARD_CURRENCIES:
            if self._find(info.code) is None:
                created.append(
                    self.register_currency(
                        info.code, info.name, actor_id, info.precision, info.symbol
                    )
                )
        return created

    def get_currency(self, code: str) -> CurrencyRecord:
        normalized = validate_currency_code(code)
        currency = self._find(normalized)
        if currency is None:
            raise CurrencyNotFoundError(normalized)
        return CurrencyRecord.from_model(currency)

    def list_currencies(self) -> list[CurrencyRecord]:
        rows = self.session.execute(select(Currency).order_by(Currency.code)).scalars()
        return [CurrencyRecord.from_model(row) for row in rows]

    def require_for_posting(self, code: str) -> Currency:
        """Resolve a code referenced by input; unknown codes are a validation failure."""
        normalized = validate_currency_code(code)
        currency = self._find(normalized)
        if currency is None:
            raise InvalidCurrencyError(normalized, "currency is not registered")
        return currency

    def precision_of(self, code: str) -> int:
        return self.require_for_posting(code).precision

    def _find(self, code: str) -> Currency | None:
        return self.session.execute(
            select(Currency).where(Currency.code == code)
        ).scalar_one_or_none()

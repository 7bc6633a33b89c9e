"""
ExchangeRateService -- append-only dated exchange rates.

Responsibility:
    Records directional rates and answers "which rate converts FROM into TO
    on date D".

Architecture position:
    Kernel > Services.  Depends on CurrencyService and SequenceService.

Invariants enforced:
    - Rates are never updated or deleted; a correction is a new row.
    - Lookup returns the row with the latest ``date_effective <= D``; among
      rows with that same date the highest ``seq`` (last inserted) wins.
    - Direct pairs only: no inversion, no triangulation.

Failure modes:
    - InvalidExchangeRateError (VALIDATION) for rate <= 0 or from == to.
    - InvalidCurrencyError (VALIDATION) for unknown currencies.
    - ExchangeRateUnavailableError (VALIDATION) from ``rate_for_posting``.
    - ExchangeRateNotFoundError (NOT_FOUND) from ``get_rate``.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.db.types import RATE_DECIMAL_PLACES, decimal_places, to_decimal
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import ExchangeRateRecord
from ledger_kernel.exceptions import (
    ExchangeRateNotFoundError,
    ExchangeRateUnavailableError,
    InvalidAmountError,
    InvalidExchangeRateError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.exchange_rate import ExchangeRate
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.currency_service import CurrencyService
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.exchange_rate")


class ExchangeRateService(BaseService[ExchangeRate]):
    """
    Dated, directional conversion factors.

    Contract:
        ``amount_in_from * rate = amount_in_to``.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        currencies: CurrencyService | None = None,
        sequences: SequenceService | None = None,
    ):
        super().__init__(session, clock)
        self.currencies = currencies or CurrencyService(session, self.clock)
        self.sequences = sequences or SequenceService(session)

    def add_rate(
        self,
        from_currency: str,
        to_currency: str,
        rate: Decimal | int | str,
        date_effective: date,
        actor_id: UUID,
    ) -> ExchangeRateRecord:
        try:
            value = to_decimal(rate)
        except InvalidAmountError as exc:
            raise InvalidExchangeRateError(str(rate), exc.reason) from exc
        if value <= 0:
            raise InvalidExchangeRateError(str(value), "rate must be positive")
        if decimal_places(value) > RATE_DECIMAL_PLACES:
            raise InvalidExchangeRateError(
                str(value), f"rate may carry at most {RATE_DECIMAL_PLACES} decimal places"
            )

        source = self.currencies.require_for_posting(from_currency)
        target = self.currencies.require_for_posting(to_currency)
        if source.code == target.code:
            raise InvalidExchangeRateError(str(value), "from and to currency must differ")

        now = self._now()
        row = ExchangeRate(
            from_currency=source.code,
            to_currency=target.code,
            rate=value,
            date_effective=date_effective,
            seq=self.sequences.next_value(SequenceService.EXCHANGE_RATE),
            created_at=now,
            updated_at=now,
            created_by_id=actor_id,
        )
        self.session.add(row)
        self.session.flush()

        logger.info(
            "exchange_rate_added",
            extra={
                "from_currency": row.from_currency,
                "to_currency": row.to_currency,
                "rate": value,
                "date_effective": date_effective,
                "seq": row.seq,
            },
        )
        return ExchangeRateRecord.from_model(row)

    def find_rate(self, from_currency: str, to_currency: str, on_date: date) -> ExchangeRate | None:
        """Latest rate effective on or before ``on_date``, or None."""
        return self.session.execute(
            select(ExchangeRate)
            .where(
                ExchangeRate.from_currency == from_currency,
                ExchangeRate.to_currency == to_currency,
                ExchangeRate.date_effective <= on_date,
            )
            .order_by(ExchangeRate.date_effective.desc(), ExchangeRate.seq.desc())
            .limit(1)
        ).scalar_one_or_none()

    def get_rate(self, from_currency: str, to_currency: str, on_date: date) -> ExchangeRateRecord:
        source = self.currencies.require_for_posting(from_currency)
        target = self.currencies.require_for_posting(to_currency)
        row = self.find_rate(source.code, target.code, on_date)
        if row is None:
            raise ExchangeRateNotFoundError(source.code, target.code, on_date.isoformat())
        return ExchangeRateRecord.from_model(row)

    def rate_for_posting(self, from_currency: str, to_currency: str, on_date: date) -> ExchangeRate:
        """Rate needed to post; its absence rejects the journal."""
        row = self.find_rate(from_currency, to_currency, on_date)
        if row is None:
            logger.info(
                "exchange_rate_unavailable",
                extra={
                    "from_currency": from_currency,
                    "to_currency": to_currency,
                    "as_of": on_date,
                },
            )
            raise ExchangeRateUnavailableError(from_currency, to_currency, on_date.isoformat())
        return row

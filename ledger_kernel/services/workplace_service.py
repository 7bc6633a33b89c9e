"""
WorkplaceService -- create and resolve tenants.

Workplace membership and permissions are the caller's concern; the kernel
only guarantees that nothing crosses a workplace boundary.
"""

from uuid import UUID

from ledger_kernel.domain.dtos import WorkplaceRecord
from ledger_kernel.exceptions import InvalidInputError, WorkplaceNotFoundError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.workplace import Workplace
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.currency_service import CurrencyService

logger = get_logger("services.workplace")


class WorkplaceService(BaseService[Workplace]):

    def create_workplace(
        self,
        name: str,
        default_currency_code: str,
        actor_id: UUID,
    ) -> WorkplaceRecord:
        if not name or not name.strip():
            raise InvalidInputError("name", "workplace name is required")
        currency = CurrencyService(self.session, self.clock).require_for_posting(
            default_currency_code
        )

        now = self._now()
        workplace = Workplace(
            name=name.strip(),
            default_currency_code=currency.code,
            created_at=now,
            updated_at=now,
            created_by_id=actor_id,
        )
        self.session.add(workplace)
        self.session.flush()

        logger.info(
            "workplace_created",
            extra={"workplace_id": str(workplace.id), "default_currency": currency.code},
        )
        return WorkplaceRecord.from_model(workplace)

    def require(self, workplace_id: UUID) -> Workplace:
        workplace = self.session.get(Workplace, workplace_id)
        if workplace is None:
            raise WorkplaceNotFoundError(str(workplace_id))
        return workplace

    def get_workplace(self, workplace_id: UUID) -> WorkplaceRecord:
        return WorkplaceRecord.from_model(self.require(workplace_id))

"""Repository for UtilityBilling line items."""

from __future__ import annotations

from uuid import UUID

from coopbill.core.models import UtilityBilling
from coopbill.core.repositories.base import BaseRepository


class UtilityBillingRepository(BaseRepository[UtilityBilling]):
    """UtilityBilling-specific repository operations."""

    def __init__(self) -> None:
        super().__init__(UtilityBilling)

    async def get_for_invoice(
        self, household_id: UUID, period_id: UUID
    ) -> list[UtilityBilling]:
        """All line items of one household and period with their services."""
        return (
            await self.model.filter(household_id=household_id, billing_period_id=period_id)
            .prefetch_related("service")
            .order_by("service__name")
        )

    async def delete_for(
        self, household_id: UUID, service_id: UUID, period_id: UUID
    ) -> int:
        return await self.model.filter(
            household_id=household_id,
            service_id=service_id,
            billing_period_id=period_id,
        ).delete()

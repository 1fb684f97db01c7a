"""Repository for UtilityPricing model."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from coopbill.core.calculations import resolve_pricing
from coopbill.core.models import UtilityPricing
from coopbill.core.repositories.base import BaseRepository


class PricingRepository(BaseRepository[UtilityPricing]):
    """UtilityPricing-specific repository operations."""

    def __init__(self) -> None:
        super().__init__(UtilityPricing)

    async def history(self, service_id: UUID) -> list[UtilityPricing]:
        """All price records of a service, oldest first."""
        return await self.model.filter(service_id=service_id).order_by("effective_date")

    async def find_for_date(
        self, service_id: UUID, target_date: date
    ) -> UtilityPricing | None:
        """Find the pricing in effect for a service on a specific date."""
        return resolve_pricing(await self.history(service_id), target_date)

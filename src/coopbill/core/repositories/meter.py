"""Repositories for household meters and main meters."""

from __future__ import annotations

from uuid import UUID

from coopbill.core.models import HouseholdMeter, MainMeter
from coopbill.core.repositories.base import BaseRepository


class HouseholdMeterRepository(BaseRepository[HouseholdMeter]):
    """HouseholdMeter-specific repository operations."""

    def __init__(self) -> None:
        super().__init__(HouseholdMeter)

    async def get_for_household(self, household_id: UUID) -> list[HouseholdMeter]:
        """Get all meters of a household with their services loaded."""
        return (
            await self.model.filter(household_id=household_id)
            .prefetch_related("service")
            .order_by("created_at")
        )

    async def find(self, household_id: UUID, service_id: UUID) -> HouseholdMeter | None:
        return await self.model.get_or_none(
            household_id=household_id, service_id=service_id
        )

    async def get_for_service(self, service_id: UUID) -> list[HouseholdMeter]:
        return await self.model.filter(service_id=service_id)


class MainMeterRepository(BaseRepository[MainMeter]):
    """MainMeter-specific repository operations."""

    def __init__(self) -> None:
        super().__init__(MainMeter)

    async def get_by_identifier(self, identifier: str) -> MainMeter | None:
        return await self.model.get_or_none(identifier=identifier)

    async def get_for_service(self, service_id: UUID) -> list[MainMeter]:
        return await self.model.filter(service_id=service_id).order_by("identifier")

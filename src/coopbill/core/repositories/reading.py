"""Repositories for household and main meter readings."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from coopbill.core.models import HouseholdMeterReading, MainMeterReading
from coopbill.core.repositories.base import BaseRepository


class HouseholdReadingRepository(BaseRepository[HouseholdMeterReading]):
    """HouseholdMeterReading-specific repository operations."""

    def __init__(self) -> None:
        super().__init__(HouseholdMeterReading)

    async def get_for_period(
        self, meter_id: UUID, period_id: UUID
    ) -> HouseholdMeterReading | None:
        return await self.model.get_or_none(
            household_meter_id=meter_id, billing_period_id=period_id
        )

    async def get_previous(
        self, meter_id: UUID, before: date
    ) -> HouseholdMeterReading | None:
        """The meter's reading in the latest period starting before ``before``."""
        return (
            await self.model.filter(
                household_meter_id=meter_id,
                billing_period__start_date__lt=before,
            )
            .order_by("-billing_period__start_date")
            .first()
        )

    async def history(self, meter_id: UUID) -> list[HouseholdMeterReading]:
        """All readings of a meter ordered by period."""
        return (
            await self.model.filter(household_meter_id=meter_id)
            .prefetch_related("billing_period")
            .order_by("billing_period__start_date")
        )

    async def get_for_service_period(
        self, service_id: UUID, period_id: UUID
    ) -> list[HouseholdMeterReading]:
        return await self.model.filter(
            household_meter__service_id=service_id, billing_period_id=period_id
        ).prefetch_related("household_meter__household")


class MainReadingRepository(BaseRepository[MainMeterReading]):
    """MainMeterReading-specific repository operations."""

    def __init__(self) -> None:
        super().__init__(MainMeterReading)

    async def get_for_period(
        self, meter_id: UUID, period_id: UUID
    ) -> MainMeterReading | None:
        return await self.model.get_or_none(meter_id=meter_id, billing_period_id=period_id)

    async def get_previous(self, meter_id: UUID, before: date) -> MainMeterReading | None:
        """The meter's reading in the latest period starting before ``before``."""
        return (
            await self.model.filter(
                meter_id=meter_id, billing_period__start_date__lt=before
            )
            .order_by("-billing_period__start_date")
            .first()
        )

    async def history(self, meter_id: UUID) -> list[MainMeterReading]:
        """All readings of a meter ordered by period."""
        return (
            await self.model.filter(meter_id=meter_id)
            .prefetch_related("billing_period")
            .order_by("billing_period__start_date")
        )

    async def get_for_service_period(
        self, service_id: UUID, period_id: UUID
    ) -> list[MainMeterReading]:
        return await self.model.filter(
            meter__service_id=service_id, billing_period_id=period_id
        ).prefetch_related("meter")

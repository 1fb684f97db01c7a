"""Service deriving per-period consumption from stored meter readings."""

from __future__ import annotations

from coopbill.core import calculations
from coopbill.core.calculations import MeterConsumption
from coopbill.core.errors import MissingReadingError
from coopbill.core.models import (
    BillingPeriod,
    FirstReadingPolicy,
    HouseholdMeter,
    HouseholdMeterReading,
    MainMeterReading,
)
from coopbill.core.repositories.reading import (
    HouseholdReadingRepository,
    MainReadingRepository,
)


class ConsumptionService:
    """Looks up consecutive readings of a meter and computes its consumption."""

    def __init__(
        self,
        household_reading_repo: HouseholdReadingRepository,
        main_reading_repo: MainReadingRepository,
        first_reading_policy: FirstReadingPolicy = FirstReadingPolicy.FULL_READING,
    ):
        self._household_reading_repo = household_reading_repo
        self._main_reading_repo = main_reading_repo
        self._policy = first_reading_policy

    async def for_household_reading(
        self, reading: HouseholdMeterReading, period: BillingPeriod
    ) -> MeterConsumption:
        """Consumption of the meter behind ``reading`` in ``period``."""
        previous = await self._household_reading_repo.get_previous(
            reading.household_meter_id, period.start_date
        )
        return calculations.calculate_consumption(
            current_reading=reading.value,
            previous_reading=previous.value if previous else None,
            override=reading.raw_consumption,
            policy=self._policy,
        )

    async def for_main_reading(
        self, reading: MainMeterReading, period: BillingPeriod
    ) -> MeterConsumption:
        previous = await self._main_reading_repo.get_previous(
            reading.meter_id, period.start_date
        )
        return calculations.calculate_consumption(
            current_reading=reading.value,
            previous_reading=previous.value if previous else None,
            override=reading.consumption,
            policy=self._policy,
        )

    async def for_household_meter(
        self, meter: HouseholdMeter, period: BillingPeriod
    ) -> MeterConsumption:
        """
        Consumption of a household meter in a period.

        Raises:
            MissingReadingError: If the meter has no reading in the period.
            DataIntegrityError: If the readings decrease without an override.
            MissingPrecedingPeriodError: If there is no earlier reading and
                first readings are configured as unbillable.
        """
        reading = await self._household_reading_repo.get_for_period(meter.id, period.id)
        if reading is None:
            raise MissingReadingError(f"No reading for meter {meter.id} in {period.name}.")
        return await self.for_household_reading(reading, period)

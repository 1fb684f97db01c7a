"""Tests for storing and importing meter readings."""

from datetime import date
from decimal import Decimal

import pytest

from coopbill.core.errors import BillingError, DataIntegrityError
from coopbill.core.models import (
    HouseholdMeter,
    HouseholdMeterReading,
    MainMeter,
    MainMeterReading,
    UtilityService,
)
from coopbill.core.repositories.household import HouseholdRepository
from coopbill.core.repositories.meter import HouseholdMeterRepository, MainMeterRepository
from coopbill.core.repositories.period import BillingPeriodRepository
from coopbill.core.repositories.reading import (
    HouseholdReadingRepository,
    MainReadingRepository,
)
from coopbill.core.repositories.service import UtilityServiceRepository
from coopbill.services.readings import HouseholdReadingRow, MainReadingRow, ReadingService
from tests.factories import add_household, add_reading


@pytest.fixture
def reading_service() -> ReadingService:
    return ReadingService(
        household_repo=HouseholdRepository(),
        household_meter_repo=HouseholdMeterRepository(),
        main_meter_repo=MainMeterRepository(),
        service_repo=UtilityServiceRepository(),
        period_repo=BillingPeriodRepository(),
        household_reading_repo=HouseholdReadingRepository(),
        main_reading_repo=MainReadingRepository(),
    )


@pytest.mark.asyncio
async def test_record_household_reading(reading_service: ReadingService, q2, water):
    household = await add_household(1, water)
    meter = await HouseholdMeter.get(household=household)

    reading = await reading_service.record_household_reading(meter, q2, Decimal("130"))

    assert reading.reading_date == q2.end_date
    with pytest.raises(DataIntegrityError):
        await reading_service.record_household_reading(meter, q2, Decimal("131"))

    replaced = await reading_service.record_household_reading(
        meter, q2, Decimal("131"), notes="Corrected by board", replace=True
    )
    assert replaced.id == reading.id
    assert (await HouseholdMeterReading.get(id=reading.id)).value == Decimal("131")


@pytest.mark.asyncio
async def test_import_household_readings_reports_bad_rows(
    reading_service: ReadingService, q2, water, membership
):
    await add_household(1, water)
    await add_household(2, water)
    await add_household(3, membership)
    rows = [
        HouseholdReadingRow(1, date(2024, 6, 30), Decimal("130")),
        HouseholdReadingRow(
            2, date(2024, 6, 30), Decimal("0"), raw_consumption=Decimal("54"), notes="New meter"
        ),
        HouseholdReadingRow(3, date(2024, 6, 30), Decimal("10")),
        HouseholdReadingRow(4, date(2024, 6, 30), Decimal("10")),
        HouseholdReadingRow(1, date(2025, 6, 30), Decimal("150")),
    ]

    report = await reading_service.import_household_readings("Water", rows)

    assert report.imported == 2
    assert [issue.household_number for issue in report.issues] == [3, 4, 1]
    assert {issue.error for issue in report.issues} == {"DataIntegrityError"}
    swapped = await HouseholdMeterReading.get(household_meter__household__household_number=2)
    assert swapped.raw_consumption == Decimal("54")


@pytest.mark.asyncio
async def test_import_replace_overwrites(reading_service: ReadingService, q2, water):
    household = await add_household(1, water)
    await add_reading(household, water, q2, "130")
    rows = [HouseholdReadingRow(1, date(2024, 6, 1), Decimal("133"))]

    skipped = await reading_service.import_household_readings("Water", rows)
    replaced = await reading_service.import_household_readings("Water", rows, replace=True)

    assert skipped.imported == 0 and len(skipped.issues) == 1
    assert replaced.imported == 1
    assert (await HouseholdMeterReading.get()).value == Decimal("133")


@pytest.mark.asyncio
async def test_import_for_unknown_service(reading_service: ReadingService):
    with pytest.raises(BillingError):
        await reading_service.import_household_readings("Gas", [])


@pytest.mark.asyncio
async def test_import_main_readings(reading_service: ReadingService, q2, water):
    await MainMeter.create(identifier="KV-01", service=water)
    rows = [
        MainReadingRow("KV-01", date(2024, 6, 30), Decimal("1046")),
        MainReadingRow("KV-99", date(2024, 6, 30), Decimal("1")),
    ]

    report = await reading_service.import_main_readings(rows)

    assert report.imported == 1
    assert report.issues[0].message == "Unknown main meter KV-99."
    assert (await MainMeterReading.get()).value == Decimal("1046")


@pytest.mark.asyncio
async def test_reporting_status(reading_service: ReadingService, q2, water, membership):
    electricity = await UtilityService.create(name="Electricity", unit="kWh")
    complete = await add_household(1, water, electricity, membership)
    partial = await add_household(2, water, electricity)
    await add_household(3, membership)
    await add_household(4, water, is_active=False)
    for service in (water, electricity):
        await add_reading(complete, service, q2, "10")
    await add_reading(partial, water, q2, "10")

    statuses = {
        status.household_number: status
        for status in await reading_service.reporting_status(q2.id)
    }

    assert sorted(statuses) == [1, 2, 3]
    assert statuses[1].is_complete
    assert statuses[2].missing_services == ("Electricity",)
    assert not statuses[2].is_complete
    # Flat-fee only households have nothing to report.
    assert statuses[3].reported_services == ()
    assert not statuses[3].is_complete

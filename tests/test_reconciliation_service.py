"""Tests for reconciling main meters against household meters."""

from decimal import Decimal

import pytest

from coopbill.core.errors import DataIntegrityError
from coopbill.core.models import (
    HouseholdMeter,
    HouseholdMeterReading,
    MainMeter,
    MainMeterReading,
    Reconciliation,
    SplitMode,
)
from coopbill.core.repositories.household import HouseholdRepository
from coopbill.core.repositories.period import BillingPeriodRepository
from coopbill.core.repositories.reading import (
    HouseholdReadingRepository,
    MainReadingRepository,
)
from coopbill.core.repositories.reconciliation import ReconciliationRepository
from coopbill.services.consumption import ConsumptionService
from coopbill.services.reconciliation import ReconciliationService
from tests.factories import add_household, add_main_reading, add_reading


def make_service(split_mode: SplitMode = SplitMode.EQUAL) -> ReconciliationService:
    household_reading_repo = HouseholdReadingRepository()
    main_reading_repo = MainReadingRepository()
    return ReconciliationService(
        consumption_service=ConsumptionService(household_reading_repo, main_reading_repo),
        household_repo=HouseholdRepository(),
        period_repo=BillingPeriodRepository(),
        household_reading_repo=household_reading_repo,
        main_reading_repo=main_reading_repo,
        reconciliation_repo=ReconciliationRepository(),
        split_mode=split_mode,
    )


async def seed(q1, q2, water, q2_values=("130", "220"), main_q2="1046"):
    first = await add_household(1, water)
    second = await add_household(2, water)
    main = await MainMeter.create(identifier="KV-01", service=water)
    await add_reading(first, water, q1, "100")
    await add_reading(second, water, q1, "200")
    await add_main_reading(main, q1, "1000")
    await add_reading(first, water, q2, q2_values[0])
    await add_reading(second, water, q2, q2_values[1])
    await add_main_reading(main, q2, main_q2)
    return first, second


@pytest.mark.asyncio
async def test_equal_split(q1, q2, water):
    await seed(q1, q2, water)

    record = await make_service().reconcile(water, q2)

    assert record.difference == Decimal("-4")
    assert record.adjustment_per_household == Decimal("-2")
    assert record.split_mode is SplitMode.EQUAL
    assert ReconciliationService.adjustment_for(record, Decimal("30")) == Decimal("-2")


@pytest.mark.asyncio
async def test_proportional_split(q1, q2, water):
    await seed(q1, q2, water)

    record = await make_service(SplitMode.PROPORTIONAL).reconcile(water, q2)

    assert record.split_mode is SplitMode.PROPORTIONAL
    first = ReconciliationService.adjustment_for(record, Decimal("30"))
    second = ReconciliationService.adjustment_for(record, Decimal("20"))
    assert first == Decimal("-2.4")
    assert second == Decimal("-1.6")
    assert first + second == record.difference


@pytest.mark.asyncio
async def test_inactive_households_do_not_carry_the_difference(q1, q2, water):
    await seed(q1, q2, water)
    await add_household(3, is_active=False)

    record = await make_service().reconcile(water, q2)

    assert record.active_household_count == 2


@pytest.mark.asyncio
async def test_main_meter_above_households_is_a_positive_adjustment(q1, q2, water):
    await seed(q1, q2, water, main_q2="1056")

    record = await make_service().reconcile(water, q2)

    assert record.difference == Decimal("6")
    assert record.adjustment_per_household == Decimal("3")


@pytest.mark.asyncio
async def test_existing_record_is_kept_unless_recomputed(q1, q2, water):
    service = make_service()
    await seed(q1, q2, water)
    first_record = await service.reconcile(water, q2)
    await Reconciliation.filter(id=first_record.id).update(difference=Decimal("0"))

    kept = await service.reconcile(water, q2)
    recomputed = await service.reconcile(water, q2, recompute=True)

    assert kept.difference == Decimal("0")
    assert recomputed.id == first_record.id
    assert recomputed.difference == Decimal("-4")
    assert await Reconciliation.all().count() == 1


@pytest.mark.asyncio
async def test_first_period_is_not_reconciled(q1, water):
    household = await add_household(1, water)
    main = await MainMeter.create(identifier="KV-01", service=water)
    await add_reading(household, water, q1, "100")
    await add_main_reading(main, q1, "1000")

    assert await make_service().reconcile(water, q1) is None


@pytest.mark.asyncio
async def test_missing_main_readings_skip_reconciliation(q1, q2, water):
    household = await add_household(1, water)
    await add_reading(household, water, q1, "100")
    await add_reading(household, water, q2, "130")

    assert await make_service().reconcile(water, q2) is None
    assert ReconciliationService.adjustment_for(None, Decimal("30")) == Decimal("0")


@pytest.mark.asyncio
async def test_services_without_reconciliation_are_skipped(q2, membership):
    assert await make_service().reconcile(membership, q2) is None


@pytest.mark.asyncio
async def test_decreasing_household_reading_fails_reconciliation(q1, q2, water):
    await seed(q1, q2, water, q2_values=("90", "220"))

    with pytest.raises(DataIntegrityError):
        await make_service().reconcile(water, q2)


@pytest.mark.asyncio
async def test_main_meter_without_earlier_reading_skips_reconciliation(q1, q2, water):
    first = await add_household(1, water)
    second = await add_household(2, water)
    main = await MainMeter.create(identifier="KV-01", service=water)
    await add_reading(first, water, q1, "100")
    await add_reading(second, water, q1, "200")
    await add_reading(first, water, q2, "130")
    await add_reading(second, water, q2, "220")
    await add_main_reading(main, q2, "1046")

    assert await make_service().reconcile(water, q2) is None
    assert await Reconciliation.all().count() == 0


@pytest.mark.asyncio
async def test_households_without_earlier_readings_skip_reconciliation(q1, q2, water):
    household = await add_household(1, water)
    main = await MainMeter.create(identifier="KV-01", service=water)
    await add_main_reading(main, q1, "1000")
    await add_main_reading(main, q2, "1030")
    await add_reading(household, water, q2, "130")

    assert await make_service().reconcile(water, q2) is None


@pytest.mark.asyncio
async def test_recompute_without_readings_removes_the_record(q1, q2, water):
    service = make_service()
    await seed(q1, q2, water)
    await service.reconcile(water, q2)
    await MainMeterReading.filter(billing_period=q2).delete()

    assert await service.reconcile(water, q2, recompute=True) is None
    assert not await Reconciliation.filter(service=water, billing_period=q2).exists()


@pytest.mark.asyncio
async def test_failed_recompute_removes_the_record(q1, q2, water):
    service = make_service()
    first, _ = await seed(q1, q2, water)
    await service.reconcile(water, q2)
    meter = await HouseholdMeter.get(household=first, service=water)
    await HouseholdMeterReading.filter(household_meter=meter, billing_period=q2).update(
        value=Decimal("90")
    )

    with pytest.raises(DataIntegrityError):
        await service.reconcile(water, q2, recompute=True)
    assert await Reconciliation.all().count() == 0

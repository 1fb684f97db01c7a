"""Service reconciling main meters against household meters."""

from __future__ import annotations

import logging
from decimal import Decimal

from coopbill.core import calculations
from coopbill.core.errors import RECORD_ERRORS
from coopbill.core.models import (
    BillingPeriod,
    Reconciliation,
    SplitMode,
    UtilityService,
)
from coopbill.core.repositories.household import HouseholdRepository
from coopbill.core.repositories.period import BillingPeriodRepository
from coopbill.core.repositories.reading import (
    HouseholdReadingRepository,
    MainReadingRepository,
)
from coopbill.core.repositories.reconciliation import ReconciliationRepository
from coopbill.services.consumption import ConsumptionService

logger = logging.getLogger(__name__)


class ReconciliationService:
    """Computes and stores the per-household share of unmetered consumption."""

    def __init__(
        self,
        consumption_service: ConsumptionService,
        household_repo: HouseholdRepository,
        period_repo: BillingPeriodRepository,
        household_reading_repo: HouseholdReadingRepository,
        main_reading_repo: MainReadingRepository,
        reconciliation_repo: ReconciliationRepository,
        split_mode: SplitMode = SplitMode.EQUAL,
    ):
        self._consumption = consumption_service
        self._household_repo = household_repo
        self._period_repo = period_repo
        self._household_reading_repo = household_reading_repo
        self._main_reading_repo = main_reading_repo
        self._reconciliation_repo = reconciliation_repo
        self._split_mode = split_mode

    async def reconcile(
        self,
        service: UtilityService,
        period: BillingPeriod,
        recompute: bool = False,
    ) -> Reconciliation | None:
        """
        Reconciles one service for one period.

        An existing record is returned as-is unless ``recompute`` is set.
        Returns None when the period cannot be reconciled: the service does
        not need it, there is no earlier period, or main or household
        readings are missing for the period or its predecessor. Billing then
        proceeds without an adjustment. A recompute that ends that way, or
        fails, removes the record it was meant to replace.

        Raises:
            DataIntegrityError: If a meter's consumption cannot be trusted.
            MissingPrecedingPeriodError: If a meter has no earlier reading and
                first readings are unbillable.
            ConfigurationError: If there are no active households.
        """
        if not service.requires_reconciliation:
            return None

        existing = await self._reconciliation_repo.get_for(service.id, period.id)
        if existing and not recompute:
            return existing

        try:
            record = await self._compute(service, period)
        except RECORD_ERRORS:
            await self._discard(existing, service, period)
            raise
        if record is None:
            await self._discard(existing, service, period)
        return record

    async def _compute(
        self, service: UtilityService, period: BillingPeriod
    ) -> Reconciliation | None:
        preceding = await self._period_repo.preceding(period)
        if preceding is None:
            logger.info(f"Skipping reconciliation of {service.name}: {period.name} is the first period.")
            return None

        main_readings = await self._readings_for(service, period, preceding, main=True)
        if main_readings is None:
            return None
        household_readings = await self._readings_for(service, period, preceding, main=False)
        if household_readings is None:
            return None

        main_consumptions = [
            (await self._consumption.for_main_reading(reading, period)).value
            for reading in main_readings
        ]
        household_consumptions = [
            (await self._consumption.for_household_reading(reading, period)).value
            for reading in household_readings
        ]

        totals = calculations.reconcile_totals(
            main_consumptions,
            household_consumptions,
            await self._household_repo.count_active(),
        )

        record, _ = await self._reconciliation_repo.upsert(
            defaults={
                "main_meter_total": totals.main_meter_total,
                "household_total": totals.household_total,
                "difference": totals.difference,
                "active_household_count": totals.active_household_count,
                "adjustment_per_household": totals.adjustment_per_household,
                "split_mode": self._split_mode,
            },
            service_id=service.id,
            billing_period_id=period.id,
        )
        logger.info(
            f"Reconciled {service.name} in {period.name}: main {totals.main_meter_total}, "
            f"households {totals.household_total}, difference {totals.difference} "
            f"({totals.adjustment_per_household} {service.unit} per household)."
        )
        return record

    async def _readings_for(
        self,
        service: UtilityService,
        period: BillingPeriod,
        preceding: BillingPeriod,
        main: bool,
    ) -> list | None:
        """The period's readings, or None when it or its predecessor has none."""
        repo = self._main_reading_repo if main else self._household_reading_repo
        kind = "main meter" if main else "household"
        readings = await repo.get_for_service_period(service.id, period.id)
        if readings:
            missing = None
            if not await repo.get_for_service_period(service.id, preceding.id):
                missing = preceding
        else:
            missing = period
        if missing is not None:
            logger.warning(
                f"Skipping reconciliation of {service.name} in {period.name}: "
                f"no {kind} readings in {missing.name}."
            )
            return None
        return readings

    async def _discard(
        self,
        existing: Reconciliation | None,
        service: UtilityService,
        period: BillingPeriod,
    ) -> None:
        if existing is None:
            return
        await self._reconciliation_repo.delete_for(service.id, period.id)
        logger.warning(f"Removed outdated reconciliation of {service.name} in {period.name}.")

    @staticmethod
    def adjustment_for(
        reconciliation: Reconciliation | None, raw_consumption: Decimal
    ) -> Decimal:
        """The volume a household absorbs from a reconciliation, 0 without one."""
        if reconciliation is None:
            return calculations.ZERO
        return calculations.household_adjustment(
            difference=reconciliation.difference,
            household_total=reconciliation.household_total,
            adjustment_per_household=reconciliation.adjustment_per_household,
            split_mode=reconciliation.split_mode,
            raw_consumption=raw_consumption,
        )

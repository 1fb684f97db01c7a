"""Service storing meter readings handed over by importers and admins."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from coopbill.core.errors import (
    RECORD_ERRORS,
    BillingError,
    BillingIssue,
    DataIntegrityError,
)
from coopbill.core.models import (
    BillingPeriod,
    HouseholdMeter,
    HouseholdMeterReading,
    MainMeter,
    MainMeterReading,
)
from coopbill.core.repositories.household import HouseholdRepository
from coopbill.core.repositories.meter import HouseholdMeterRepository, MainMeterRepository
from coopbill.core.repositories.period import BillingPeriodRepository
from coopbill.core.repositories.reading import (
    HouseholdReadingRepository,
    MainReadingRepository,
)
from coopbill.core.repositories.service import UtilityServiceRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HouseholdReadingRow:
    """A validated household reading as delivered by an importer."""

    household_number: int
    period_date: date
    value: Decimal
    reading_date: date | None = None
    raw_consumption: Decimal | None = None
    notes: str | None = None


@dataclass(frozen=True)
class MainReadingRow:
    """A validated main meter reading as delivered by an importer."""

    meter_identifier: str
    period_date: date
    value: Decimal
    reading_date: date | None = None
    consumption: Decimal | None = None
    notes: str | None = None


@dataclass
class ImportReport:
    imported: int = 0
    issues: list[BillingIssue] = field(default_factory=list)


@dataclass(frozen=True)
class HouseholdReportingStatus:
    household_number: int
    owner_name: str
    reported_services: tuple[str, ...]
    missing_services: tuple[str, ...]

    @property
    def is_complete(self) -> bool:
        return bool(self.reported_services) and not self.missing_services


class ReadingService:
    """Upserts readings and reports which households still have to report."""

    def __init__(
        self,
        household_repo: HouseholdRepository,
        household_meter_repo: HouseholdMeterRepository,
        main_meter_repo: MainMeterRepository,
        service_repo: UtilityServiceRepository,
        period_repo: BillingPeriodRepository,
        household_reading_repo: HouseholdReadingRepository,
        main_reading_repo: MainReadingRepository,
    ):
        self._household_repo = household_repo
        self._household_meter_repo = household_meter_repo
        self._main_meter_repo = main_meter_repo
        self._service_repo = service_repo
        self._period_repo = period_repo
        self._household_reading_repo = household_reading_repo
        self._main_reading_repo = main_reading_repo

    async def record_household_reading(
        self,
        meter: HouseholdMeter,
        period: BillingPeriod,
        value: Decimal,
        reading_date: date | None = None,
        raw_consumption: Decimal | None = None,
        notes: str | None = None,
        replace: bool = False,
    ) -> HouseholdMeterReading:
        """
        Stores the reading of a household meter for a period.

        A meter has at most one reading per period; an existing one is only
        overwritten with ``replace``.
        """
        existing = await self._household_reading_repo.get_for_period(meter.id, period.id)
        if existing and not replace:
            raise DataIntegrityError(
                f"Meter {meter.id} already has a reading for {period.name}."
            )
        reading, _ = await self._household_reading_repo.upsert(
            defaults={
                "value": value,
                "reading_date": reading_date or period.end_date,
                "raw_consumption": raw_consumption,
                "notes": notes,
            },
            household_meter_id=meter.id,
            billing_period_id=period.id,
        )
        return reading

    async def record_main_reading(
        self,
        meter: MainMeter,
        period: BillingPeriod,
        value: Decimal,
        reading_date: date | None = None,
        consumption: Decimal | None = None,
        notes: str | None = None,
        replace: bool = False,
    ) -> MainMeterReading:
        existing = await self._main_reading_repo.get_for_period(meter.id, period.id)
        if existing and not replace:
            raise DataIntegrityError(
                f"Main meter {meter.identifier} already has a reading for {period.name}."
            )
        reading, _ = await self._main_reading_repo.upsert(
            defaults={
                "value": value,
                "reading_date": reading_date or period.end_date,
                "consumption": consumption,
                "notes": notes,
            },
            meter_id=meter.id,
            billing_period_id=period.id,
        )
        return reading

    async def import_household_readings(
        self,
        service_name: str,
        rows: Iterable[HouseholdReadingRow],
        replace: bool = False,
    ) -> ImportReport:
        """Stores a batch of household readings; bad rows are reported, not fatal."""
        service = await self._service_repo.get_by_name(service_name)
        if not service:
            raise BillingError(f"Utility service {service_name!r} not found.")

        report = ImportReport()
        for row in rows:
            try:
                household = await self._household_repo.get_by_number(row.household_number)
                if not household:
                    raise DataIntegrityError(f"Unknown household {row.household_number}.")
                meter = await self._household_meter_repo.find(household.id, service.id)
                if not meter:
                    raise DataIntegrityError(
                        f"Household {row.household_number} has no {service.name} meter."
                    )
                period = await self._period_for(row.period_date)
                await self.record_household_reading(
                    meter,
                    period,
                    row.value,
                    reading_date=row.reading_date,
                    raw_consumption=row.raw_consumption,
                    notes=row.notes,
                    replace=replace,
                )
            except RECORD_ERRORS as exc:
                logger.warning(f"Skipping reading row {row}: {exc}")
                report.issues.append(
                    BillingIssue.from_error(
                        exc,
                        period=row.period_date.isoformat(),
                        household_number=row.household_number,
                        service=service.name,
                    )
                )
                continue
            report.imported += 1

        logger.info(
            f"Imported {report.imported} {service.name} readings "
            f"({len(report.issues)} skipped)."
        )
        return report

    async def import_main_readings(
        self, rows: Iterable[MainReadingRow], replace: bool = False
    ) -> ImportReport:
        report = ImportReport()
        for row in rows:
            try:
                meter = await self._main_meter_repo.get_by_identifier(row.meter_identifier)
                if not meter:
                    raise DataIntegrityError(f"Unknown main meter {row.meter_identifier}.")
                period = await self._period_for(row.period_date)
                await self.record_main_reading(
                    meter,
                    period,
                    row.value,
                    reading_date=row.reading_date,
                    consumption=row.consumption,
                    notes=row.notes,
                    replace=replace,
                )
            except RECORD_ERRORS as exc:
                logger.warning(f"Skipping main meter row {row}: {exc}")
                report.issues.append(
                    BillingIssue.from_error(exc, period=row.period_date.isoformat())
                )
                continue
            report.imported += 1

        logger.info(
            f"Imported {report.imported} main meter readings ({len(report.issues)} skipped)."
        )
        return report

    async def reporting_status(self, period_id: UUID) -> list[HouseholdReportingStatus]:
        """Which metered services each active household has reported for a period."""
        period = await self._period_repo.get(pk=period_id)
        if not period:
            raise BillingError(f"Billing period with id {period_id} not found.")

        statuses = []
        for household in await self._household_repo.active():
            reported: list[str] = []
            missing: list[str] = []
            for meter in await self._household_meter_repo.get_for_household(household.id):
                if not meter.service.requires_readings:
                    continue
                reading = await self._household_reading_repo.get_for_period(
                    meter.id, period.id
                )
                (reported if reading else missing).append(meter.service.name)
            statuses.append(
                HouseholdReportingStatus(
                    household_number=household.household_number,
                    owner_name=household.owner_name,
                    reported_services=tuple(reported),
                    missing_services=tuple(missing),
                )
            )
        return statuses

    async def _period_for(self, day: date) -> BillingPeriod:
        period = await self._period_repo.containing(day)
        if not period:
            raise DataIntegrityError(f"No billing period covers {day}.")
        return period

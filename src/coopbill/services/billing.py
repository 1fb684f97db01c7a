"""Service responsible for generating bills."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from uuid import UUID

from tortoise.transactions import in_transaction

from coopbill.config import Settings, settings
from coopbill.core import calculations
from coopbill.core.errors import (
    RECORD_ERRORS,
    BillingError,
    BillingIssue,
    ConfigurationError,
    MissingPricingError,
)
from coopbill.core.models import (
    BillingPeriod,
    ConsumptionSource,
    Household,
    HouseholdMeter,
    Invoice,
    Reconciliation,
    UtilityBilling,
    UtilityPricing,
    UtilityService,
)
from coopbill.core.repositories.billing import UtilityBillingRepository
from coopbill.core.repositories.household import HouseholdRepository
from coopbill.core.repositories.invoice import InvoiceRepository, PaymentRepository
from coopbill.core.repositories.meter import HouseholdMeterRepository
from coopbill.core.repositories.period import BillingPeriodRepository
from coopbill.core.repositories.pricing import PricingRepository
from coopbill.core.repositories.reading import (
    HouseholdReadingRepository,
    MainReadingRepository,
)
from coopbill.core.repositories.reconciliation import ReconciliationRepository
from coopbill.core.repositories.service import UtilityServiceRepository
from coopbill.core.repositories.shared_cost import SharedCostRepository
from coopbill.services.consumption import ConsumptionService
from coopbill.services.invoicing import InvoiceService
from coopbill.services.reconciliation import ReconciliationService

logger = logging.getLogger(__name__)


@dataclass
class BillingRun:
    """Everything one bill generation produced for a period, plus what it skipped."""

    period: BillingPeriod
    reconciliations: list[Reconciliation] = field(default_factory=list)
    line_items: list[UtilityBilling] = field(default_factory=list)
    invoices: list[Invoice] = field(default_factory=list)
    issues: list[BillingIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues


class BillingService:
    """Orchestrates reconciliation, line item pricing and invoicing for a period."""

    def __init__(
        self,
        household_repo: HouseholdRepository,
        household_meter_repo: HouseholdMeterRepository,
        service_repo: UtilityServiceRepository,
        period_repo: BillingPeriodRepository,
        pricing_repo: PricingRepository,
        billing_repo: UtilityBillingRepository,
        consumption_service: ConsumptionService,
        reconciliation_service: ReconciliationService,
        invoice_service: InvoiceService,
    ):
        self._household_repo = household_repo
        self._household_meter_repo = household_meter_repo
        self._service_repo = service_repo
        self._period_repo = period_repo
        self._pricing_repo = pricing_repo
        self._billing_repo = billing_repo
        self._consumption = consumption_service
        self._reconciliation = reconciliation_service
        self._invoicing = invoice_service

    async def generate_bills(
        self,
        period_id: UUID,
        household_ids: list[UUID] | None = None,
        overwrite_paid: bool = False,
    ) -> BillingRun:
        """
        Generates or regenerates the bills of every active household for a period.

        Line items and invoices are keyed by household, service and period, so
        running this twice leaves the same rows behind. Failures that concern a
        single household or service are collected in ``BillingRun.issues``;
        all writes of the period are committed together.

        Raises:
            BillingError: If the period does not exist.
            ConfigurationError: If the cooperative has no active households.
            ConcurrencyConflict: If another run wrote the same keys meanwhile.
        """
        period = await self._period_repo.get(pk=period_id)
        if not period:
            raise BillingError(f"Billing period with id {period_id} not found.")

        if await self._household_repo.count_active() == 0:
            raise ConfigurationError("No active households to bill.")

        logger.info(f"Generating bills for {period.name}...")
        run = BillingRun(period=period)

        async with in_transaction():
            reconciliations = await self._reconcile_services(period, run)

            for household in await self._household_repo.active(household_ids):
                try:
                    await self._invoicing.ensure_editable(household, period, overwrite_paid)
                except RECORD_ERRORS as exc:
                    self._report(run, exc, household=household)
                    continue

                await self._bill_household(household, period, reconciliations, run)
                try:
                    invoice = await self._invoicing.aggregate(
                        household, period, overwrite_paid=overwrite_paid
                    )
                except RECORD_ERRORS as exc:
                    self._report(run, exc, household=household)
                    continue
                if invoice:
                    run.invoices.append(invoice)

        logger.info(
            f"Bills for {period.name} generated: {len(run.line_items)} line items, "
            f"{len(run.invoices)} invoices, {len(run.issues)} issues."
        )
        return run

    async def generate_all(self, overwrite_paid: bool = False) -> list[BillingRun]:
        """Bills every billing-enabled period in chronological order."""
        runs = []
        for period in await self._period_repo.ordered(billing_enabled_only=True):
            runs.append(
                await self.generate_bills(period.id, overwrite_paid=overwrite_paid)
            )
        return runs

    async def _reconcile_services(
        self, period: BillingPeriod, run: BillingRun
    ) -> dict[UUID, Reconciliation]:
        reconciliations: dict[UUID, Reconciliation] = {}
        for service in await self._service_repo.requiring_reconciliation():
            try:
                record = await self._reconciliation.reconcile(service, period, recompute=True)
            except RECORD_ERRORS as exc:
                self._report(run, exc, service_name=service.name)
                continue
            if record:
                reconciliations[service.id] = record
                run.reconciliations.append(record)
        return reconciliations

    async def _bill_household(
        self,
        household: Household,
        period: BillingPeriod,
        reconciliations: dict[UUID, Reconciliation],
        run: BillingRun,
    ) -> None:
        for meter in await self._household_meter_repo.get_for_household(household.id):
            try:
                line = await self._bill_meter(household, meter, period, reconciliations)
            except RECORD_ERRORS as exc:
                self._report(run, exc, household=household, service_name=meter.service.name)
                # A line from an earlier run must not survive into the invoice.
                await self._billing_repo.delete_for(household.id, meter.service_id, period.id)
                continue
            run.line_items.append(line)

    async def _bill_meter(
        self,
        household: Household,
        meter: HouseholdMeter,
        period: BillingPeriod,
        reconciliations: dict[UUID, Reconciliation],
    ) -> UtilityBilling:
        """Prices one household meter (or flat-fee subscription) for a period."""
        service = meter.service
        reconciliation = None

        if service.requires_readings:
            consumption = await self._consumption.for_household_meter(meter, period)
            pricing = await self._pricing_for(service, period)
            reconciliation = reconciliations.get(service.id)
            amounts = calculations.price_metered_line(
                raw_consumption=consumption.value,
                adjustment=self._reconciliation.adjustment_for(
                    reconciliation, consumption.value
                ),
                price_per_unit=pricing.price_per_unit,
                fixed_fee=pricing.fixed_fee_per_household,
            )
            source = consumption.source
        else:
            pricing = await self._pricing_for(service, period)
            amounts = calculations.price_flat_line(pricing.fixed_fee_per_household)
            source = ConsumptionSource.FLAT

        line, _ = await self._billing_repo.upsert(
            defaults={
                "raw_consumption": amounts.raw_consumption,
                "consumption_source": source,
                "reconciliation_adjustment": amounts.reconciliation_adjustment,
                "adjusted_consumption": amounts.adjusted_consumption,
                "cost_per_unit": amounts.cost_per_unit,
                "consumption_cost": amounts.consumption_cost,
                "fixed_fee_share": amounts.fixed_fee_share,
                "total_utility_cost": amounts.total_utility_cost,
                "reconciliation_id": reconciliation.id if reconciliation else None,
            },
            household_id=household.id,
            service_id=service.id,
            billing_period_id=period.id,
        )
        return line

    async def _pricing_for(
        self, service: UtilityService, period: BillingPeriod
    ) -> UtilityPricing:
        pricing = await self._pricing_repo.find_for_date(service.id, period.end_date)
        if pricing is None:
            raise MissingPricingError(
                f"No pricing for {service.name} effective on {period.end_date}."
            )
        return pricing

    @staticmethod
    def _report(
        run: BillingRun,
        exc: BillingError,
        household: Household | None = None,
        service_name: str | None = None,
    ) -> None:
        issue = BillingIssue.from_error(
            exc,
            period=run.period.name,
            household_number=household.household_number if household else None,
            service=service_name,
        )
        logger.warning(
            f"{issue.error} in {issue.period} (household {issue.household_number}, "
            f"service {issue.service}): {issue.message}"
        )
        run.issues.append(issue)


def build_billing_service(config: Settings = settings) -> BillingService:
    """Wires the billing engine to the database repositories."""
    household_repo = HouseholdRepository()
    period_repo = BillingPeriodRepository()
    billing_repo = UtilityBillingRepository()
    household_reading_repo = HouseholdReadingRepository()
    main_reading_repo = MainReadingRepository()

    consumption = ConsumptionService(
        household_reading_repo,
        main_reading_repo,
        first_reading_policy=config.FIRST_READING_POLICY,
    )
    return BillingService(
        household_repo=household_repo,
        household_meter_repo=HouseholdMeterRepository(),
        service_repo=UtilityServiceRepository(),
        period_repo=period_repo,
        pricing_repo=PricingRepository(),
        billing_repo=billing_repo,
        consumption_service=consumption,
        reconciliation_service=ReconciliationService(
            consumption,
            household_repo,
            period_repo,
            household_reading_repo,
            main_reading_repo,
            ReconciliationRepository(),
            split_mode=config.RECONCILIATION_SPLIT,
        ),
        invoice_service=InvoiceService(
            billing_repo,
            InvoiceRepository(),
            PaymentRepository(),
            SharedCostRepository(),
            due_months=config.INVOICE_DUE_MONTHS,
        ),
    )

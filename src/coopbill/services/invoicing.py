"""Service folding billing line items into invoices and tracking their payment."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from tortoise.transactions import in_transaction

from coopbill.core import calculations
from coopbill.core.errors import BillingError, InvalidStatusTransitionError
from coopbill.core.models import (
    BillingPeriod,
    Household,
    Invoice,
    InvoiceStatus,
)
from coopbill.core.repositories.billing import UtilityBillingRepository
from coopbill.core.repositories.invoice import InvoiceRepository, PaymentRepository
from coopbill.core.repositories.shared_cost import SharedCostRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvoiceLine:
    service_name: str
    unit: str
    raw_consumption: Decimal
    reconciliation_adjustment: Decimal
    adjusted_consumption: Decimal
    cost_per_unit: Decimal
    consumption_cost: Decimal
    fixed_fee_share: Decimal
    total: Decimal


@dataclass(frozen=True)
class InvoiceDocument:
    """Read-only view of an invoice for PDF rendering and notifications."""

    invoice_number: str
    household_number: int
    owner_name: str
    email: str | None
    period_name: str
    period_start: date
    period_end: date
    lines: tuple[InvoiceLine, ...]
    total_utility_costs: Decimal
    member_fee: Decimal
    shared_costs: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    due_date: date
    status: InvoiceStatus


class InvoiceService:
    """Builds invoices from line items and moves them through their lifecycle."""

    def __init__(
        self,
        billing_repo: UtilityBillingRepository,
        invoice_repo: InvoiceRepository,
        payment_repo: PaymentRepository,
        shared_cost_repo: SharedCostRepository,
        due_months: int = 4,
    ):
        self._billing_repo = billing_repo
        self._invoice_repo = invoice_repo
        self._payment_repo = payment_repo
        self._shared_cost_repo = shared_cost_repo
        self._due_months = due_months

    async def aggregate(
        self,
        household: Household,
        period: BillingPeriod,
        overwrite_paid: bool = False,
    ) -> Invoice | None:
        """
        Creates or recomputes the invoice of a household for a period.

        Returns None when the household has no line items in the period.
        A paid invoice keeps its totals unless ``overwrite_paid`` is set, which
        is reserved for explicit administrative corrections.

        Raises:
            InvalidStatusTransitionError: If the invoice is already paid and
                ``overwrite_paid`` is not set.
        """
        existing = await self.ensure_editable(household, period, overwrite_paid)
        lines = await self._billing_repo.get_for_invoice(household.id, period.id)
        if not lines:
            if existing and await self._payment_repo.total_for(existing.id) == 0:
                await existing.delete()
            return None

        shared_costs = await self._shared_cost_repo.for_quarter(
            period.start_date.year, calculations.quarter_of(period.start_date)
        )
        totals = calculations.aggregate_invoice(
            [(line.service.service_type, line.total_utility_cost) for line in lines],
            calculations.prorated_shared_costs(
                [cost.cost_per_household for cost in shared_costs], period.period_type
            ),
        )

        status = InvoiceStatus.PENDING
        paid_date = None
        if existing:
            status = existing.status
            paid_date = existing.paid_date
            if status is InvoiceStatus.PAID:
                # Administrative recomputation: settle again from recorded payments.
                status, paid_date = InvoiceStatus.PENDING, None
            paid = await self._payment_repo.total_for(existing.id)
            if paid > calculations.ZERO:
                new_status = calculations.status_after_payment(
                    status, totals.total_amount, paid
                )
                if new_status is not status:
                    status, paid_date = new_status, paid_date or date.today()

        invoice, _ = await self._invoice_repo.upsert(
            defaults={
                "invoice_number": calculations.invoice_number(
                    period.name, household.household_number
                ),
                "total_utility_costs": totals.total_utility_costs,
                "member_fee": totals.member_fee,
                "shared_costs": totals.shared_costs,
                "total_amount": totals.total_amount,
                "due_date": calculations.due_date_for(
                    period.reading_deadline, self._due_months
                ),
                "status": status,
                "paid_date": paid_date,
            },
            household_id=household.id,
            billing_period_id=period.id,
        )
        return invoice

    async def ensure_editable(
        self, household: Household, period: BillingPeriod, overwrite_paid: bool = False
    ) -> Invoice | None:
        """Returns the current invoice, refusing to touch a paid one without ``overwrite_paid``."""
        existing = await self._invoice_repo.get_for(household.id, period.id)
        if existing and existing.status is InvoiceStatus.PAID and not overwrite_paid:
            raise InvalidStatusTransitionError(
                f"Invoice {existing.invoice_number} is paid; its totals are kept."
            )
        return existing

    async def record_payment(
        self,
        invoice_id: UUID,
        amount: Decimal,
        payment_date: date | None = None,
        method: str = "unknown",
        notes: str | None = None,
    ) -> Invoice:
        """Records a payment and marks the invoice paid once it is covered."""
        if amount <= 0:
            raise BillingError("Payment amount must be positive.")

        async with in_transaction():
            invoice = await self._get(invoice_id)
            if invoice.status is InvoiceStatus.PAID:
                raise InvalidStatusTransitionError(
                    f"Invoice {invoice.invoice_number} is already paid."
                )
            payment_date = payment_date or date.today()
            await self._payment_repo.create(
                invoice_id=invoice.id,
                amount=amount,
                payment_date=payment_date,
                method=method,
                notes=notes,
            )
            paid = await self._payment_repo.total_for(invoice.id)
            new_status = calculations.status_after_payment(
                invoice.status, invoice.total_amount, paid
            )
            if new_status is not invoice.status:
                await self._transition(invoice, new_status, payment_date)
        logger.info(
            f"Recorded payment of {amount} on {invoice.invoice_number} "
            f"({paid} of {invoice.total_amount} paid)."
        )
        return invoice

    async def mark_paid(
        self,
        invoice_id: UUID,
        payment_date: date | None = None,
        method: str = "unknown",
        notes: str | None = None,
    ) -> Invoice:
        """Pays the outstanding balance of an invoice in one payment."""
        invoice = await self._get(invoice_id)
        outstanding = invoice.total_amount - await self._payment_repo.total_for(invoice.id)
        if outstanding > calculations.ZERO:
            return await self.record_payment(
                invoice_id, outstanding, payment_date, method, notes
            )
        # Nothing to pay (credit or fully covered): settle without a payment row.
        await self._transition(invoice, InvoiceStatus.PAID, payment_date or date.today())
        return invoice

    async def mark_overdue(self, today: date | None = None) -> list[Invoice]:
        """Flags every pending invoice whose due date has passed."""
        today = today or date.today()
        overdue = []
        for invoice in await self._invoice_repo.pending_past_due(today):
            if calculations.is_overdue(invoice.status, invoice.due_date, today):
                await self._transition(invoice, InvoiceStatus.OVERDUE)
                overdue.append(invoice)
        logger.info(f"Marked {len(overdue)} invoice(s) overdue as of {today}.")
        return overdue

    async def build_document(self, invoice_id: UUID) -> InvoiceDocument:
        """Collects everything needed to present an invoice."""
        invoice = await self._get(invoice_id)
        await invoice.fetch_related("household", "billing_period")
        household, period = invoice.household, invoice.billing_period
        lines = await self._billing_repo.get_for_invoice(household.id, period.id)
        return InvoiceDocument(
            invoice_number=invoice.invoice_number,
            household_number=household.household_number,
            owner_name=household.owner_name,
            email=household.email,
            period_name=period.name,
            period_start=period.start_date,
            period_end=period.end_date,
            lines=tuple(
                InvoiceLine(
                    service_name=line.service.name,
                    unit=line.service.unit,
                    raw_consumption=line.raw_consumption,
                    reconciliation_adjustment=line.reconciliation_adjustment,
                    adjusted_consumption=line.adjusted_consumption,
                    cost_per_unit=line.cost_per_unit,
                    consumption_cost=line.consumption_cost,
                    fixed_fee_share=line.fixed_fee_share,
                    total=line.total_utility_cost,
                )
                for line in lines
            ),
            total_utility_costs=invoice.total_utility_costs,
            member_fee=invoice.member_fee,
            shared_costs=invoice.shared_costs,
            total_amount=invoice.total_amount,
            paid_amount=await self._payment_repo.total_for(invoice.id),
            due_date=invoice.due_date,
            status=invoice.status,
        )

    async def _get(self, invoice_id: UUID) -> Invoice:
        invoice = await self._invoice_repo.get(pk=invoice_id)
        if not invoice:
            raise BillingError(f"Invoice {invoice_id} not found.")
        return invoice

    async def _transition(
        self, invoice: Invoice, status: InvoiceStatus, paid_date: date | None = None
    ) -> None:
        calculations.check_transition(invoice.status, status)
        invoice.status = status
        if status is InvoiceStatus.PAID:
            invoice.paid_date = paid_date
        await invoice.save()

"""Repositories for Invoice and Payment models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from coopbill.core.models import Invoice, InvoiceStatus, Payment
from coopbill.core.repositories.base import BaseRepository


class InvoiceRepository(BaseRepository[Invoice]):
    """Invoice-specific repository operations."""

    def __init__(self) -> None:
        super().__init__(Invoice)

    async def get_for(self, household_id: UUID, period_id: UUID) -> Invoice | None:
        return await self.model.get_or_none(
            household_id=household_id, billing_period_id=period_id
        )

    async def pending_past_due(self, today: date) -> list[Invoice]:
        return await self.model.filter(
            status=InvoiceStatus.PENDING, due_date__lt=today
        ).order_by("due_date")


class PaymentRepository(BaseRepository[Payment]):
    """Payment-specific repository operations."""

    def __init__(self) -> None:
        super().__init__(Payment)

    async def total_for(self, invoice_id: UUID) -> Decimal:
        amounts = await self.model.filter(invoice_id=invoice_id).values_list(
            "amount", flat=True
        )
        return sum((Decimal(amount) for amount in amounts), Decimal("0"))

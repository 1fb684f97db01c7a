"""Repository for BillingPeriod model."""

from __future__ import annotations

from datetime import date

from coopbill.core.models import BillingPeriod
from coopbill.core.repositories.base import BaseRepository


class BillingPeriodRepository(BaseRepository[BillingPeriod]):
    """BillingPeriod-specific repository operations."""

    def __init__(self) -> None:
        super().__init__(BillingPeriod)

    async def ordered(self, billing_enabled_only: bool = False) -> list[BillingPeriod]:
        """All periods in chronological order."""
        query = self.model.all()
        if billing_enabled_only:
            query = query.filter(is_billing_enabled=True)
        return await query.order_by("start_date")

    async def preceding(self, period: BillingPeriod) -> BillingPeriod | None:
        """The period immediately before ``period``."""
        return (
            await self.model.filter(start_date__lt=period.start_date)
            .order_by("-start_date")
            .first()
        )

    async def containing(self, day: date) -> BillingPeriod | None:
        return await self.model.filter(start_date__lte=day, end_date__gte=day).first()

    async def overlapping(self, start_date: date, end_date: date) -> list[BillingPeriod]:
        return await self.model.filter(
            start_date__lte=end_date, end_date__gte=start_date
        ).order_by("start_date")

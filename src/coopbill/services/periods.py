"""Service managing billing periods."""

from __future__ import annotations

from datetime import date

from coopbill.core.errors import DataIntegrityError
from coopbill.core.models import BillingPeriod, PeriodType
from coopbill.core.repositories.period import BillingPeriodRepository


class PeriodService:
    """Creates billing periods while keeping them non-overlapping."""

    def __init__(self, period_repo: BillingPeriodRepository):
        self._period_repo = period_repo

    async def create_period(
        self,
        name: str,
        start_date: date,
        end_date: date,
        reading_deadline: date | None = None,
        period_type: PeriodType = PeriodType.QUARTERLY,
        is_official_billing: bool = False,
        is_billing_enabled: bool = False,
    ) -> BillingPeriod:
        """
        Creates a billing period.

        Raises:
            DataIntegrityError: If the dates are reversed or the period
                overlaps an existing one.
        """
        if end_date < start_date:
            raise DataIntegrityError(f"Period {name} ends before it starts.")

        overlapping = await self._period_repo.overlapping(start_date, end_date)
        if overlapping:
            names = ", ".join(period.name for period in overlapping)
            raise DataIntegrityError(f"Period {name} overlaps {names}.")

        return await self._period_repo.create(
            name=name,
            period_type=period_type,
            start_date=start_date,
            end_date=end_date,
            reading_deadline=reading_deadline or end_date,
            is_official_billing=is_official_billing,
            is_billing_enabled=is_billing_enabled,
        )

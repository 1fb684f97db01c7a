"""Service registering cooperative-wide costs."""

from __future__ import annotations

import logging
from decimal import Decimal

from coopbill.core import calculations
from coopbill.core.errors import BillingError
from coopbill.core.models import SharedCost
from coopbill.core.repositories.household import HouseholdRepository
from coopbill.core.repositories.shared_cost import SharedCostRepository

logger = logging.getLogger(__name__)


class SharedCostService:
    def __init__(
        self,
        household_repo: HouseholdRepository,
        shared_cost_repo: SharedCostRepository,
    ):
        self._household_repo = household_repo
        self._shared_cost_repo = shared_cost_repo

    async def add_shared_cost(
        self, year: int, quarter: int, description: str, total_amount: Decimal
    ) -> SharedCost:
        """Records a quarterly cost and fixes each active household's share of it."""
        if quarter not in (1, 2, 3, 4):
            raise BillingError(f"Quarter must be between 1 and 4, got {quarter}.")

        per_household = calculations.share_per_household(
            total_amount, await self._household_repo.count_active()
        )
        cost = await self._shared_cost_repo.create(
            year=year,
            quarter=quarter,
            description=description,
            total_amount=total_amount,
            cost_per_household=per_household,
        )
        logger.info(
            f"Added shared cost {description!r} for {year} Q{quarter}: "
            f"{total_amount} ({per_household} per household)."
        )
        return cost

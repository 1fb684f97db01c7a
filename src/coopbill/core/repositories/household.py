"""Repository for Household model."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable
from uuid import UUID

from coopbill.core.models import Household
from coopbill.core.repositories.base import BaseRepository


class HouseholdRepository(BaseRepository[Household]):
    """Household-specific repository operations."""

    def __init__(self) -> None:
        super().__init__(Household)

    async def get_by_number(self, household_number: int) -> Household | None:
        return await self.model.get_or_none(household_number=household_number)

    async def active(self, ids: Iterable[UUID] | None = None) -> list[Household]:
        """Active households ordered by household number, optionally narrowed to ``ids``."""
        query = self.model.filter(is_active=True)
        if ids is not None:
            query = query.filter(id__in=list(ids))
        return await query.order_by("household_number")

    async def count_active(self) -> int:
        return await self.model.filter(is_active=True).count()

    async def active_share_total(self) -> Decimal:
        shares = await self.model.filter(is_active=True).values_list(
            "ownership_share", flat=True
        )
        return sum((Decimal(share) for share in shares), Decimal("0"))

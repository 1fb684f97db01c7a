"""Repository for SharedCost model."""

from __future__ import annotations

from coopbill.core.models import SharedCost
from coopbill.core.repositories.base import BaseRepository


class SharedCostRepository(BaseRepository[SharedCost]):
    """SharedCost-specific repository operations."""

    def __init__(self) -> None:
        super().__init__(SharedCost)

    async def for_quarter(self, year: int, quarter: int) -> list[SharedCost]:
        return await self.model.filter(year=year, quarter=quarter).order_by("created_at")

"""Repository for UtilityService model."""

from __future__ import annotations

from coopbill.core.models import UtilityService
from coopbill.core.repositories.base import BaseRepository


class UtilityServiceRepository(BaseRepository[UtilityService]):
    """UtilityService-specific repository operations."""

    def __init__(self) -> None:
        super().__init__(UtilityService)

    async def get_by_name(self, name: str) -> UtilityService | None:
        return await self.model.get_or_none(name=name)

    async def requiring_reconciliation(self) -> list[UtilityService]:
        return await self.model.filter(requires_reconciliation=True).order_by("name")

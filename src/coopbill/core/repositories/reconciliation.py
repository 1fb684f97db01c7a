"""Repository for Reconciliation model."""

from __future__ import annotations

from uuid import UUID

from coopbill.core.models import Reconciliation
from coopbill.core.repositories.base import BaseRepository


class ReconciliationRepository(BaseRepository[Reconciliation]):
    """Reconciliation-specific repository operations."""

    def __init__(self) -> None:
        super().__init__(Reconciliation)

    async def get_for(self, service_id: UUID, period_id: UUID) -> Reconciliation | None:
        return await self.model.get_or_none(
            service_id=service_id, billing_period_id=period_id
        )

    async def delete_for(self, service_id: UUID, period_id: UUID) -> int:
        return await self.model.filter(
            service_id=service_id, billing_period_id=period_id
        ).delete()

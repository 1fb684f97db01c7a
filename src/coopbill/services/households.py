"""Service for household onboarding and membership."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable

from tortoise.transactions import in_transaction

from coopbill.core.errors import BillingError, DataIntegrityError
from coopbill.core.models import Household, HouseholdMeter, UtilityService
from coopbill.core.repositories.household import HouseholdRepository
from coopbill.core.repositories.meter import HouseholdMeterRepository

logger = logging.getLogger(__name__)


class HouseholdService:
    """Onboards households, connects them to services and deactivates them."""

    def __init__(
        self,
        household_repo: HouseholdRepository,
        household_meter_repo: HouseholdMeterRepository,
    ):
        self._household_repo = household_repo
        self._household_meter_repo = household_meter_repo

    async def onboard(
        self,
        household_number: int,
        owner_name: str,
        ownership_share: Decimal,
        services: Iterable[UtilityService] = (),
        email: str | None = None,
        annual_member_fee: Decimal | None = None,
    ) -> Household:
        """Creates a household together with one meter per connected service."""
        if await self._household_repo.get_by_number(household_number):
            raise DataIntegrityError(f"Household {household_number} already exists.")

        async with in_transaction():
            household = await self._household_repo.create(
                household_number=household_number,
                owner_name=owner_name,
                ownership_share=ownership_share,
                email=email,
                annual_member_fee=annual_member_fee,
            )
            for service in services:
                await self.connect_service(household, service)
        logger.info(f"Onboarded household {household_number} ({owner_name}).")
        return household

    async def connect_service(
        self, household: Household, service: UtilityService, serial: str | None = None
    ) -> HouseholdMeter:
        meter, _ = await self._household_meter_repo.get_or_create(
            defaults={"serial": serial},
            household_id=household.id,
            service_id=service.id,
        )
        return meter

    async def deactivate(self, household_number: int) -> Household:
        """Takes a household out of billing; its history is kept."""
        household = await self._household_repo.get_by_number(household_number)
        if not household:
            raise BillingError(f"Household {household_number} not found.")
        household.is_active = False
        await household.save()
        logger.info(f"Deactivated household {household_number}.")
        return household

    async def share_imbalance(self) -> Decimal:
        """How far the active households' andelstal are from summing to one."""
        return await self._household_repo.active_share_total() - Decimal("1")

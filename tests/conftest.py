"""Pytest configuration and fixtures."""

from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from tortoise import Tortoise

from coopbill.config import Settings
from coopbill.core.models import (
    BillingPeriod,
    PeriodType,
    ServiceType,
    UtilityPricing,
    UtilityService,
)
from coopbill.core.repositories.billing import UtilityBillingRepository
from coopbill.core.repositories.invoice import InvoiceRepository, PaymentRepository
from coopbill.core.repositories.shared_cost import SharedCostRepository
from coopbill.services.billing import BillingService, build_billing_service
from coopbill.services.invoicing import InvoiceService


@pytest_asyncio.fixture(scope="function", autouse=True)
async def db_session():
    """
    Provides a clean in-memory SQLite database for each test function.
    """
    await Tortoise.init(
        db_url="sqlite://:memory:",
        modules={"models": ["coopbill.core.models"]},
    )
    await Tortoise.generate_schemas()

    yield

    await Tortoise.close_connections()


@pytest.fixture
def billing_service() -> BillingService:
    """Provides a BillingService wired to real repositories and default settings."""
    return build_billing_service(Settings())


@pytest.fixture
def invoice_service() -> InvoiceService:
    return InvoiceService(
        billing_repo=UtilityBillingRepository(),
        invoice_repo=InvoiceRepository(),
        payment_repo=PaymentRepository(),
        shared_cost_repo=SharedCostRepository(),
    )


@pytest_asyncio.fixture
async def q1() -> BillingPeriod:
    return await BillingPeriod.create(
        name="2024-Q1",
        period_type=PeriodType.QUARTERLY,
        start_date=date(2024, 1, 1),
        end_date=date(2024, 3, 31),
        reading_deadline=date(2024, 4, 15),
        is_billing_enabled=True,
    )


@pytest_asyncio.fixture
async def q2() -> BillingPeriod:
    return await BillingPeriod.create(
        name="2024-Q2",
        period_type=PeriodType.QUARTERLY,
        start_date=date(2024, 4, 1),
        end_date=date(2024, 6, 30),
        reading_deadline=date(2024, 7, 15),
        is_official_billing=True,
        is_billing_enabled=True,
    )


@pytest_asyncio.fixture
async def water() -> UtilityService:
    """Metered water, reconciled against the municipal main meter."""
    service = await UtilityService.create(
        name="Water",
        unit="m3",
        service_type=ServiceType.WATER,
        requires_readings=True,
        has_main_meters=True,
        requires_reconciliation=True,
    )
    await UtilityPricing.create(
        service=service,
        effective_date=date(2024, 1, 1),
        price_per_unit=Decimal("45.50"),
        fixed_fee_per_household=Decimal("171.43"),
    )
    return service


@pytest_asyncio.fixture
async def membership() -> UtilityService:
    service = await UtilityService.create(
        name="Membership",
        service_type=ServiceType.MEMBERSHIP,
        requires_readings=False,
    )
    await UtilityPricing.create(
        service=service,
        effective_date=date(2024, 1, 1),
        fixed_fee_per_household=Decimal("750"),
    )
    return service

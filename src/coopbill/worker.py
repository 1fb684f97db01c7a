"""Entry point for the background worker running scheduled billing jobs."""

import asyncio
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from tortoise import Tortoise

from coopbill.config import settings
from coopbill.core.db import TORTOISE_ORM
from coopbill.core.repositories.billing import UtilityBillingRepository
from coopbill.core.repositories.invoice import InvoiceRepository, PaymentRepository
from coopbill.core.repositories.shared_cost import SharedCostRepository
from coopbill.services.invoicing import InvoiceService
from coopbill.services.scheduler import SchedulerService

logger = logging.getLogger(__name__)


async def run() -> None:
    """Initializes the database and keeps the scheduler running."""
    logger.info("Initializing database...")
    await Tortoise.init(config=TORTOISE_ORM)
    logger.info("Database initialized.")

    invoice_service = InvoiceService(
        billing_repo=UtilityBillingRepository(),
        invoice_repo=InvoiceRepository(),
        payment_repo=PaymentRepository(),
        shared_cost_repo=SharedCostRepository(),
        due_months=settings.INVOICE_DUE_MONTHS,
    )
    scheduler = SchedulerService(
        invoice_service,
        AsyncIOScheduler(),
        check_hour=settings.OVERDUE_CHECK_HOUR,
        timezone=settings.SCHEDULER_TIMEZONE,
    )
    scheduler.start()

    try:
        await asyncio.Event().wait()
    finally:
        logger.info("Closing connections...")
        await Tortoise.close_connections()
        logger.info("Connections closed.")


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    logger.info("Starting worker...")
    try:
        asyncio.run(run())
    except (KeyboardInterrupt, SystemExit):
        logger.info("Worker stopped manually.")


if __name__ == "__main__":
    main()

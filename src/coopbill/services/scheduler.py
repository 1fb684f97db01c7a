"""Service for scheduling background jobs."""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from coopbill.services.invoicing import InvoiceService

logger = logging.getLogger(__name__)


class SchedulerService:
    """Manages scheduled tasks for the application."""

    def __init__(
        self,
        invoice_service: InvoiceService,
        scheduler: AsyncIOScheduler,
        check_hour: int = 9,
        timezone: str = "Europe/Stockholm",
    ):
        self._invoice_service = invoice_service
        self._scheduler = scheduler
        self._check_hour = check_hour
        self._timezone = timezone

    def start(self):
        """Starts the scheduler and adds jobs."""
        logger.info("Starting scheduler...")
        self._scheduler.add_job(
            self._run_overdue_check,
            trigger=CronTrigger(hour=self._check_hour, minute=0, timezone=self._timezone),
            id="overdue_invoices",
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info("Scheduler started.")

    async def _run_overdue_check(self):
        """Moves every pending invoice past its due date to overdue."""
        logger.info("Starting overdue invoice job.")
        try:
            overdue = await self._invoice_service.mark_overdue()
        except Exception as e:
            logger.error(f"Overdue invoice job failed: {e}", exc_info=True)
            return
        for invoice in overdue:
            logger.info(f"Invoice {invoice.invoice_number} is now overdue.")
        logger.info("Overdue invoice job finished.")

"""
Automation service: runs the outreach pipeline on a cron schedule or on demand.

The schedule is driven by an APScheduler AsyncIOScheduler, so
start_automation() must be called from inside a running event loop.

Only one pipeline run happens at a time. A scheduled tick that finds a run
in progress is skipped; a manual trigger during a run raises
PipelineBusyError. Processing a single posting manually does not take the
run lock; the store's check-and-set on `processed` keeps it from
double-sending.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from founderreach.config import Settings, get_settings
from founderreach.models.posting import Posting
from founderreach.models.send_record import SendRecord
from founderreach.services.composer import Composer
from founderreach.services.contact_resolver import ContactResolver
from founderreach.services.dispatcher import Dispatcher
from founderreach.services.email_resolver import EmailResolver
from founderreach.services.engagement import EngagementTracker
from founderreach.services.gmail_sender import GmailTransport
from founderreach.services.job_processor import JobProcessor
from founderreach.services.job_scraper import LinkedInJobScraper
from founderreach.services.pipeline import BatchSummary, OutreachPipeline, get_statistics
from founderreach.services.storage import JsonStore
from founderreach.services.task_runner import SequentialRunner

logger = logging.getLogger(__name__)

SCRAPE_TASK = "linkedin_scraper"


class PipelineBusyError(Exception):
    """Raised when a manual run is requested while another run is in progress."""


class AutomationService:
    def __init__(
        self,
        pipeline: OutreachPipeline,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.pipeline = pipeline
        self.store = pipeline.store
        self.processor = pipeline.processor
        self.engagement = EngagementTracker(self.store)
        self.scheduler = scheduler
        self.is_running = False
        self._tasks: dict = {}
        self._run_lock = asyncio.Lock()

    # ── scheduling ───────────────────────────────────────────────────────────

    def start_automation(self, schedule: str = "*/30 * * * *") -> None:
        """Register the periodic pipeline run. No-op if already running."""
        if self.is_running:
            logger.warning("Automation is already running")
            return

        trigger = CronTrigger.from_crontab(schedule)
        if self.scheduler is None:
            self.scheduler = AsyncIOScheduler()
        self._tasks[SCRAPE_TASK] = self.scheduler.add_job(
            self._scheduled_run,
            trigger,
            id=SCRAPE_TASK,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        if not self.scheduler.running:
            self.scheduler.start()

        self.is_running = True
        logger.info("Automation service started (schedule: %s)", schedule)

    def stop_automation(self) -> None:
        """Cancel the periodic run. Safe to call when not running."""
        for task in self._tasks.values():
            task.remove()
        self._tasks.clear()
        if self.scheduler is not None and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        if self.is_running:
            logger.info("Automation service stopped")
        self.is_running = False

    async def _scheduled_run(self) -> None:
        if self._run_lock.locked():
            logger.warning("Previous pipeline run still in progress, skipping this tick")
            return
        async with self._run_lock:
            try:
                await self.pipeline.run()
            except Exception:
                logger.exception("Scheduled pipeline run failed")

    # ── manual operations ────────────────────────────────────────────────────

    async def trigger_job_scrape(self) -> Optional[BatchSummary]:
        """
        Run the pipeline once right now.

        Only allowed while the automation is started; returns None otherwise.
        Raises PipelineBusyError if a run is already in progress.
        """
        if not self.is_running:
            logger.warning("Automation is not running. Start it first.")
            return None
        if self._run_lock.locked():
            raise PipelineBusyError("A pipeline run is already in progress")
        async with self._run_lock:
            logger.info("Triggering immediate job scrape")
            return await self.pipeline.run()

    async def process_job_manually(self, posting_id: str) -> Posting:
        """Run one stored posting through the processor, started or not."""
        posting = self.store.require_posting(posting_id)
        return await self.processor.process(posting)

    def record_engagement(
        self,
        tracking_id: str,
        event: str,
        at: Optional[datetime] = None,
        reply_content: Optional[str] = None,
    ) -> Optional[SendRecord]:
        """Record an opened / clicked / replied event for a sent pitch."""
        return self.engagement.record(tracking_id, event, at=at, reply_content=reply_content)

    # ── reporting ────────────────────────────────────────────────────────────

    def get_status(self) -> dict:
        return {"is_running": self.is_running, "active_tasks": list(self._tasks)}

    def get_statistics(self) -> dict:
        return get_statistics(self.store)


def build_automation_service(
    settings: Optional[Settings] = None,
    store: Optional[JsonStore] = None,
    transport=None,
) -> AutomationService:
    """Wire the production collaborators from settings."""
    settings = settings or get_settings()
    store = store or JsonStore(settings.data_dir)
    composer = Composer(store, settings)
    dispatcher = Dispatcher(store, composer, transport or GmailTransport(settings=settings), settings)
    processor = JobProcessor(
        store,
        ContactResolver.from_settings(settings),
        EmailResolver.from_settings(settings),
        dispatcher,
        settings,
    )
    pipeline = OutreachPipeline(
        store,
        LinkedInJobScraper(max_pages=settings.scrape_max_pages),
        processor,
        dispatcher,
        SequentialRunner(settings.email_send_delay_seconds),
        settings,
    )
    return AutomationService(pipeline)

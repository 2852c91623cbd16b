"""
Full outreach pipeline: scrape → save new postings → process each posting.

Postings are processed sequentially through a SequentialRunner so provider
and mail rate limits are respected. One posting's failure never aborts
the batch; every outcome is counted in the BatchSummary.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Optional

from founderreach.config import Settings, get_settings
from founderreach.models.posting import Posting, ProcessingStatus
from founderreach.services.dispatcher import Dispatcher, SendReceipt
from founderreach.services.job_processor import JobProcessor
from founderreach.services.storage import JsonStore
from founderreach.services.task_runner import SequentialRunner

logger = logging.getLogger(__name__)


class PostingNotEligibleError(Exception):
    """Raised when a posting cannot receive a follow-up send."""


@dataclass
class BatchSummary:
    total: int = 0
    success: int = 0
    ceo_not_found: int = 0
    email_not_found: int = 0
    send_failed: int = 0
    errors: int = 0

    def count(self, status: ProcessingStatus) -> None:
        if status == ProcessingStatus.SUCCESS:
            self.success += 1
        elif status == ProcessingStatus.CEO_NOT_FOUND:
            self.ceo_not_found += 1
        elif status == ProcessingStatus.EMAIL_NOT_FOUND:
            self.email_not_found += 1
        elif status == ProcessingStatus.SEND_FAILED:
            self.send_failed += 1

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class SendOutcome:
    posting_id: str
    company: str
    email: Optional[str]
    sent: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


def _percent(part: int, whole: int) -> str:
    return f"{part / whole * 100:.2f}%" if whole > 0 else "0%"


def get_statistics(store: JsonStore) -> dict:
    """Aggregate counters across every stored posting."""
    postings = store.list_postings()
    total = len(postings)
    processed = sum(1 for p in postings if p.processed)
    sent = sum(1 for p in postings if p.email_sent)
    responses = sum(1 for p in postings if p.response is not None and p.response.status)
    return {
        "total_jobs": total,
        "processed_jobs": processed,
        "emails_sent": sent,
        "responses": responses,
        "success_rate": _percent(processed, total),
        "response_rate": _percent(responses, sent),
    }


class OutreachPipeline:
    def __init__(
        self,
        store: JsonStore,
        scraper,
        processor: JobProcessor,
        dispatcher: Dispatcher,
        runner: Optional[SequentialRunner] = None,
        settings: Optional[Settings] = None,
    ):
        self.store = store
        self.scraper = scraper
        self.processor = processor
        self.dispatcher = dispatcher
        self.settings = settings or get_settings()
        self.runner = runner or SequentialRunner(self.settings.email_send_delay_seconds)

    async def run(self) -> BatchSummary:
        """Scrape, persist new postings, and process each of them."""
        s = self.settings
        logger.info("Step 1: scraping '%s' jobs in %s", s.search_title, s.search_location)
        scraped = await self.scraper.scrape_postings(s.search_title, s.search_location)
        logger.info("Found %d jobs", len(scraped))
        if not scraped:
            logger.info("No new jobs found")
            return BatchSummary()

        saved = self.save_new_postings(scraped)
        logger.info("Step 2: saved %d new jobs", len(saved))
        if not saved:
            logger.info("All jobs already exist in the store")
            return BatchSummary()

        logger.info("Step 3: processing jobs (finding CEOs & sending emails)")
        summary = await self.process_postings(saved)
        logger.info("Pipeline complete: %s", summary.as_dict())
        return summary

    def save_new_postings(self, postings: list[Posting]) -> list[Posting]:
        """
        Store postings that are not known yet.

        Duplicates (same external id, or same title + company ignoring case)
        are skipped, including duplicates within `postings` itself.
        """
        saved: list[Posting] = []
        for posting in postings:
            if self.store.find_duplicate(posting) is not None:
                continue
            try:
                saved.append(self.store.insert_posting(posting))
            except (OSError, ValueError) as e:
                logger.error("Error saving job %s: %s", posting.external_id, e)
        return saved

    async def process_postings(self, postings: list[Posting]) -> BatchSummary:
        summary = BatchSummary(total=len(postings))

        async def handle(posting: Posting) -> None:
            try:
                result = await self.processor.process(posting)
            except Exception as e:
                logger.error("Error processing job %s: %s", posting.id, e)
                summary.errors += 1
                return
            summary.count(result.processing_status)

        await self.runner.run(postings, handle)
        return summary

    async def process_unprocessed(self, limit: int = 10) -> BatchSummary:
        """Process stored postings that never reached a terminal status."""
        pending = self.store.list_postings(lambda p: not p.processed)[:limit]
        if not pending:
            logger.info("No unprocessed jobs found")
        return await self.process_postings(pending)

    async def send_verified(self, posting_id: str, template_id: Optional[str] = None) -> SendOutcome:
        """
        Send the pitch to a posting verified in dry-run mode.

        Raises PostingNotEligibleError unless the posting is `success`, has a
        contact email and has not been emailed yet.
        """
        posting = self.store.require_posting(posting_id)
        if posting.processing_status != ProcessingStatus.SUCCESS:
            raise PostingNotEligibleError(
                f"Only verified postings (status: success) can receive emails; "
                f"current status is {posting.processing_status.value}"
            )
        if not posting.ceo_contact.email:
            raise PostingNotEligibleError("CEO email not found. Process the posting first.")
        if posting.email_sent:
            raise PostingNotEligibleError(f"Email already sent to {posting.ceo_contact.email}")

        result = await self.dispatcher.send(
            posting, posting.ceo_contact.email, posting.ceo_contact.name or "", template_id,
        )
        if isinstance(result, SendReceipt):
            posting.mark_email_sent()
            self.store.save_posting(posting)
            return SendOutcome(
                posting.id, posting.company.name, posting.ceo_contact.email, True,
                message_id=result.message_id,
            )
        return SendOutcome(
            posting.id, posting.company.name, posting.ceo_contact.email, False, error=result.error,
        )

    async def send_verified_batch(
        self,
        limit: int = 10,
        location: Optional[str] = None,
        template_id: Optional[str] = None,
    ) -> list[SendOutcome]:
        """Send to the oldest verified, not-yet-emailed postings (optionally filtered by location)."""
        needle = location.casefold() if location else None

        def eligible(p: Posting) -> bool:
            return (
                p.processing_status == ProcessingStatus.SUCCESS
                and bool(p.ceo_contact.email)
                and not p.email_sent
                and (needle is None or needle in p.location.casefold())
            )

        postings = self.store.list_postings(eligible)[: min(limit, 50)]
        return await self.runner.run(
            postings, lambda p: self.send_verified(p.id, template_id),
        )

"""
Job processor: drives one posting through the outreach state machine.

    pending ──► ceo_not_found      no senior contact found
            ├─► email_not_found    contact found, no address
            ├─► success            verified (dry-run) or sent
            └─► send_failed        dispatch failed, or anything crashed

Every branch ends in a terminal status with processed=True and a
timestamped note, persisted through the store's check-and-set so two
workers can never both finish (and send for) the same posting.
"""
from __future__ import annotations

import logging
from typing import Optional

from founderreach.config import Settings, get_settings
from founderreach.models.posting import CeoContact, PipelineEvent, Posting
from founderreach.services.contact_resolver import ContactResolver
from founderreach.services.dispatcher import Dispatcher, SendReceipt
from founderreach.services.email_resolver import EmailResolver
from founderreach.services.storage import ConcurrentUpdateError, JsonStore

logger = logging.getLogger(__name__)


class AlreadyProcessedError(Exception):
    """Raised when asked to process a posting that already reached a terminal status."""


class JobProcessor:
    def __init__(
        self,
        store: JsonStore,
        contact_resolver: ContactResolver,
        email_resolver: EmailResolver,
        dispatcher: Dispatcher,
        settings: Optional[Settings] = None,
        send_emails: Optional[bool] = None,
    ):
        self.store = store
        self.contact_resolver = contact_resolver
        self.email_resolver = email_resolver
        self.dispatcher = dispatcher
        self.settings = settings or get_settings()
        self.send_emails = self.settings.send_emails if send_emails is None else send_emails

    async def process(self, posting: Posting) -> Posting:
        """
        Run one posting to a terminal status and return the persisted result.

        Raises AlreadyProcessedError (without touching anything) if the
        posting is already processed, and ConcurrentUpdateError if another
        worker finished it while this one was running.
        """
        if posting.processed:
            raise AlreadyProcessedError(
                f"Posting {posting.id} already processed ({posting.processing_status.value})"
            )

        working = posting.model_copy(deep=True)
        logger.info("Processing job: %s at %s", posting.title, posting.company.name)
        try:
            return await self._run(working)
        except (AlreadyProcessedError, ConcurrentUpdateError):
            raise
        except Exception as e:
            logger.exception("Error processing job %s", posting.id)
            failed = posting.model_copy(deep=True)
            failed.ceo_contact = working.ceo_contact
            failed.apply(PipelineEvent.CRASHED, f"Processing error: {e}")
            return self.store.save_outcome(failed)

    async def _run(self, posting: Posting) -> Posting:
        company = posting.company.name

        contact = await self.contact_resolver.resolve(company)
        if contact is None:
            logger.info("CEO not found for %s, skipping", company)
            posting.apply(PipelineEvent.CONTACT_NOT_FOUND, "CEO not found")
            return self.store.save_outcome(posting)

        posting.ceo_contact = CeoContact(
            name=contact.name,
            profile_url=contact.profile_url,
            email_source=contact.source,
        )
        logger.info("Found CEO: %s", contact.name)

        match = await self.email_resolver.resolve(contact.name, company, known_contact=contact)
        if match is None:
            logger.info("Email not found for %s, skipping", contact.name)
            posting.apply(PipelineEvent.EMAIL_NOT_FOUND, f"Email not found for CEO {contact.name}")
            return self.store.save_outcome(posting)

        posting.ceo_contact.email = match.email
        posting.ceo_contact.email_source = match.source
        logger.info("Found email: %s", match.email)

        if not self.send_emails:
            posting.apply(
                PipelineEvent.VERIFIED,
                "CEO and email verified - email sending disabled (SEND_EMAILS=false)",
            )
            logger.info("Email sending disabled - CEO and email saved for %s", company)
            return self.store.save_outcome(posting)

        self._ensure_unclaimed(posting.id)
        result = await self.dispatcher.send(posting, match.email, contact.name)
        if isinstance(result, SendReceipt):
            posting.apply(PipelineEvent.SENT, "Email sent successfully")
            logger.info("Email sent successfully to %s", contact.name)
        else:
            posting.apply(PipelineEvent.SEND_FAILED, f"Email send failed: {result.error}")
            logger.warning("Failed to send email for %s: %s", company, result.error)
        return self.store.save_outcome(posting)

    def _ensure_unclaimed(self, posting_id: str) -> None:
        stored = self.store.get_posting(posting_id)
        if stored is not None and stored.processed:
            raise AlreadyProcessedError(
                f"Posting {posting_id} was finished by another run ({stored.processing_status.value})"
            )

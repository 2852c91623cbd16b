"""
Dispatcher: sends one pitch email and logs the attempt.

For every call to send(), exactly one SendRecord is written:
  - status "sent" with the transport's message id on success
  - status "failed" with the error text on any failure

Failures come back as a SendFailure value rather than an exception, so the
caller has to handle them explicitly (the job processor turns them into the
send_failed status).
"""
from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass
from typing import Optional, Union

from founderreach.config import Settings, get_settings
from founderreach.models.posting import Posting
from founderreach.models.send_record import CandidateSnapshot, SendRecord, SendStatus
from founderreach.services.composer import ComposedEmail, Composer
from founderreach.services.gmail_sender import OutgoingEmail
from founderreach.services.storage import JsonStore

logger = logging.getLogger(__name__)

TRACKING_HEADER = "X-Tracking-ID"


@dataclass(frozen=True)
class SendReceipt:
    tracking_id: str
    message_id: Optional[str]
    record_id: str


@dataclass(frozen=True)
class SendFailure:
    error: str
    record_id: str


SendResult = Union[SendReceipt, SendFailure]


@dataclass(frozen=True)
class ResendResult:
    record_id: str
    success: bool
    error: Optional[str] = None


def generate_tracking_id(posting_id: str, email: str, timestamp_ms: Optional[int] = None) -> str:
    """
    Opaque token correlating engagement events back to a send record.

    Format: "<epoch ms>-<first 16 hex chars of sha256(posting:email:ms)>".
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    digest = hashlib.sha256(f"{posting_id}:{email}:{timestamp_ms}".encode("utf-8")).hexdigest()
    return f"{timestamp_ms}-{digest[:16]}"


class Dispatcher:
    def __init__(
        self,
        store: JsonStore,
        composer: Composer,
        transport,
        settings: Optional[Settings] = None,
    ):
        self.store = store
        self.composer = composer
        self.transport = transport
        self.settings = settings or get_settings()

    async def send(
        self,
        posting: Posting,
        recipient_email: str,
        recipient_name: str,
        template_id: Optional[str] = None,
    ) -> SendResult:
        record = SendRecord(
            posting_id=posting.id,
            company_name=posting.company.name,
            recipient_email=recipient_email,
            recipient_name=recipient_name,
        )
        try:
            candidates = self.store.top_candidates(
                min_rating=self.settings.min_candidate_rating,
                limit=self.settings.curated_candidates_limit,
            )
            template = self.composer.select_template(posting.title, template_id)
            email: ComposedEmail = self.composer.compose(
                recipient_name, posting.company.name, candidates, template,
            )
            record.template_id = email.template_id
            record.subject = email.subject
            record.body = email.body
            record.candidates = [
                CandidateSnapshot(
                    name=c.name, profile_url=c.profile_url, title=c.title, company=c.current_company,
                )
                for c in candidates
            ]
            record.tracking_id = generate_tracking_id(posting.id, recipient_email)

            message_id = await self.transport.send(OutgoingEmail(
                to=recipient_email,
                sender=self.settings.from_email,
                subject=email.subject,
                html=email.body,
                headers={TRACKING_HEADER: record.tracking_id},
            ))
        except Exception as e:
            record.status = SendStatus.FAILED
            record.error_message = str(e) or e.__class__.__name__
            self.store.save_send_record(record)
            logger.error("Send to %s for posting %s failed: %s", recipient_email, posting.id, record.error_message)
            return SendFailure(error=record.error_message, record_id=record.id)

        record.status = SendStatus.SENT
        record.message_id = message_id
        # Delivered already; a failed write is logged and the receipt still returned
        try:
            self.store.save_send_record(record)
        except (OSError, ValueError) as e:
            logger.error("Sent to %s but could not store send record %s: %s", recipient_email, record.id, e)
        self._count_template_send(record.template_id)
        logger.info("Sent pitch to %s <%s> (tracking %s)", recipient_name, recipient_email, record.tracking_id)
        return SendReceipt(tracking_id=record.tracking_id, message_id=message_id, record_id=record.id)

    async def resend_failed(self, limit: int = 10, max_retries: Optional[int] = None) -> list[ResendResult]:
        """
        Retry failed sends that still have a composed subject/body.

        Each retry increments `retries` on the original record; records that
        reached `max_retries` are left alone.
        """
        max_retries = self.settings.max_send_retries if max_retries is None else max_retries
        failed = [
            r for r in self.store.list_send_records(status=SendStatus.FAILED)
            if r.retries < max_retries and r.subject and r.body
        ][:limit]

        results: list[ResendResult] = []
        for record in failed:
            headers = {TRACKING_HEADER: record.tracking_id} if record.tracking_id else {}
            try:
                message_id = await self.transport.send(OutgoingEmail(
                    to=record.recipient_email,
                    sender=self.settings.from_email,
                    subject=record.subject,
                    html=record.body,
                    headers=headers,
                ))
            except Exception as e:
                record.retries += 1
                record.error_message = str(e) or e.__class__.__name__
                self.store.save_send_record(record)
                results.append(ResendResult(record.id, False, record.error_message))
                continue

            record.retries += 1
            record.status = SendStatus.SENT
            record.message_id = message_id
            record.error_message = None
            self.store.save_send_record(record)
            self._count_template_send(record.template_id)
            results.append(ResendResult(record.id, True))
        return results

    def _count_template_send(self, template_id: Optional[str]) -> None:
        # The mail is already out at this point; a counter failure must not turn it into a failed send
        if not template_id:
            return
        try:
            template = self.store.get_template(template_id)
            if template is None:
                return
            template.performance.sent += 1
            self.store.save_template(template)
        except (OSError, ValueError) as e:
            logger.warning("Could not update send counter for template %s: %s", template_id, e)

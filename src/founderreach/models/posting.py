"""
Posting data model and its processing state machine.

A Posting is one scraped job listing tracked through the outreach pipeline.
Its processing_status only moves through transition(), which validates
every move against _TRANSITIONS; once a terminal status is reached the
posting is never reprocessed automatically.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class ProcessingStatus(str, Enum):
    PENDING         = "pending"
    SUCCESS         = "success"
    CEO_NOT_FOUND   = "ceo_not_found"
    EMAIL_NOT_FOUND = "email_not_found"
    SEND_FAILED     = "send_failed"


class PipelineEvent(str, Enum):
    CONTACT_NOT_FOUND = "contact_not_found"
    EMAIL_NOT_FOUND   = "email_not_found"
    VERIFIED          = "verified"        # contact + email found, sending disabled
    SENT              = "sent"
    SEND_FAILED       = "send_failed"
    CRASHED           = "crashed"


class IllegalTransitionError(Exception):
    """Raised when an event is not allowed from the current status."""


_TRANSITIONS: dict[tuple[ProcessingStatus, PipelineEvent], ProcessingStatus] = {
    (ProcessingStatus.PENDING, PipelineEvent.CONTACT_NOT_FOUND): ProcessingStatus.CEO_NOT_FOUND,
    (ProcessingStatus.PENDING, PipelineEvent.EMAIL_NOT_FOUND):   ProcessingStatus.EMAIL_NOT_FOUND,
    (ProcessingStatus.PENDING, PipelineEvent.VERIFIED):          ProcessingStatus.SUCCESS,
    (ProcessingStatus.PENDING, PipelineEvent.SENT):              ProcessingStatus.SUCCESS,
    (ProcessingStatus.PENDING, PipelineEvent.SEND_FAILED):       ProcessingStatus.SEND_FAILED,
    (ProcessingStatus.PENDING, PipelineEvent.CRASHED):           ProcessingStatus.SEND_FAILED,
}


def transition(status: ProcessingStatus, event: PipelineEvent) -> ProcessingStatus:
    """Return the status reached by applying `event` to `status`."""
    try:
        return _TRANSITIONS[(ProcessingStatus(status), PipelineEvent(event))]
    except KeyError:
        raise IllegalTransitionError(
            f"Event '{PipelineEvent(event).value}' is not allowed from status "
            f"'{ProcessingStatus(status).value}'"
        ) from None


def is_terminal(status: ProcessingStatus) -> bool:
    return ProcessingStatus(status) != ProcessingStatus.PENDING


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CompanyRef(BaseModel):
    name: str
    external_url: Optional[str] = None
    external_id: Optional[str] = None


class CeoContact(BaseModel):
    name: Optional[str] = None
    profile_url: Optional[str] = None
    email: Optional[str] = None
    email_source: Optional[str] = None   # hunter.io, rocketreach, manual


class PostingResponse(BaseModel):
    status: Optional[str] = None         # opened, clicked, replied
    responded_at: Optional[datetime] = None
    reply_content: Optional[str] = None


class Posting(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    external_id: str
    title: str
    company: CompanyRef
    location: str = ""
    description: str = ""
    posted_at: Optional[datetime] = None
    url: Optional[str] = None
    scraped_at: Optional[datetime] = None

    processing_status: ProcessingStatus = ProcessingStatus.PENDING
    processed: bool = False
    ceo_contact: CeoContact = Field(default_factory=CeoContact)
    email_sent: bool = False
    email_sent_at: Optional[datetime] = None
    notes: str = ""
    response: Optional[PostingResponse] = None

    def model_post_init(self, __context):
        if self.scraped_at is None:
            self.scraped_at = _utcnow()

    @model_validator(mode="after")
    def _check_invariants(self) -> "Posting":
        if self.processed and self.processing_status == ProcessingStatus.PENDING:
            raise ValueError("a processed posting cannot be pending")
        if self.email_sent:
            if not self.ceo_contact.email:
                raise ValueError("email_sent requires ceo_contact.email")
            if self.processing_status != ProcessingStatus.SUCCESS:
                raise ValueError("email_sent requires processing_status=success")
        return self

    def apply(self, event: PipelineEvent, note: str, at: Optional[datetime] = None) -> ProcessingStatus:
        """
        Move the posting to its next status and mark it processed.

        The note is stamped with the event time. Raises IllegalTransitionError
        (leaving the posting untouched) if the event is not allowed.
        """
        new_status = transition(self.processing_status, event)
        at = at or _utcnow()
        if event == PipelineEvent.SENT:
            if not self.ceo_contact.email:
                raise IllegalTransitionError("cannot record a send without ceo_contact.email")
            self.email_sent = True
            self.email_sent_at = at
        self.processing_status = new_status
        self.processed = True
        self.notes = f"{note} on {at.isoformat()}"
        return new_status

    def mark_email_sent(self, at: Optional[datetime] = None) -> None:
        """Record a follow-up send for a posting already verified in dry-run mode."""
        if self.processing_status != ProcessingStatus.SUCCESS or not self.ceo_contact.email:
            raise IllegalTransitionError(
                "only verified postings with a contact email can be marked as sent"
            )
        at = at or _utcnow()
        self.email_sent = True
        self.email_sent_at = at
        self.notes = f"Email sent successfully on {at.isoformat()}"

"""
Send record: the per-attempt log written by the dispatcher.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SendStatus(str, Enum):
    PENDING = "pending"
    SENT    = "sent"
    FAILED  = "failed"
    BOUNCED = "bounced"


class CandidateSnapshot(BaseModel):
    name: str
    profile_url: str
    title: Optional[str] = None
    company: Optional[str] = None


class Engagement(BaseModel):
    opened: bool = False
    opened_at: Optional[datetime] = None
    clicked: bool = False
    clicked_at: Optional[datetime] = None
    replied: bool = False
    replied_at: Optional[datetime] = None
    reply_content: Optional[str] = None


class SendRecord(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    posting_id: str
    company_name: str
    recipient_email: str
    recipient_name: Optional[str] = None
    template_id: Optional[str] = None
    subject: Optional[str] = None
    body: Optional[str] = None
    candidates: list[CandidateSnapshot] = Field(default_factory=list)
    tracking_id: Optional[str] = None
    status: SendStatus = SendStatus.PENDING
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    retries: int = 0
    sent_at: Optional[datetime] = None
    engagement: Engagement = Field(default_factory=Engagement)

    def model_post_init(self, __context):
        if self.sent_at is None:
            self.sent_at = datetime.now(timezone.utc)

"""
Engagement tracking: correlates opened / clicked / replied events back to
the send record through its tracking id.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from founderreach.models.posting import PostingResponse
from founderreach.models.send_record import SendRecord
from founderreach.services.storage import JsonStore

logger = logging.getLogger(__name__)

EVENTS = ("opened", "clicked", "replied")


class EngagementTracker:
    def __init__(self, store: JsonStore):
        self.store = store

    def record(
        self,
        tracking_id: str,
        event: str,
        at: Optional[datetime] = None,
        reply_content: Optional[str] = None,
    ) -> Optional[SendRecord]:
        """
        Record one engagement event and return the updated send record.

        Only the first occurrence of each event is counted; repeats return the
        record unchanged. Returns None for an unknown tracking id.
        """
        if event not in EVENTS:
            raise ValueError(f"Unknown engagement event: {event}")

        record = self.store.find_send_record_by_tracking_id(tracking_id)
        if record is None:
            logger.warning("No send record for tracking id %s", tracking_id)
            return None

        engagement = record.engagement
        if getattr(engagement, event):
            return record

        at = at or datetime.now(timezone.utc)
        setattr(engagement, event, True)
        setattr(engagement, f"{event}_at", at)
        if event == "replied" and reply_content:
            engagement.reply_content = reply_content
        self.store.save_send_record(record)

        posting = self.store.get_posting(record.posting_id)
        if posting is not None:
            posting.response = PostingResponse(
                status=event,
                responded_at=at,
                reply_content=engagement.reply_content,
            )
            self.store.save_posting(posting)

        if record.template_id:
            template = self.store.get_template(record.template_id)
            if template is not None:
                metrics = template.performance
                setattr(metrics, event, getattr(metrics, event) + 1)
                self.store.save_template(template)

        logger.info("Recorded '%s' for %s (%s)", event, record.recipient_email, tracking_id)
        return record

"""Tests for the posting status transitions and invariants."""
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from founderreach.models.posting import (
    CeoContact,
    IllegalTransitionError,
    PipelineEvent,
    ProcessingStatus,
    is_terminal,
    transition,
)

from conftest import make_posting


class TestTransition:
    @pytest.mark.parametrize("event, expected", [
        (PipelineEvent.CONTACT_NOT_FOUND, ProcessingStatus.CEO_NOT_FOUND),
        (PipelineEvent.EMAIL_NOT_FOUND, ProcessingStatus.EMAIL_NOT_FOUND),
        (PipelineEvent.VERIFIED, ProcessingStatus.SUCCESS),
        (PipelineEvent.SENT, ProcessingStatus.SUCCESS),
        (PipelineEvent.SEND_FAILED, ProcessingStatus.SEND_FAILED),
        (PipelineEvent.CRASHED, ProcessingStatus.SEND_FAILED),
    ])
    def test_pending_moves_to_terminal(self, event, expected):
        assert transition(ProcessingStatus.PENDING, event) == expected
        assert is_terminal(expected)

    @pytest.mark.parametrize("status", [
        ProcessingStatus.SUCCESS,
        ProcessingStatus.CEO_NOT_FOUND,
        ProcessingStatus.EMAIL_NOT_FOUND,
        ProcessingStatus.SEND_FAILED,
    ])
    def test_terminal_statuses_accept_no_events(self, status):
        with pytest.raises(IllegalTransitionError):
            transition(status, PipelineEvent.SENT)

    def test_accepts_plain_strings(self):
        assert transition("pending", "verified") == ProcessingStatus.SUCCESS


class TestPostingApply:
    def test_apply_marks_processed_and_stamps_note(self):
        posting = make_posting()
        at = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

        posting.apply(PipelineEvent.CONTACT_NOT_FOUND, "CEO not found", at=at)

        assert posting.processed is True
        assert posting.processing_status == ProcessingStatus.CEO_NOT_FOUND
        assert posting.notes == "CEO not found on 2024-05-01T12:00:00+00:00"

    def test_sent_requires_email_and_leaves_posting_untouched(self):
        posting = make_posting()

        with pytest.raises(IllegalTransitionError):
            posting.apply(PipelineEvent.SENT, "Email sent successfully")

        assert posting.processed is False
        assert posting.processing_status == ProcessingStatus.PENDING
        assert posting.email_sent is False

    def test_sent_sets_email_sent(self):
        posting = make_posting(ceo_contact=CeoContact(name="Jane", email="jane@acme.io"))

        posting.apply(PipelineEvent.SENT, "Email sent successfully")

        assert posting.email_sent is True
        assert posting.email_sent_at is not None
        assert posting.processing_status == ProcessingStatus.SUCCESS

    def test_second_apply_is_rejected(self):
        posting = make_posting()
        posting.apply(PipelineEvent.EMAIL_NOT_FOUND, "Email not found")

        with pytest.raises(IllegalTransitionError):
            posting.apply(PipelineEvent.CRASHED, "boom")
        assert posting.processing_status == ProcessingStatus.EMAIL_NOT_FOUND

    def test_mark_email_sent_requires_verified_posting(self):
        posting = make_posting()
        with pytest.raises(IllegalTransitionError):
            posting.mark_email_sent()

        posting.ceo_contact = CeoContact(name="Jane", email="jane@acme.io")
        posting.apply(PipelineEvent.VERIFIED, "verified")
        posting.mark_email_sent()
        assert posting.email_sent is True


class TestPostingInvariants:
    def test_processed_posting_cannot_be_pending(self):
        with pytest.raises(ValidationError):
            make_posting(processed=True)

    def test_email_sent_requires_email(self):
        with pytest.raises(ValidationError):
            make_posting(processed=True, processing_status="success", email_sent=True)

    def test_email_sent_requires_success(self):
        with pytest.raises(ValidationError):
            make_posting(
                processed=True,
                processing_status="send_failed",
                email_sent=True,
                ceo_contact=CeoContact(email="jane@acme.io"),
            )

    def test_scraped_at_defaults_to_now(self):
        assert make_posting().scraped_at is not None

"""Tests for the per-posting state machine driver."""
import asyncio
from unittest.mock import AsyncMock, Mock

import httpx
import pytest
import respx

from founderreach.models.contact import Contact, EmailMatch
from founderreach.models.posting import ProcessingStatus
from founderreach.models.send_record import SendStatus
from founderreach.services.contact_resolver import ContactResolver
from founderreach.services.directory import HunterClient
from founderreach.services.dispatcher import Dispatcher
from founderreach.services.email_resolver import EmailResolver
from founderreach.services.gmail_sender import TransportError
from founderreach.services.job_processor import AlreadyProcessedError, JobProcessor

from conftest import FakeProvider, FakeTransport, make_posting


def _email_resolver(match):
    resolver = Mock(spec=EmailResolver)
    resolver.resolve = AsyncMock(return_value=match)
    return resolver


def _processor(store, settings, dispatcher, contact=None, match=None, send_emails=False):
    return JobProcessor(
        store,
        ContactResolver(FakeProvider("hunter.io", contact)),
        _email_resolver(match),
        dispatcher,
        settings,
        send_emails=send_emails,
    )


@pytest.fixture
def posting(store):
    return store.insert_posting(make_posting())


class TestOutcomes:
    def test_cofounder_found_email_resolved_dry_run(self, store, settings, dispatcher, transport, posting):
        contact = Contact(name="Priya Patel", title="Co-Founder", source="hunter.io")
        processor = _processor(store, settings, dispatcher, contact, EmailMatch(email="priya@acme.io", source="hunter.io"))

        result = asyncio.run(processor.process(posting))

        assert result.processing_status == ProcessingStatus.SUCCESS
        assert result.processed is True
        assert result.email_sent is False
        assert result.ceo_contact.email == "priya@acme.io"
        assert result.ceo_contact.email_source == "hunter.io"
        assert "email sending disabled" in result.notes
        assert transport.sent == []
        assert store.get_posting(posting.id) == result

    def test_no_contact(self, store, settings, dispatcher, posting):
        result = asyncio.run(_processor(store, settings, dispatcher).process(posting))

        assert result.processing_status == ProcessingStatus.CEO_NOT_FOUND
        assert result.notes.startswith("CEO not found on ")

    def test_unconfigured_primary_and_spent_secondary_end_ceo_not_found(self, store, settings, dispatcher, posting):
        from founderreach.services.contact_resolver import HunterContactProvider

        resolver = ContactResolver(HunterContactProvider(HunterClient(None)), FakeProvider("rocketreach"))
        resolver._secondary_used = True
        processor = JobProcessor(store, resolver, _email_resolver(None), dispatcher, settings)

        result = asyncio.run(processor.process(posting))

        assert result.processing_status == ProcessingStatus.CEO_NOT_FOUND

    def test_no_email(self, store, settings, dispatcher, posting):
        processor = _processor(store, settings, dispatcher, Contact(name="Jane Doe"), None)

        result = asyncio.run(processor.process(posting))

        assert result.processing_status == ProcessingStatus.EMAIL_NOT_FOUND
        assert result.ceo_contact.name == "Jane Doe"
        assert result.notes.startswith("Email not found for CEO Jane Doe")

    @respx.mock
    def test_malformed_email_lookup_ends_email_not_found(self, store, settings, dispatcher, posting):
        respx.get("https://api.hunter.io/v2/domain-search").mock(
            return_value=httpx.Response(200, json={"data": {"domain": "acme.io"}})
        )
        respx.get("https://api.hunter.io/v2/email-finder").mock(
            return_value=httpx.Response(200, json={"data": "oops"})
        )
        processor = JobProcessor(
            store,
            ContactResolver(FakeProvider("hunter.io", Contact(name="Jane Doe"))),
            EmailResolver(HunterClient("key")),
            dispatcher,
            settings,
        )

        result = asyncio.run(processor.process(posting))

        assert result.processing_status == ProcessingStatus.EMAIL_NOT_FOUND

    def test_send_success(self, store, settings, dispatcher, transport, posting):
        processor = _processor(
            store, settings, dispatcher,
            Contact(name="Jane Doe"), EmailMatch(email="jane@acme.io", source="hunter.io"),
            send_emails=True,
        )

        result = asyncio.run(processor.process(posting))

        assert result.processing_status == ProcessingStatus.SUCCESS
        assert result.email_sent is True
        assert len(transport.sent) == 1
        assert store.list_send_records()[0].status == SendStatus.SENT

    def test_transport_failure_ends_send_failed(self, store, composer, settings, posting):
        dispatcher = Dispatcher(store, composer, FakeTransport(TransportError("550 rejected")), settings)
        processor = _processor(
            store, settings, dispatcher,
            Contact(name="Jane Doe"), EmailMatch(email="jane@acme.io", source="hunter.io"),
            send_emails=True,
        )

        result = asyncio.run(processor.process(posting))

        assert result.processing_status == ProcessingStatus.SEND_FAILED
        assert result.email_sent is False
        assert "550 rejected" in result.notes
        [record] = store.list_send_records(posting_id=posting.id)
        assert record.status == SendStatus.FAILED
        assert record.error_message == "550 rejected"


class TestRobustness:
    def test_unexpected_error_force_terminates(self, store, settings, dispatcher, posting):
        processor = _processor(store, settings, dispatcher, Contact(name="Jane Doe"))
        processor.email_resolver.resolve = AsyncMock(side_effect=RuntimeError("boom"))

        result = asyncio.run(processor.process(posting))

        assert result.processing_status == ProcessingStatus.SEND_FAILED
        assert result.processed is True
        assert result.notes.startswith("Processing error: boom")
        assert result.ceo_contact.name == "Jane Doe"
        assert store.get_posting(posting.id).processing_status == ProcessingStatus.SEND_FAILED

    def test_processing_twice_is_rejected_without_side_effects(self, store, settings, dispatcher, transport, posting):
        processor = _processor(
            store, settings, dispatcher,
            Contact(name="Jane Doe"), EmailMatch(email="jane@acme.io", source="hunter.io"),
            send_emails=True,
        )
        done = asyncio.run(processor.process(posting))

        with pytest.raises(AlreadyProcessedError):
            asyncio.run(processor.process(done))

        assert len(transport.sent) == 1
        assert len(store.list_send_records()) == 1
        assert store.get_posting(posting.id).processing_status == ProcessingStatus.SUCCESS

    def test_stale_copy_does_not_send_again(self, store, settings, dispatcher, transport, posting):
        processor = _processor(
            store, settings, dispatcher,
            Contact(name="Jane Doe"), EmailMatch(email="jane@acme.io", source="hunter.io"),
            send_emails=True,
        )
        stale = posting.model_copy(deep=True)
        asyncio.run(processor.process(posting))

        with pytest.raises(AlreadyProcessedError):
            asyncio.run(processor.process(stale))

        assert len(transport.sent) == 1

    def test_never_leaves_posting_pending(self, store, settings, dispatcher):
        outcomes = [None, Contact(name="A B")]
        for i, contact in enumerate(outcomes):
            posting = store.insert_posting(make_posting(str(i), title=f"Role {i}"))
            asyncio.run(_processor(store, settings, dispatcher, contact).process(posting))

        for p in store.list_postings():
            assert p.processed and p.processing_status != ProcessingStatus.PENDING

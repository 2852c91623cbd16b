"""Tests for the JSON document store."""
import json

import pytest

from founderreach.models.candidate import Candidate
from founderreach.models.posting import PipelineEvent
from founderreach.models.send_record import SendRecord, SendStatus
from founderreach.models.template import EmailTemplate, Sector
from founderreach.services.storage import (
    ConcurrentUpdateError,
    DuplicateKeyError,
    PostingNotFoundError,
)

from conftest import make_posting


class TestPostings:
    def test_insert_writes_readable_json(self, store):
        posting = store.insert_posting(make_posting())

        path = store.data_dir / "postings" / f"{posting.id}.json"
        assert json.loads(path.read_text())["external_id"] == "4001"
        assert store.get_posting(posting.id) == posting

    def test_duplicate_by_external_id(self, store):
        store.insert_posting(make_posting("4001"))

        with pytest.raises(DuplicateKeyError):
            store.insert_posting(make_posting("4001", title="Other", company="Other"))

    def test_duplicate_by_title_and_company_ignores_case(self, store):
        original = store.insert_posting(make_posting("4001", title="Founding Engineer", company="Acme"))

        dup = store.find_duplicate(make_posting("9999", title="founding engineer ", company="ACME"))

        assert dup is not None and dup.id == original.id

    def test_require_posting_raises_for_unknown_id(self, store):
        with pytest.raises(PostingNotFoundError):
            store.require_posting("nope")

    def test_save_outcome_refuses_to_overwrite_processed(self, store):
        posting = store.insert_posting(make_posting())
        first = posting.model_copy(deep=True)
        second = posting.model_copy(deep=True)

        first.apply(PipelineEvent.CONTACT_NOT_FOUND, "CEO not found")
        store.save_outcome(first)
        second.apply(PipelineEvent.EMAIL_NOT_FOUND, "Email not found")

        with pytest.raises(ConcurrentUpdateError):
            store.save_outcome(second)
        assert store.get_posting(posting.id).processing_status.value == "ceo_not_found"

    def test_list_and_count_with_filter(self, store):
        store.insert_posting(make_posting("1", title="A"))
        done = make_posting("2", title="B")
        done.apply(PipelineEvent.CONTACT_NOT_FOUND, "CEO not found")
        store.insert_posting(done)

        assert store.count_postings() == 2
        assert [p.external_id for p in store.list_postings(lambda p: not p.processed)] == ["1"]


class TestCandidates:
    def test_upsert_keeps_id_for_same_profile(self, store):
        first = store.upsert_candidate(Candidate(name="Ada", profile_url="https://linkedin.com/in/ada"))
        second = store.upsert_candidate(
            Candidate(name="Ada L.", profile_url="https://linkedin.com/in/ada", rating=5)
        )

        assert second.id == first.id
        assert len(store.list_candidates()) == 1
        assert store.list_candidates()[0].rating == 5

    def test_top_candidates_orders_by_experience_then_rating(self, store, seeded_candidates):
        top = store.top_candidates(min_rating=4, limit=3)

        assert [c.name for c in top] == ["Ada Senior", "Bob Mid"]


class TestTemplates:
    def test_template_names_are_unique(self, store):
        store.save_template(EmailTemplate(name="fintech-v1", sector=Sector.FINTECH))

        with pytest.raises(DuplicateKeyError):
            store.save_template(EmailTemplate(name="fintech-v1"))

    def test_find_active_template_skips_inactive(self, store):
        store.save_template(EmailTemplate(name="old", sector=Sector.AI, active=False))
        active = store.save_template(EmailTemplate(name="new", sector=Sector.AI))

        assert store.find_active_template("ai").id == active.id
        assert store.find_active_template(Sector.EDTECH) is None


class TestSendRecords:
    def test_lookup_by_tracking_id_and_status(self, store):
        sent = store.save_send_record(SendRecord(
            posting_id="p1", company_name="Acme", recipient_email="a@acme.io",
            tracking_id="t-1", status=SendStatus.SENT,
        ))
        store.save_send_record(SendRecord(
            posting_id="p2", company_name="Beta", recipient_email="b@beta.io", status=SendStatus.FAILED,
        ))

        assert store.find_send_record_by_tracking_id("t-1").id == sent.id
        assert store.find_send_record_by_tracking_id("missing") is None
        assert [r.posting_id for r in store.list_send_records(status=SendStatus.FAILED)] == ["p2"]
        assert len(store.list_send_records(posting_id="p1")) == 1

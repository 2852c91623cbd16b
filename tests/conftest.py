"""Shared fixtures: a store under tmp_path, isolated settings and fake collaborators."""
from __future__ import annotations

from typing import Optional
from unittest.mock import AsyncMock

import pytest

from founderreach.config import Settings
from founderreach.models.candidate import Candidate
from founderreach.models.contact import Contact
from founderreach.models.posting import CompanyRef, Posting
from founderreach.services.composer import Composer
from founderreach.services.dispatcher import Dispatcher
from founderreach.services.storage import JsonStore
from founderreach.services.task_runner import SequentialRunner


class FakeTransport:
    """Mail transport that records messages, or raises `error` when set."""

    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.sent = []

    async def send(self, message):
        if self.error is not None:
            raise self.error
        self.sent.append(message)
        return f"msg-{len(self.sent)}"


class FakeProvider:
    """Contact provider stub with a call counter."""

    def __init__(self, name: str, contact: Optional[Contact] = None, enabled: bool = True):
        self.name = name
        self.enabled = enabled
        self.find = AsyncMock(return_value=contact)


class FakeScraper:
    def __init__(self, postings: list[Posting]):
        self.postings = postings
        self.calls = []

    async def scrape_postings(self, title_query, location, max_pages=None):
        self.calls.append((title_query, location))
        return [p.model_copy(deep=True) for p in self.postings]


def make_posting(external_id: str = "4001", title: str = "Founding Engineer", company: str = "Acme", **kwargs) -> Posting:
    return Posting(external_id=external_id, title=title, company=CompanyRef(name=company), **kwargs)


def no_wait_runner() -> SequentialRunner:
    return SequentialRunner(0.0)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        data_dir=str(tmp_path / "data"),
        log_file="",
        hunter_api_key=None,
        rocketreach_api_key=None,
        brave_api_key=None,
        tavily_api_key=None,
        google_cse_api_key=None,
        google_cse_cx=None,
        from_email="me@founderreach.test",
        sender_name="Sam Recruiter",
        sender_company="FounderReach",
        send_emails=False,
        email_send_delay_seconds=0.0,
    )


@pytest.fixture
def store(settings):
    return JsonStore(settings.data_dir)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def composer(store, settings):
    return Composer(store, settings)


@pytest.fixture
def dispatcher(store, composer, transport, settings):
    return Dispatcher(store, composer, transport, settings)


@pytest.fixture
def seeded_candidates(store):
    candidates = [
        Candidate(name="Ada Senior", profile_url="https://linkedin.com/in/ada", title="Staff Engineer",
                  current_company="Bigco", years_of_experience=12, rating=5),
        Candidate(name="Bob Mid", profile_url="https://linkedin.com/in/bob", title="Senior Engineer",
                  current_company="Midco", years_of_experience=7, rating=4),
        Candidate(name="Cy Junior", profile_url="https://linkedin.com/in/cy", title="Engineer",
                  current_company="Smallco", years_of_experience=2, rating=3),
    ]
    for c in candidates:
        store.upsert_candidate(c)
    return candidates

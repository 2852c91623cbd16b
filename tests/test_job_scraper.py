"""Tests for the LinkedIn guest-search scraper."""
import asyncio
from datetime import datetime, timezone

import httpx
import pytest
import respx

from founderreach.services.job_scraper import (
    GUEST_SEARCH_URL,
    LinkedInJobScraper,
    ScrapeError,
    parse_job_cards,
)

CARDS_HTML = """
<ul>
  <li>
    <div class="base-card base-search-card" data-entity-urn="urn:li:jobPosting:3901">
      <a class="base-card__full-link" href="https://in.linkedin.com/jobs/view/founding-engineer-at-acme-3901?refId=abc&trk=x"></a>
      <h3 class="base-search-card__title">  Founding Engineer  </h3>
      <h4 class="base-search-card__subtitle">
        <a href="https://in.linkedin.com/company/acme?trk=public_jobs">Acme Labs</a>
      </h4>
      <span class="job-search-card__location">Bengaluru, Karnataka, India</span>
      <time class="job-search-card__listdate" datetime="2024-05-02">2 days ago</time>
    </div>
  </li>
  <li>
    <div class="base-card base-search-card">
      <a class="base-card__full-link" href="https://in.linkedin.com/jobs/view/backend-engineer-3902"></a>
      <h3 class="base-search-card__title">Backend Engineer</h3>
      <h4 class="base-search-card__subtitle">Beta Pay</h4>
    </div>
  </li>
  <li>
    <div class="base-card" data-entity-urn="urn:li:jobPosting:3903">
      <h3 class="base-search-card__title">No company listed</h3>
    </div>
  </li>
</ul>
"""


def test_parse_job_cards():
    postings = parse_job_cards(CARDS_HTML)

    assert [p.external_id for p in postings] == ["3901", "3902"]
    first = postings[0]
    assert first.title == "Founding Engineer"
    assert first.company.name == "Acme Labs"
    assert first.company.external_url == "https://in.linkedin.com/company/acme"
    assert first.location == "Bengaluru, Karnataka, India"
    assert first.posted_at == datetime(2024, 5, 2, tzinfo=timezone.utc)
    assert first.url == "https://in.linkedin.com/jobs/view/founding-engineer-at-acme-3901"
    assert postings[1].company.name == "Beta Pay"
    assert postings[1].posted_at is None


@respx.mock
def test_scrape_pages_until_empty():
    route = respx.get(GUEST_SEARCH_URL).mock(side_effect=[
        httpx.Response(200, text=CARDS_HTML),
        httpx.Response(200, text="<ul></ul>"),
    ])
    scraper = LinkedInJobScraper(max_pages=3, page_delay=0)

    postings = asyncio.run(scraper.scrape_postings("Founding Engineer", "Bangalore"))

    assert len(postings) == 2
    assert route.call_count == 2
    params = route.calls[1].request.url.params
    assert params["keywords"] == "Founding Engineer"
    assert params["start"] == "25"
    assert params["sortBy"] == "DD"


@respx.mock
def test_blocked_guest_endpoint_falls_back_to_browser(monkeypatch):
    respx.get(GUEST_SEARCH_URL).mock(return_value=httpx.Response(999))
    scraper = LinkedInJobScraper(page_delay=0)
    calls = []

    async def fake_browser(title_query, location):
        calls.append((title_query, location))
        return []

    monkeypatch.setattr(scraper, "_scrape_playwright", fake_browser)

    assert asyncio.run(scraper.scrape_postings("Founding Engineer", "Bangalore")) == []
    assert calls == [("Founding Engineer", "Bangalore")]


@respx.mock
def test_server_error_raises():
    respx.get(GUEST_SEARCH_URL).mock(return_value=httpx.Response(500))

    with pytest.raises(ScrapeError):
        asyncio.run(LinkedInJobScraper(page_delay=0).scrape_postings("x", "y"))

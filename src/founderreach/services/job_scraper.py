"""
LinkedIn job scraper.

Strategy:
  - LinkedIn guest search endpoint → httpx + BeautifulSoup (no login, no browser)
  - HTTP 429 / 999 (LinkedIn's bot wall) → Playwright render of the public
    search page, parsed with the same card parser

Entry point: LinkedInJobScraper.scrape_postings(title, location) → list[Posting]
Returns an empty list when LinkedIn blocks every strategy.
"""
from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlencode, urlparse, urlunparse

import httpx
from bs4 import BeautifulSoup
from playwright.async_api import async_playwright, TimeoutError as PlaywrightTimeoutError

from founderreach.models.posting import CompanyRef, Posting

logger = logging.getLogger(__name__)

GUEST_SEARCH_URL = "https://www.linkedin.com/jobs-guest/jobs/api/seeMoreJobPostings/search"
PUBLIC_SEARCH_URL = "https://www.linkedin.com/jobs/search/"
PAGE_SIZE = 25
BLOCKED_STATUSES = {429, 999}

_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

_JOB_URN = re.compile(r"urn:li:jobPosting:(\d+)")
_JOB_VIEW_ID = re.compile(r"/jobs/view/(?:[^/?]*-)?(\d+)")


class ScrapeError(Exception):
    """Raised when a search page cannot be fetched for a non-blocking reason."""


class _Blocked(Exception):
    pass


# ---------------------------------------------------------------------------
# Card parsing
# ---------------------------------------------------------------------------

def _text(node) -> str:
    return node.get_text(" ", strip=True) if node is not None else ""


def _strip_query(url: str) -> str:
    parsed = urlparse(url)
    return urlunparse(parsed._replace(query="", fragment=""))


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").replace(tzinfo=timezone.utc)
    except ValueError:
        return None


def parse_job_cards(html: str) -> list[Posting]:
    """Parse LinkedIn job search cards (guest endpoint or public page) into postings."""
    soup = BeautifulSoup(html, "lxml")
    postings: list[Posting] = []
    seen: set[str] = set()

    for card in soup.select("div.base-card, div.base-search-card"):
        link = card.select_one("a.base-card__full-link")
        url = _strip_query(link["href"]) if link is not None and link.get("href") else None

        job_id = None
        urn = _JOB_URN.search(card.get("data-entity-urn", ""))
        if urn:
            job_id = urn.group(1)
        elif url:
            view = _JOB_VIEW_ID.search(url)
            job_id = view.group(1) if view else None

        title = _text(card.select_one("h3.base-search-card__title"))
        company_link = card.select_one("h4.base-search-card__subtitle a")
        company = _text(company_link) or _text(card.select_one("h4.base-search-card__subtitle"))
        if not job_id or not title or not company or job_id in seen:
            continue
        seen.add(job_id)

        company_url = None
        if company_link is not None and company_link.get("href"):
            company_url = _strip_query(company_link["href"])
        time_tag = card.select_one("time")

        postings.append(Posting(
            external_id=job_id,
            title=title,
            company=CompanyRef(name=company, external_url=company_url),
            location=_text(card.select_one("span.job-search-card__location")),
            posted_at=_parse_date(time_tag.get("datetime") if time_tag is not None else None),
            url=url,
        ))
    return postings


# ---------------------------------------------------------------------------
# Scraper
# ---------------------------------------------------------------------------

class LinkedInJobScraper:
    def __init__(self, max_pages: int = 2, page_delay: float = 2.0, timeout: float = 15.0):
        self.max_pages = max_pages
        self.page_delay = page_delay
        self.timeout = timeout

    async def scrape_postings(
        self,
        title_query: str,
        location: str,
        max_pages: Optional[int] = None,
    ) -> list[Posting]:
        """Return postings for `title_query` in `location`, newest first."""
        pages = max_pages or self.max_pages
        logger.info("Searching LinkedIn for '%s' jobs in '%s'", title_query, location)
        try:
            postings = await self._scrape_guest(title_query, location, pages)
        except _Blocked as e:
            logger.warning("Guest endpoint blocked (%s), falling back to browser", e)
            postings = await self._scrape_playwright(title_query, location)
        logger.info("Scraped %d postings", len(postings))
        return postings

    async def _scrape_guest(self, title_query: str, location: str, pages: int) -> list[Posting]:
        postings: list[Posting] = []
        seen: set[str] = set()
        headers = {"User-Agent": _USER_AGENT, "Accept-Language": "en-US,en;q=0.9"}

        async with httpx.AsyncClient(timeout=self.timeout, headers=headers, follow_redirects=True) as client:
            for page in range(pages):
                params = {
                    "keywords": title_query,
                    "location": location,
                    "start": page * PAGE_SIZE,
                    "sortBy": "DD",
                }
                try:
                    resp = await client.get(GUEST_SEARCH_URL, params=params)
                except httpx.HTTPError as e:
                    raise ScrapeError(f"LinkedIn request failed: {e}") from e

                if resp.status_code in BLOCKED_STATUSES:
                    if postings:
                        logger.warning("Blocked on page %d, keeping %d postings", page + 1, len(postings))
                        break
                    raise _Blocked(f"HTTP {resp.status_code}")
                if resp.status_code != 200:
                    raise ScrapeError(f"LinkedIn search error {resp.status_code}")

                batch = parse_job_cards(resp.text)
                logger.debug("Page %d: %d postings", page + 1, len(batch))
                if not batch:
                    break
                for posting in batch:
                    if posting.external_id not in seen:
                        seen.add(posting.external_id)
                        postings.append(posting)

                if page + 1 < pages:
                    await asyncio.sleep(self.page_delay)
        return postings

    async def _scrape_playwright(self, title_query: str, location: str) -> list[Posting]:
        url = f"{PUBLIC_SEARCH_URL}?{urlencode({'keywords': title_query, 'location': location, 'sortBy': 'DD'})}"

        async with async_playwright() as p:
            browser = await p.chromium.launch(headless=True)
            try:
                context = await browser.new_context(
                    user_agent=_USER_AGENT,
                    viewport={"width": 1280, "height": 800},
                    locale="en-US",
                )
                page = await context.new_page()

                # Block images/fonts/media to speed up loading
                await page.route(
                    "**/*",
                    lambda route: route.abort()
                    if route.request.resource_type in {"image", "media", "font"}
                    else route.continue_(),
                )

                try:
                    await page.goto(url, wait_until="domcontentloaded", timeout=45_000)
                    await page.wait_for_selector("div.base-card", timeout=15_000)
                except PlaywrightTimeoutError:
                    logger.warning("Timed out waiting for job cards; parsing whatever rendered")
                await page.mouse.wheel(0, 4000)
                await page.wait_for_timeout(2_000)
                html = await page.content()
            finally:
                await browser.close()

        postings = parse_job_cards(html)
        if not postings:
            logger.warning("No postings rendered; LinkedIn may require login or is blocking")
        return postings

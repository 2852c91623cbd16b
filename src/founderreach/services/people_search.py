"""
People search: discovers engineering candidates' public LinkedIn profiles.

Strategy: web-search `site:linkedin.com/in "<title>" "<location>"` and
parse name + headline + profile URL from the result headings.

Search backends (tried in order, failing over on rate-limit/block):
  1. DuckDuckGo HTML     : free, no API key
  2. Brave Search API    : needs BRAVE_API_KEY
  3. Tavily API          : needs TAVILY_API_KEY
  4. Google Custom Search: needs GOOGLE_CSE_API_KEY + GOOGLE_CSE_CX

Results become Candidate records (rating 3, source "search:<backend>").
May return an empty list when every backend is blocked.
"""
from __future__ import annotations

import asyncio
import logging
import random
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional
from urllib.parse import parse_qs, unquote, urlparse

import httpx
from bs4 import BeautifulSoup

from founderreach.config import Settings, get_settings
from founderreach.models.candidate import Candidate

logger = logging.getLogger(__name__)

_DDG_SEARCH_URL    = "https://html.duckduckgo.com/html/"
_BRAVE_SEARCH_URL  = "https://api.search.brave.com/res/v1/web/search"
_TAVILY_SEARCH_URL = "https://api.tavily.com/search"
_GOOGLE_CSE_URL    = "https://www.googleapis.com/customsearch/v1"

_USER_AGENTS = [
    (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
    ),
]

# Default roles searched when looking for founding-engineer talent
CANDIDATE_TITLES = [
    "Engineering Manager",
    "CTO",
    "VP Engineering",
    "Principal Engineer",
    "Founding Engineer",
    "Senior Software Engineer",
]


class PeopleSearchError(Exception):
    """Raised when a search backend fails or is blocked."""


@dataclass
class SearchHit:
    name: str
    profile_url: str
    headline: Optional[str]
    backend: str


@dataclass
class ProfileDetails:
    profile_url: str
    name: str
    headline: Optional[str] = None
    summary: Optional[str] = None


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def search_people(
    title: str,
    location: str,
    limit: int = 10,
    *,
    settings: Optional[Settings] = None,
    delay_range: tuple[float, float] = (2.0, 4.0),
) -> list[Candidate]:
    """
    Search public LinkedIn profiles for `title` in `location`.

    On the first failure of a backend, the remaining queries fail over to the
    next configured backend. Results are deduplicated by profile URL.
    """
    settings = settings or get_settings()
    queries = [f'site:linkedin.com/in "{title}" "{location}"']
    if location:
        queries.append(f'site:linkedin.com/in "{title}"')

    backends = _available_backends(settings)
    backend_idx = 0
    candidates: list[Candidate] = []
    seen: set[str] = set()

    for i, query in enumerate(queries):
        if len(candidates) >= limit or backend_idx >= len(backends):
            break
        if i > 0:
            await asyncio.sleep(random.uniform(*delay_range))

        hits: list[SearchHit] = []
        while backend_idx < len(backends):
            name, search = backends[backend_idx]
            try:
                hits = await search(query)
                logger.info("[%s] %d result(s) for %s", name, len(hits), query)
                break
            except PeopleSearchError as e:
                logger.warning("%s failed: %s", name, e)
                backend_idx += 1

        for hit in hits:
            key = _normalize_linkedin_url(hit.profile_url)
            if key in seen:
                continue
            seen.add(key)
            role, company = _split_headline(hit.headline)
            candidates.append(Candidate(
                name=hit.name,
                profile_url=hit.profile_url,
                title=role,
                current_company=company,
                location=location or None,
                rating=3,
                source=f"search:{hit.backend}",
            ))

    if backend_idx >= len(backends):
        logger.warning("All search backends exhausted")
    return candidates[:limit]


async def fetch_profile(url: str, timeout: float = 15.0) -> Optional[ProfileDetails]:
    """Read a public profile's OpenGraph metadata. Returns None when blocked or missing."""
    headers = {"User-Agent": random.choice(_USER_AGENTS), "Accept-Language": "en-US,en;q=0.9"}
    async with httpx.AsyncClient(timeout=timeout, headers=headers, follow_redirects=True) as client:
        try:
            resp = await client.get(url)
        except httpx.HTTPError as e:
            logger.warning("Profile fetch failed for %s: %s", url, e)
            return None
    if resp.status_code != 200:
        logger.warning("Profile fetch for %s returned HTTP %s", url, resp.status_code)
        return None
    return parse_profile_meta(url, resp.text)


def parse_profile_meta(url: str, html: str) -> Optional[ProfileDetails]:
    soup = BeautifulSoup(html, "lxml")

    def meta(*keys: str) -> Optional[str]:
        for key in keys:
            tag = soup.find("meta", attrs={"property": key}) or soup.find("meta", attrs={"name": key})
            if tag is not None and tag.get("content"):
                return tag["content"].strip()
        return None

    heading = meta("og:title") or (soup.title.get_text(strip=True) if soup.title else "")
    name, headline = _parse_linkedin_title(heading or "")
    if not name:
        return None
    return ProfileDetails(
        profile_url=url,
        name=name,
        headline=headline,
        summary=meta("og:description", "description"),
    )


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------


def _available_backends(settings: Settings) -> list[tuple[str, Callable[[str], Awaitable[list[SearchHit]]]]]:
    backends: list[tuple[str, Callable[[str], Awaitable[list[SearchHit]]]]] = [("duckduckgo", _search_ddg)]
    if settings.brave_api_key:
        backends.append(("brave", lambda q: _search_brave(q, settings.brave_api_key)))
    if settings.tavily_api_key:
        backends.append(("tavily", lambda q: _search_tavily(q, settings.tavily_api_key)))
    if settings.google_cse_api_key and settings.google_cse_cx:
        backends.append((
            "google_cse",
            lambda q: _search_google_cse(q, api_key=settings.google_cse_api_key, cx=settings.google_cse_cx),
        ))
    return backends


async def _request(method: str, url: str, backend: str, **kwargs) -> httpx.Response:
    async with httpx.AsyncClient(timeout=20, follow_redirects=True) as client:
        try:
            resp = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise PeopleSearchError(f"{backend} request timed out: {e}") from e
        except httpx.RequestError as e:
            raise PeopleSearchError(f"{backend} network error: {e}") from e
    if resp.status_code in (402, 429):
        raise PeopleSearchError(f"{backend} rate limited (HTTP {resp.status_code}).")
    if resp.status_code in (401, 403):
        raise PeopleSearchError(f"{backend} API key unauthorized or quota exceeded.")
    if resp.status_code != 200:
        raise PeopleSearchError(f"{backend} returned HTTP {resp.status_code}")
    return resp


async def _search_ddg(query: str) -> list[SearchHit]:
    headers = {
        "User-Agent": random.choice(_USER_AGENTS),
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Referer": "https://html.duckduckgo.com/",
    }
    resp = await _request("POST", _DDG_SEARCH_URL, "duckduckgo", data={"q": query, "b": ""}, headers=headers)
    html = resp.text
    if "anomaly" in html.lower() or "challenge-form" in html:
        raise PeopleSearchError("DuckDuckGo bot challenge detected.")
    return parse_ddg_results(html)


def parse_ddg_results(html: str) -> list[SearchHit]:
    soup = BeautifulSoup(html, "lxml")
    hits: list[SearchHit] = []
    for anchor in soup.select("a.result__a"):
        url = _extract_ddg_url(anchor.get("href", ""))
        if not url or "linkedin.com/in/" not in url:
            continue
        name, headline = _parse_linkedin_title(anchor.get_text(separator=" ").strip())
        if name:
            hits.append(SearchHit(name, url, headline, "duckduckgo"))
    return hits


async def _search_brave(query: str, api_key: str) -> list[SearchHit]:
    headers = {"Accept": "application/json", "X-Subscription-Token": api_key}
    resp = await _request("GET", _BRAVE_SEARCH_URL, "brave", headers=headers, params={"q": query, "count": "10"})
    results = resp.json().get("web", {}).get("results", [])
    return _hits_from(results, "url", "title", "brave")


async def _search_tavily(query: str, api_key: str) -> list[SearchHit]:
    payload = {
        "api_key": api_key,
        "query": query,
        "search_depth": "basic",
        "include_domains": ["linkedin.com"],
        "max_results": 10,
    }
    resp = await _request("POST", _TAVILY_SEARCH_URL, "tavily", json=payload)
    return _hits_from(resp.json().get("results", []), "url", "title", "tavily")


async def _search_google_cse(query: str, *, api_key: str, cx: str) -> list[SearchHit]:
    params = {"key": api_key, "cx": cx, "q": query, "num": "10"}
    resp = await _request("GET", _GOOGLE_CSE_URL, "google_cse", params=params)
    return _hits_from(resp.json().get("items", []), "link", "title", "google_cse")


def _hits_from(results: list[dict], url_key: str, title_key: str, backend: str) -> list[SearchHit]:
    hits: list[SearchHit] = []
    for result in results:
        url = result.get(url_key, "")
        if "linkedin.com/in/" not in url:
            continue
        name, headline = _parse_linkedin_title(result.get(title_key, ""))
        if name:
            hits.append(SearchHit(name, url, headline, backend))
    return hits


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _extract_ddg_url(href: str) -> Optional[str]:
    """Extract the real URL from DuckDuckGo's redirect link."""
    targets = parse_qs(urlparse(href).query).get("uddg", [])
    if targets:
        return unquote(targets[0])
    if "linkedin.com/in/" in href:
        return href
    return None


def _parse_linkedin_title(text: str) -> tuple[str, Optional[str]]:
    """
    Split a LinkedIn result heading into (name, headline).

      "Jane Doe - Founding Engineer at Acme | LinkedIn" → ("Jane Doe", "Founding Engineer at Acme")

    Returns ("", None) if the heading doesn't look like a person.
    """
    text = re.sub(r"\s*[|–\-]\s*LinkedIn\s*$", "", text, flags=re.IGNORECASE).strip()
    match = re.match(r"^(.+?)\s*[-–|•]\s*(.+)$", text)
    if match:
        name = match.group(1).strip()
        headline = match.group(2).strip()
        if 2 <= len(name) <= 60 and not re.search(r"\d", name):
            return name, headline or None
    return "", None


def _split_headline(headline: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    """"Senior Engineer at Acme" → ("Senior Engineer", "Acme")."""
    if not headline:
        return None, None
    role, sep, company = headline.partition(" at ")
    if sep and company.strip():
        return role.strip() or None, company.split("|")[0].strip()
    return headline, None


def _normalize_linkedin_url(url: str) -> str:
    """Lowercase and strip trailing slash for deduplication."""
    return url.lower().split("?")[0].rstrip("/")

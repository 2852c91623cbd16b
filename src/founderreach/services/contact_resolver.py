"""
Contact resolver: finds a senior decision-maker at a hiring company.

Providers (tried in order):
  1. Hunter.io domain search: people at the company, ranked by title
     preference. Skipped when no HUNTER_API_KEY is configured.
  2. RocketReach people search: secondary, used at most ONCE per resolver
     instance (i.e. per process) regardless of outcome. Each call costs
     credits, so the cap is global rather than per company.

Provider errors never escape: they are logged and treated as "no result"
so the chain can move on to the next provider.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Optional

from founderreach.config import Settings, get_settings
from founderreach.models.contact import Contact
from founderreach.services.directory import HunterClient, RocketReachClient

logger = logging.getLogger(__name__)

# Highest preference first: CEO/founders, then product/tech chiefs, then other C-level.
TITLE_PREFERENCES: list[str] = [
    "ceo",
    "chief executive",
    "co-founder",
    "cofounder",
    "founder",
    "president",
    "cto",
    "chief technology",
    "cio",
    "chief information",
    "cpo",
    "chief product",
    "cso",
    "chief strategy",
    "chief sales",
    "cmo",
    "chief marketing",
    "chief operating",
    "coo",
    "cfo",
    "chief financial",
]

# Titles sent to RocketReach's current_title filter
_ROCKETREACH_TITLES: list[str] = [
    "CEO", "Chief Executive Officer", "Co-Founder", "Founder", "President",
    "CTO", "Chief Technology Officer", "CIO", "Chief Information Officer",
    "CPO", "Chief Product Officer", "CSO", "Chief Strategy Officer",
    "Chief Sales Officer", "CMO", "Chief Marketing Officer",
    "COO", "Chief Operating Officer", "CFO", "Chief Financial Officer",
]

# Word-bounded so "Director" does not match "cto" and "Associate" does not match "cio"
_TITLE_PATTERNS = [
    re.compile(rf"(?<![a-z]){re.escape(t)}(?![a-z])") for t in TITLE_PREFERENCES
]


def rank_by_title(people: Iterable[dict[str, Any]], title_key: str) -> Optional[dict[str, Any]]:
    """
    Return the person whose title matches the earliest entry of TITLE_PREFERENCES.

    Ties (several people matching the same preference) go to whoever the
    provider listed first. Returns None if nobody carries a preferred title.
    """
    people = list(people)
    titles = [(p.get(title_key) or "").lower() for p in people]
    for pattern in _TITLE_PATTERNS:
        for person, title in zip(people, titles):
            if pattern.search(title):
                return person
    return None


class HunterContactProvider:
    name = "hunter.io"

    def __init__(self, client: HunterClient):
        self.client = client

    @property
    def enabled(self) -> bool:
        return self.client.enabled

    async def find(self, company_name: str) -> Optional[Contact]:
        data = await self.client.domain_search(company=company_name, limit=10)
        if not data.get("domain"):
            return None
        person = rank_by_title(data.get("emails") or [], "position")
        if person is None:
            return None
        name = f"{person.get('first_name') or ''} {person.get('last_name') or ''}".strip()
        if not name:
            return None
        return Contact(
            name=name,
            title=person.get("position"),
            profile_url=person.get("linkedin") or None,
            email=person.get("value") or None,
            source=self.name,
        )


class RocketReachContactProvider:
    name = "rocketreach"

    def __init__(self, client: RocketReachClient):
        self.client = client

    @property
    def enabled(self) -> bool:
        return self.client.enabled

    async def find(self, company_name: str) -> Optional[Contact]:
        profiles = await self.client.search_people(company_name, _ROCKETREACH_TITLES, page_size=1)
        person = rank_by_title(profiles, "current_title") or (profiles[0] if profiles else None)
        if person is None or not person.get("name"):
            return None
        return Contact(
            name=person["name"],
            title=person.get("current_title"),
            profile_url=person.get("linkedin_url") or None,
            email=person.get("current_work_email") or person.get("personal_email") or None,
            source=self.name,
        )


class ContactResolver:
    """
    Resolve a company name to a senior contact.

    One instance should live for the whole process; the secondary provider's
    single-use budget is tracked on the instance.
    """

    def __init__(self, primary, secondary=None):
        self.primary = primary
        self.secondary = secondary
        self._secondary_used = False

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ContactResolver":
        settings = settings or get_settings()
        return cls(
            primary=HunterContactProvider(HunterClient(settings.hunter_api_key)),
            secondary=RocketReachContactProvider(RocketReachClient(settings.rocketreach_api_key)),
        )

    @property
    def secondary_exhausted(self) -> bool:
        return self._secondary_used

    async def resolve(self, company_name: str) -> Optional[Contact]:
        logger.info("Finding senior contact for %s", company_name)

        if self.primary is not None and self.primary.enabled:
            contact = await self._try(self.primary, company_name)
            if contact:
                logger.info(
                    "Found contact via %s: %s (%s)",
                    self.primary.name, contact.name, contact.title or "unknown title",
                )
                return contact

        if self.secondary is not None and self.secondary.enabled and not self._secondary_used:
            # Flag before awaiting so a concurrent caller can never slip through
            self._secondary_used = True
            logger.info("Trying %s (single use per process)", self.secondary.name)
            contact = await self._try(self.secondary, company_name)
            if contact:
                logger.info("Found contact via %s: %s", self.secondary.name, contact.name)
                return contact

        logger.info("Could not find senior contact for %s", company_name)
        return None

    async def _try(self, provider, company_name: str) -> Optional[Contact]:
        try:
            return await provider.find(company_name)
        except Exception as e:
            logger.warning("%s lookup failed for %s: %s", provider.name, company_name, e)
            return None

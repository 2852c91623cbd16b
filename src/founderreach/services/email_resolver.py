"""
Email resolver: turns a resolved contact into a deliverable address.

Order:
  1. Short-circuit: if the contact resolver already returned an email
     (Hunter and RocketReach often do), use it with its original source.
  2. Hunter.io: find the company's domain, then run the email finder with
     the person's normalized first/last name.

Any failure along the way yields None; the job processor treats that as
the email_not_found outcome, not as an error.
"""
from __future__ import annotations

import logging
import re
import unicodedata
from typing import Optional

from founderreach.config import Settings, get_settings
from founderreach.models.contact import Contact, EmailMatch
from founderreach.services.directory import HunterClient

logger = logging.getLogger(__name__)

# "Priya Patel, MBA" → strip ", MBA" before splitting.
_CREDENTIAL_PATTERN = re.compile(r",\s*[A-Z][\w\-\.]+(?:\s+[A-Z][\w\-\.]+)*$")


class EmailResolver:
    def __init__(self, hunter: HunterClient):
        self.hunter = hunter

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "EmailResolver":
        settings = settings or get_settings()
        return cls(HunterClient(settings.hunter_api_key))

    async def resolve(
        self,
        person_name: str,
        company_name: str,
        known_contact: Optional[Contact] = None,
        domain: Optional[str] = None,
    ) -> Optional[EmailMatch]:
        if known_contact is not None and known_contact.email:
            return EmailMatch(email=known_contact.email, source=known_contact.source or "contact-resolver")

        if not self.hunter.enabled:
            return None

        first, last = parse_name(person_name)
        if not first:
            logger.info("Cannot build an email lookup from name %r", person_name)
            return None

        try:
            if not domain:
                domain = await self.hunter.find_domain(company_name)
                if not domain:
                    return None
            data = await self.hunter.find_email(domain, first, last)
        except Exception as e:
            logger.warning("Hunter.io email lookup failed for %s at %s: %s", person_name, company_name, e)
            return None

        email = data.get("email")
        if not email:
            return None
        return EmailMatch(email=email, source="hunter.io", score=data.get("score"))


def parse_name(full_name: str) -> tuple[str, str]:
    """
    Split a display name into (first, last), normalized for lookups.

      "Priya Patel, MBA"   → ("priya", "patel")
      "Marcus P White"     → ("marcus", "white")    middle initial skipped
      "José Núñez"         → ("jose", "nunez")
      "Madonna"            → ("madonna", "")
    """
    if not full_name:
        return "", ""

    name = _CREDENTIAL_PATTERN.sub("", full_name).strip()
    words = name.split()
    if not words:
        return "", ""

    first = _normalize(words[0])
    last = ""
    for w in words[1:]:
        if len(w.rstrip(".")) > 1:
            last = _normalize(w)
    if not last and len(words) > 1:
        last = _normalize(words[-1])
    return first, last


def _normalize(s: str) -> str:
    """Lowercase, strip diacritics and keep ASCII letters only ("O'Brien" → "obrien")."""
    nfkd = unicodedata.normalize("NFKD", s.lower())
    return "".join(c for c in nfkd if c.isascii() and c.isalpha())

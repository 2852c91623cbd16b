"""
JSON file document store.

Each document is saved as:  <data_dir>/<collection>/<id>.json

Collections: postings, candidates, templates, send_records. Files are
human-readable and can be inspected/edited directly. Unique keys are
enforced on write (Posting.external_id, Candidate.profile_url,
EmailTemplate.name) with upsert semantics where the caller asks for them.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable, Iterator, Optional, TypeVar

from pydantic import BaseModel

from founderreach.config import get_settings
from founderreach.models.candidate import Candidate
from founderreach.models.posting import Posting
from founderreach.models.send_record import SendRecord, SendStatus
from founderreach.models.template import EmailTemplate, Sector

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

POSTINGS = "postings"
CANDIDATES = "candidates"
TEMPLATES = "templates"
SEND_RECORDS = "send_records"


class PostingNotFoundError(LookupError):
    """Raised when a posting id does not exist in the store."""


class ConcurrentUpdateError(Exception):
    """Raised when a posting was already finished by another worker."""


class DuplicateKeyError(ValueError):
    """Raised when a write would break a unique key."""


class JsonStore:
    def __init__(self, data_dir: Optional[str | Path] = None):
        self.data_dir = Path(data_dir or get_settings().data_dir)

    # ── low-level document I/O ────────────────────────────────────────────────

    def _path(self, collection: str, doc_id: str) -> Path:
        return self.data_dir / collection / f"{doc_id}.json"

    def _write(self, collection: str, doc: BaseModel) -> Path:
        path = self._path(collection, doc.id)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(doc.model_dump(mode="json"), f, indent=2, ensure_ascii=False)
        return path

    def _read(self, collection: str, doc_id: str, model: type[M]) -> Optional[M]:
        path = self._path(collection, doc_id)
        if not path.exists():
            return None
        with open(path, encoding="utf-8") as f:
            return model(**json.load(f))

    def _iter(self, collection: str, model: type[M]) -> Iterator[M]:
        folder = self.data_dir / collection
        if not folder.exists():
            return
        for path in sorted(folder.glob("*.json")):
            with open(path, encoding="utf-8") as f:
                yield model(**json.load(f))

    # ── postings ─────────────────────────────────────────────────────────────

    def get_posting(self, posting_id: str) -> Optional[Posting]:
        return self._read(POSTINGS, posting_id, Posting)

    def require_posting(self, posting_id: str) -> Posting:
        posting = self.get_posting(posting_id)
        if posting is None:
            raise PostingNotFoundError(f"Posting not found: {posting_id}")
        return posting

    def list_postings(self, where: Optional[Callable[[Posting], bool]] = None) -> list[Posting]:
        """Return postings matching `where`, oldest scraped first."""
        postings = [p for p in self._iter(POSTINGS, Posting) if where is None or where(p)]
        return sorted(postings, key=lambda p: p.scraped_at)

    def count_postings(self, where: Optional[Callable[[Posting], bool]] = None) -> int:
        return sum(1 for p in self._iter(POSTINGS, Posting) if where is None or where(p))

    def find_duplicate(self, posting: Posting) -> Optional[Posting]:
        """
        Return a stored posting that is the same listing as `posting`.

        Matches on external id first, then on case-insensitive title + company name.
        """
        title = posting.title.strip().casefold()
        company = posting.company.name.strip().casefold()
        by_title: Optional[Posting] = None
        for existing in self._iter(POSTINGS, Posting):
            if existing.external_id == posting.external_id:
                return existing
            if (
                by_title is None
                and title
                and company
                and existing.title.strip().casefold() == title
                and existing.company.name.strip().casefold() == company
            ):
                by_title = existing
        return by_title

    def insert_posting(self, posting: Posting) -> Posting:
        if self.find_duplicate(posting) is not None:
            raise DuplicateKeyError(f"Posting already stored: {posting.external_id}")
        self._write(POSTINGS, posting)
        return posting

    def save_posting(self, posting: Posting) -> Posting:
        """Unconditional write (used for engagement and follow-up sends)."""
        self._write(POSTINGS, posting)
        return posting

    def save_outcome(self, posting: Posting) -> Posting:
        """
        Persist a terminal processing outcome.

        Check-and-set on `processed`: refuses to overwrite a stored posting
        that another worker already finished.
        """
        stored = self.get_posting(posting.id)
        if stored is not None and stored.processed:
            raise ConcurrentUpdateError(
                f"Posting {posting.id} was already processed "
                f"({stored.processing_status.value})"
            )
        self._write(POSTINGS, posting)
        return posting

    # ── candidates ───────────────────────────────────────────────────────────

    def upsert_candidate(self, candidate: Candidate) -> Candidate:
        """Insert or replace by profile_url, keeping the stored id."""
        for existing in self._iter(CANDIDATES, Candidate):
            if existing.profile_url == candidate.profile_url:
                candidate = candidate.model_copy(
                    update={"id": existing.id, "created_at": existing.created_at}
                )
                break
        self._write(CANDIDATES, candidate)
        return candidate

    def list_candidates(self) -> list[Candidate]:
        return list(self._iter(CANDIDATES, Candidate))

    def top_candidates(self, min_rating: int = 4, limit: int = 3) -> list[Candidate]:
        """Curated shortlist: rating >= min_rating, most experienced first, then best rated."""
        eligible = [c for c in self._iter(CANDIDATES, Candidate) if c.rating >= min_rating]
        eligible.sort(key=lambda c: (-(c.years_of_experience or 0), -c.rating))
        return eligible[:limit]

    # ── templates ────────────────────────────────────────────────────────────

    def save_template(self, template: EmailTemplate) -> EmailTemplate:
        for existing in self._iter(TEMPLATES, EmailTemplate):
            if existing.name == template.name and existing.id != template.id:
                raise DuplicateKeyError(f"Template name already in use: {template.name}")
        self._write(TEMPLATES, template)
        return template

    def get_template(self, template_id: str) -> Optional[EmailTemplate]:
        return self._read(TEMPLATES, template_id, EmailTemplate)

    def find_active_template(self, sector: Sector | str) -> Optional[EmailTemplate]:
        sector = Sector(sector)
        for template in self._iter(TEMPLATES, EmailTemplate):
            if template.active and template.sector == sector:
                return template
        return None

    # ── send records ─────────────────────────────────────────────────────────

    def save_send_record(self, record: SendRecord) -> SendRecord:
        self._write(SEND_RECORDS, record)
        return record

    def get_send_record(self, record_id: str) -> Optional[SendRecord]:
        return self._read(SEND_RECORDS, record_id, SendRecord)

    def find_send_record_by_tracking_id(self, tracking_id: str) -> Optional[SendRecord]:
        for record in self._iter(SEND_RECORDS, SendRecord):
            if record.tracking_id == tracking_id:
                return record
        return None

    def list_send_records(
        self,
        posting_id: Optional[str] = None,
        status: Optional[SendStatus] = None,
    ) -> list[SendRecord]:
        records = [
            r for r in self._iter(SEND_RECORDS, SendRecord)
            if (posting_id is None or r.posting_id == posting_id)
            and (status is None or r.status == status)
        ]
        return sorted(records, key=lambda r: r.sent_at)

"""
Build the curated candidate pool that pitch emails showcase.

Discovers public LinkedIn profiles through web search (DDG → Brave → Tavily →
Google CSE) and upserts them as candidates, or imports hand-curated
candidates from a JSON file.

Usage:
    python scripts/find_candidates.py
    python scripts/find_candidates.py --title "Principal Engineer" --location Bangalore --limit 10
    python scripts/find_candidates.py --import seed.json
    python scripts/find_candidates.py --list

Import file format: a JSON list of objects with Candidate fields, e.g.
    [{"name": "Jane Doe", "profile_url": "https://linkedin.com/in/janedoe",
      "title": "Staff Engineer", "current_company": "Acme",
      "years_of_experience": 9, "rating": 5}]
"""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pydantic import ValidationError

from founderreach.config import get_settings
from founderreach.logger import setup_logging
from founderreach.models.candidate import Candidate
from founderreach.services.people_search import CANDIDATE_TITLES, search_people
from founderreach.services.storage import JsonStore

SEP = "─" * 64


def _section(title: str) -> None:
    print(f"\n{SEP}")
    print(f"  {title}")
    print(SEP)


def _ok(label: str, value: str) -> None:
    print(f"  ✓ {label:<20} {value}")


def _warn(label: str, value: str) -> None:
    print(f"  ⚠ {label:<20} {value}")


def _fail(label: str, value: str) -> None:
    print(f"  ✗ {label:<20} {value}")


def _import(store: JsonStore, path: Path) -> int:
    _section(f"Importing {path}")
    if not path.exists():
        _fail("File", f"Not found: {path}")
        return 1
    rows = json.loads(path.read_text(encoding="utf-8"))
    imported = 0
    for row in rows:
        try:
            candidate = Candidate(**row)
        except ValidationError as e:
            _warn("Skipped", f"{row.get('name', '?')}: {e.errors()[0]['msg']}")
            continue
        store.upsert_candidate(candidate)
        imported += 1
    _ok("Imported", f"{imported} of {len(rows)}")
    return 0


def _list(store: JsonStore, min_rating: int) -> None:
    candidates = sorted(store.list_candidates(), key=lambda c: (-c.rating, c.name))
    _section(f"{len(candidates)} candidate(s)")
    for c in candidates:
        mark = "★" if c.rating >= min_rating else "·"
        print(f"  {mark} {c.rating}  {c.name[:26]:<26} {(c.title or '-')[:28]:<28} {c.profile_url}")


async def _discover(store: JsonStore, titles: list[str], location: str, limit: int) -> int:
    total = 0
    for title in titles:
        _section(f"Searching: {title} in {location}")
        found = await search_people(title, location, limit)
        for candidate in found:
            store.upsert_candidate(candidate)
        (_ok if found else _warn)("Found", str(len(found)))
        total += len(found)
    _section("Summary")
    _ok("Candidates saved", str(total))
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Discover or import curated candidates")
    parser.add_argument("--title", action="append", help="Title to search (repeatable)")
    parser.add_argument("--location", help="Location (default: SEARCH_LOCATION)")
    parser.add_argument("--limit", type=int, default=10, help="Max profiles per title")
    parser.add_argument("--import", dest="import_path", type=Path, help="Import candidates from JSON")
    parser.add_argument("--list", action="store_true", help="List stored candidates")
    args = parser.parse_args()

    settings = get_settings()
    setup_logging()
    store = JsonStore(settings.data_dir)

    if args.list:
        _list(store, settings.min_candidate_rating)
        return
    if args.import_path:
        sys.exit(_import(store, args.import_path))

    titles = args.title or CANDIDATE_TITLES
    sys.exit(asyncio.run(_discover(store, titles, args.location or settings.search_location, args.limit)))


if __name__ == "__main__":
    main()

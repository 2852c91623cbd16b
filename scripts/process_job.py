"""
Process one stored posting by id, or show a posting's current state.

Usage:
    python scripts/process_job.py <posting-id>
    python scripts/process_job.py <posting-id> --send
    python scripts/process_job.py --list [--status success]
"""
from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

# Allow running from repo root without installing the package
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from founderreach.config import get_settings
from founderreach.logger import setup_logging
from founderreach.models.posting import ProcessingStatus
from founderreach.services.automation import build_automation_service
from founderreach.services.job_processor import AlreadyProcessedError
from founderreach.services.storage import ConcurrentUpdateError, PostingNotFoundError

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


def _list(service, status: str | None) -> None:
    wanted = ProcessingStatus(status) if status else None
    postings = service.store.list_postings(
        lambda p: wanted is None or p.processing_status == wanted
    )
    _section(f"{len(postings)} posting(s)")
    for p in postings:
        mark = "✓" if p.processing_status == ProcessingStatus.SUCCESS else "·"
        email = p.ceo_contact.email or "-"
        print(f"  {mark} {p.id}  {p.processing_status.value:<16} {p.company.name[:24]:<24} {email}")


async def _process(service, posting_id: str) -> int:
    _section(f"Processing {posting_id}")
    try:
        posting = await service.process_job_manually(posting_id)
    except PostingNotFoundError as e:
        _fail("Posting", str(e))
        return 1
    except (AlreadyProcessedError, ConcurrentUpdateError) as e:
        _warn("Skipped", str(e))
        return 0

    _ok("Title", posting.title)
    _ok("Company", posting.company.name)
    status_line = _ok if posting.processing_status == ProcessingStatus.SUCCESS else _warn
    status_line("Status", posting.processing_status.value)
    if posting.ceo_contact.name:
        _ok("CEO", posting.ceo_contact.name)
    if posting.ceo_contact.email:
        _ok("Email", f"{posting.ceo_contact.email} ({posting.ceo_contact.email_source})")
    _ok("Email sent", "yes" if posting.email_sent else "no")
    _ok("Notes", posting.notes)
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Process a single stored posting")
    parser.add_argument("posting_id", nargs="?", help="Posting id")
    parser.add_argument("--send", action="store_true", help="Send the email (default: SEND_EMAILS)")
    parser.add_argument("--list", action="store_true", help="List stored postings")
    parser.add_argument("--status", choices=[s.value for s in ProcessingStatus],
                        help="Filter --list by status")
    args = parser.parse_args()

    settings = get_settings()
    if args.send:
        settings = settings.model_copy(update={"send_emails": True})
    setup_logging()
    service = build_automation_service(settings)

    if args.list:
        _list(service, args.status)
        return
    if not args.posting_id:
        parser.error("posting_id is required unless --list is given")

    sys.exit(asyncio.run(_process(service, args.posting_id)))


if __name__ == "__main__":
    main()

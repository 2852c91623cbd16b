"""
Send pitch emails to CEOs that a dry run already verified.

Postings processed with SEND_EMAILS=false end in status "success" with a
CEO email but no email sent. This script sends to them (oldest first),
or retries previously failed sends.

Usage:
    python scripts/send_emails.py                       # review + confirm, up to 10
    python scripts/send_emails.py --limit 5 --location Bangalore
    python scripts/send_emails.py --posting <posting-id>
    python scripts/send_emails.py --template <template-id>
    python scripts/send_emails.py --dry-run             # list only
    python scripts/send_emails.py --resend-failed
    python scripts/send_emails.py --yes                 # skip confirmation

First run opens a browser for Gmail OAuth consent.
Subsequent runs use the cached token at ~/.founderreach/gmail_token.json.
"""
from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from founderreach.config import get_settings
from founderreach.logger import setup_logging
from founderreach.models.posting import ProcessingStatus
from founderreach.services.automation import build_automation_service
from founderreach.services.pipeline import PostingNotEligibleError, SendOutcome
from founderreach.services.storage import PostingNotFoundError

SEP = "─" * 64


def _section(title: str) -> None:
    print(f"\n{SEP}")
    print(f"  {title}")
    print(SEP)


def _ok(label: str, value: str) -> None:
    print(f"  ✓ {label:<22} {value}")


def _warn(label: str, value: str) -> None:
    print(f"  ⚠ {label:<22} {value}")


def _fail(label: str, value: str) -> None:
    print(f"  ✗ {label:<22} {value}")


def _print_outcomes(outcomes: list[SendOutcome]) -> None:
    sent = 0
    for o in outcomes:
        if o.sent:
            sent += 1
            _ok(o.company[:22], f"{o.email} (message {o.message_id})")
        else:
            _fail(o.company[:22], f"{o.email}: {o.error}")
    _section("Summary")
    _ok("Sent", str(sent))
    (_fail if sent < len(outcomes) else _ok)("Failed", str(len(outcomes) - sent))


def _confirm() -> bool:
    try:
        answer = input("\n  Send these emails? [y/N] ").strip().lower()
    except (EOFError, KeyboardInterrupt):
        print("\n  Aborted.")
        return False
    return answer == "y"


async def main(args: argparse.Namespace) -> int:
    settings = get_settings()
    service = build_automation_service(settings)
    pipeline = service.pipeline

    print(f"\n{'═' * 64}")
    print("  FounderReach — Email Sender")
    print(f"{'═' * 64}")
    _ok("From", settings.from_email or "(FROM_EMAIL not set)")

    if args.resend_failed:
        _section("Resending failed sends")
        results = await pipeline.dispatcher.resend_failed(limit=args.limit)
        if not results:
            _ok("Nothing to resend", "no failed sends under the retry cap")
        for r in results:
            (_ok if r.success else _fail)(r.record_id[:22], "sent" if r.success else r.error or "failed")
        return 0

    if args.posting:
        _section(f"Sending to posting {args.posting}")
        try:
            outcome = await pipeline.send_verified(args.posting, args.template)
        except (PostingNotFoundError, PostingNotEligibleError) as e:
            _fail("Not sent", str(e))
            return 1
        _print_outcomes([outcome])
        return 0 if outcome.sent else 1

    needle = args.location.casefold() if args.location else None
    verified = service.store.list_postings(
        lambda p: p.processing_status == ProcessingStatus.SUCCESS
        and bool(p.ceo_contact.email)
        and not p.email_sent
        and (needle is None or needle in p.location.casefold())
    )[: args.limit]

    _section(f"Verified postings ready to send ({len(verified)})")
    if not verified:
        _warn("Nothing to send", "run scripts/run.py in dry-run mode first")
        return 0
    for i, p in enumerate(verified, 1):
        print(f"  [{i}] {p.company.name} — {p.title}")
        print(f"       CEO:   {p.ceo_contact.name} <{p.ceo_contact.email}>")

    if args.dry_run:
        _ok("Dry run", "no emails sent")
        return 0
    if not args.yes and not _confirm():
        print("  Cancelled — no emails sent.")
        return 0

    _section("Sending")
    outcomes = await pipeline.send_verified_batch(
        limit=args.limit, location=args.location, template_id=args.template,
    )
    _print_outcomes(outcomes)
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Send pitch emails to verified CEOs")
    parser.add_argument("--limit", type=int, default=10, help="Max emails to send (default: 10, max 50)")
    parser.add_argument("--location", help="Only postings whose location contains this text")
    parser.add_argument("--posting", help="Send to a single posting id")
    parser.add_argument("--template", help="Template id to use instead of the sector match")
    parser.add_argument("--dry-run", action="store_true", help="List eligible postings only")
    parser.add_argument("--resend-failed", action="store_true", help="Retry failed sends")
    parser.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")
    args = parser.parse_args()

    setup_logging()
    sys.exit(asyncio.run(main(args)))

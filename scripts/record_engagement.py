"""
Record engagement on a sent pitch (open, click or reply), keyed by the
X-Tracking-ID header the pitch went out with.

Usage:
    python scripts/record_engagement.py <tracking-id> opened
    python scripts/record_engagement.py <tracking-id> replied --reply "Happy to chat next week"
    python scripts/record_engagement.py --list
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Allow running from repo root without installing the package
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from founderreach.config import get_settings
from founderreach.logger import setup_logging
from founderreach.models.send_record import SendStatus
from founderreach.services.automation import build_automation_service
from founderreach.services.engagement import EVENTS

SEP = "─" * 64


def _section(title: str) -> None:
    print(f"\n{SEP}")
    print(f"  {title}")
    print(SEP)


def _ok(label: str, value: str) -> None:
    print(f"  ✓ {label:<20} {value}")


def _fail(label: str, value: str) -> None:
    print(f"  ✗ {label:<20} {value}")


def _list(service) -> None:
    records = service.store.list_send_records(status=SendStatus.SENT)
    _section(f"{len(records)} sent pitch(es)")
    for r in records:
        flags = "".join(
            ev[0].upper() if getattr(r.engagement, ev) else "·" for ev in EVENTS
        )
        print(f"  {flags}  {r.tracking_id}  {r.company_name[:24]:<24} {r.recipient_email}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Record an open / click / reply on a sent pitch")
    parser.add_argument("tracking_id", nargs="?", help="Tracking id of the sent pitch")
    parser.add_argument("event", nargs="?", choices=EVENTS, help="Engagement event")
    parser.add_argument("--reply", metavar="TEXT", help="Reply text (with the 'replied' event)")
    parser.add_argument("--list", action="store_true", help="List sent pitches and their engagement")
    args = parser.parse_args()

    setup_logging()
    service = build_automation_service(get_settings())

    if args.list:
        _list(service)
        return
    if not args.tracking_id or not args.event:
        parser.error("tracking_id and event are required unless --list is given")

    record = service.record_engagement(args.tracking_id, args.event, reply_content=args.reply)
    if record is None:
        _fail("Tracking id", f"{args.tracking_id} not found")
        sys.exit(1)

    _section(f"{args.event.capitalize()}: {record.company_name}")
    _ok("Recipient", record.recipient_email)
    _ok("Opened", "yes" if record.engagement.opened else "no")
    _ok("Clicked", "yes" if record.engagement.clicked else "no")
    _ok("Replied", "yes" if record.engagement.replied else "no")
    if record.engagement.reply_content:
        _ok("Reply", record.engagement.reply_content)
    stats = service.get_statistics()
    _ok("Response rate", f"{stats['responses']}/{stats['emails_sent']} ({stats['response_rate']})")


if __name__ == "__main__":
    main()

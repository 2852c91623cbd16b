"""
Full outreach pipeline: scrape → save new postings → find CEO → find email → send.

Runs once by default. With --schedule the automation service keeps running
and repeats the pipeline on a cron cadence until interrupted.

Usage:
    python scripts/run.py                          # one run, settings from .env
    python scripts/run.py --title "Founding Engineer" --location Bangalore
    python scripts/run.py --send                   # actually send (overrides SEND_EMAILS)
    python scripts/run.py --pending 20             # only process stored, unprocessed postings
    python scripts/run.py --schedule "*/30 * * * *"
    python scripts/run.py --stats
"""
from __future__ import annotations

import argparse
import asyncio
import sys
import time
from pathlib import Path

# Allow running from repo root without installing the package
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from founderreach.config import get_settings
from founderreach.logger import setup_logging
from founderreach.services.automation import build_automation_service
from founderreach.services.pipeline import BatchSummary

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


def _print_summary(summary: BatchSummary, elapsed: float) -> None:
    _section("Summary")
    _ok("Postings processed", str(summary.total))
    _ok("Success", str(summary.success))
    (_warn if summary.ceo_not_found else _ok)("CEO not found", str(summary.ceo_not_found))
    (_warn if summary.email_not_found else _ok)("Email not found", str(summary.email_not_found))
    (_fail if summary.send_failed else _ok)("Send failed", str(summary.send_failed))
    (_fail if summary.errors else _ok)("Errors", str(summary.errors))
    _ok("Elapsed", f"{elapsed:.1f}s")


def _print_stats(stats: dict) -> None:
    _section("Statistics")
    for key, value in stats.items():
        _ok(key.replace("_", " ").capitalize(), str(value))


async def _run_once(service, pending: int | None) -> None:
    t0 = time.perf_counter()
    if pending is not None:
        _section(f"Processing up to {pending} stored postings")
        summary = await service.pipeline.process_unprocessed(limit=pending)
    else:
        _section("Scrape + process")
        summary = await service.pipeline.run()
    _print_summary(summary, time.perf_counter() - t0)


async def _run_scheduled(service, schedule: str) -> None:
    service.start_automation(schedule)
    _ok("Automation", f"running on '{schedule}' (Ctrl+C to stop)")
    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        service.stop_automation()


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the founder outreach pipeline")
    parser.add_argument("--title", help="Job title to search (default: SEARCH_TITLE)")
    parser.add_argument("--location", help="Location to search (default: SEARCH_LOCATION)")
    parser.add_argument("--send", action="store_true", help="Send emails (default: SEND_EMAILS)")
    parser.add_argument("--pending", type=int, metavar="N",
                        help="Process up to N stored unprocessed postings instead of scraping")
    parser.add_argument("--schedule", nargs="?", const="", metavar="CRON",
                        help="Keep running on a cron schedule (default: CRON_SCHEDULE)")
    parser.add_argument("--stats", action="store_true", help="Print statistics and exit")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    args = parser.parse_args()

    updates = {}
    if args.title:
        updates["search_title"] = args.title
    if args.location:
        updates["search_location"] = args.location
    if args.send:
        updates["send_emails"] = True
    settings = get_settings().model_copy(update=updates)

    setup_logging("DEBUG" if args.debug else None)
    service = build_automation_service(settings)

    print(f"\n{'═' * 64}")
    print("  FounderReach — Outreach Pipeline")
    print(f"{'═' * 64}")
    _ok("Search", f"{settings.search_title} in {settings.search_location}")
    if settings.send_emails:
        _ok("Mode", "SEND (emails will be delivered)")
    else:
        _warn("Mode", "DRY-RUN (discovery only, SEND_EMAILS=false)")

    if args.stats:
        _print_stats(service.get_statistics())
        return

    try:
        if args.schedule is not None:
            asyncio.run(_run_scheduled(service, args.schedule or settings.cron_schedule))
        else:
            asyncio.run(_run_once(service, args.pending))
    except KeyboardInterrupt:
        _warn("Interrupted", "stopping")
        return

    _print_stats(service.get_statistics())


if __name__ == "__main__":
    main()

"""Management CLI for quote drafts.

Usage:
    python -m app.cli purge-drafts                 # Apply draft retention now
    python -m app.cli recovery-links [--mark-sent] # Abandoned drafts + resume URLs
    python -m app.cli draft-stats [--days N]       # Funnel numbers
"""

import argparse
import asyncio
import logging
import sys

from app.config import settings
from app.database import async_session
from app.services.draft_maintenance import (
    draft_stats,
    mark_recovery_sent,
    recovery_candidates,
    resume_url,
)
from app.services.scheduler import run_daily_maintenance


async def purge_drafts() -> None:
    summary = await run_daily_maintenance()
    print(f"  Deleted {summary['deleted']} stale draft(s)")
    print(f"  Scrubbed {summary['scrubbed']} completed draft(s)")


async def recovery_links(mark_sent: bool) -> None:
    async with async_session() as db:
        drafts = await recovery_candidates(db)
        for d in drafts:
            print(f"  {d.email}\tstep {d.current_step}\t{resume_url(d.id)}")
        print(f"\n{len(drafts)} abandoned draft(s)")

        if mark_sent and drafts:
            marked = await mark_recovery_sent(db, [d.id for d in drafts])
            await db.commit()
            print(f"Marked {marked} as sent")


async def stats(days: int) -> None:
    async with async_session() as db:
        result = await draft_stats(db, days=days)
    print(f"Drafts started in the last {days} days: {result.total}")
    print(f"  completed:        {result.completed} ({result.completion_rate:.0%})")
    print(f"  with email:       {result.with_email}")
    for step, count in sorted(result.by_step.items()):
        print(f"  open at step {step}:  {count}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m app.cli")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("purge-drafts", help="delete stale drafts, scrub old completed ones")

    links = sub.add_parser("recovery-links", help="list abandoned drafts with resume URLs")
    links.add_argument("--mark-sent", action="store_true", help="stamp listed drafts as contacted")

    st = sub.add_parser("draft-stats", help="draft funnel statistics")
    st.add_argument("--days", type=int, default=30)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=settings.log_level.upper())

    if args.command == "purge-drafts":
        asyncio.run(purge_drafts())
    elif args.command == "recovery-links":
        asyncio.run(recovery_links(args.mark_sent))
    elif args.command == "draft-stats":
        asyncio.run(stats(args.days))
    return 0


if __name__ == "__main__":
    sys.exit(main())

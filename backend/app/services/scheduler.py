"""Background task scheduler: daily draft retention maintenance.

Uses FastAPI's lifespan context to start/stop an asyncio background loop
that fires once per day at `settings.maintenance_hour` (UTC). The same
work is available on demand as `python -m app.cli purge-drafts`.

Configuration:
    MAINTENANCE_HOUR=3        (run at 03:00 UTC daily, via .env)
    SCHEDULER_ENABLED=false   (leave it to an external cron instead)

With several app workers each one runs the job; the retention queries are
idempotent so that is harmless.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

from fastapi import FastAPI

from app.config import settings
from app.database import async_session
from app.services.draft_maintenance import purge_stale_drafts
from app.utils.redis_client import close_redis

logger = logging.getLogger("quotewizard.scheduler")


async def run_daily_maintenance() -> dict:
    """Apply draft retention in its own transaction."""
    logger.info("Starting draft maintenance run")
    async with async_session() as db:
        try:
            summary = await purge_stale_drafts(db)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
    logger.info("Draft maintenance complete: %s", summary)
    return summary


def seconds_until(hour: int, now: datetime | None = None) -> float:
    """Seconds from `now` until the next `hour:00` UTC."""
    now = now or datetime.now(timezone.utc)
    next_run = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if next_run <= now:
        next_run += timedelta(days=1)
    return (next_run - now).total_seconds()


async def _scheduler_loop() -> None:
    while True:
        wait_seconds = seconds_until(settings.maintenance_hour)
        logger.info("Next draft maintenance run in %.0f seconds", wait_seconds)

        await asyncio.sleep(wait_seconds)

        try:
            await run_daily_maintenance()
        except Exception:
            logger.exception("Unhandled error in draft maintenance")

        # Small buffer to avoid running twice in the same minute
        await asyncio.sleep(60)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan: start the scheduler on startup, cancel on shutdown."""
    task = None
    if settings.scheduler_enabled:
        task = asyncio.create_task(_scheduler_loop())
        logger.info("Draft maintenance scheduler started")
    try:
        yield
    finally:
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            logger.info("Draft maintenance scheduler stopped")
        await close_redis()

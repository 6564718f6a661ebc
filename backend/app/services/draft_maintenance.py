"""Draft follow-up and housekeeping.

  - derive_status()          completed / abandoned / in_progress
  - recovery_candidates()    abandoned drafts that can be sent a resume link
  - mark_recovery_sent()     stamp drafts whose resume link went out
  - purge_stale_drafts()     retention: delete idle drafts, scrub old completed ones
  - draft_stats()            funnel numbers over a trailing period

Completed drafts are scrubbed, never deleted, so a resume link for them
keeps answering "already submitted".
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.quote_draft import CustomQuoteDraft, DraftStatus
from app.schemas.quote_draft import DraftSnapshot
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

_ACTIVE = DraftStatus.ACTIVE.value
_COMPLETED = DraftStatus.COMPLETED.value

# Personal / free-text fields cleared from completed drafts past retention.
_SCRUBBED_FIELDS = ("name", "email", "phone", "budget", "description")


def derive_status(draft: CustomQuoteDraft | DraftSnapshot, now: datetime | None = None) -> str:
    """Follow-up status of a draft.

    A draft counts as abandoned once it has an email to follow up on and
    has been idle longer than `abandoned_after_hours`.
    """
    if draft.status == _COMPLETED:
        return "completed"
    now = now or utcnow()
    idle = now - draft.updated_at
    if draft.email and idle > timedelta(hours=settings.abandoned_after_hours):
        return "abandoned"
    return "in_progress"


def resume_url(draft_id: str) -> str:
    return f"{settings.public_base_url.rstrip('/')}/custom?resume={draft_id}"


async def recovery_candidates(
    db: AsyncSession, now: datetime | None = None, limit: int = 200
) -> list[DraftSnapshot]:
    """Abandoned drafts inside the recovery window that haven't been contacted."""
    now = now or utcnow()
    idle_since = now - timedelta(hours=settings.abandoned_after_hours)
    window_start = now - timedelta(days=settings.recovery_window_days)

    result = await db.execute(
        select(CustomQuoteDraft)
        .where(
            CustomQuoteDraft.status == _ACTIVE,
            CustomQuoteDraft.recovery_email_sent_at.is_(None),
            CustomQuoteDraft.email.is_not(None),
            CustomQuoteDraft.email != "",
            CustomQuoteDraft.updated_at < idle_since,
            CustomQuoteDraft.updated_at > window_start,
        )
        .order_by(CustomQuoteDraft.updated_at.desc())
        .limit(limit)
    )
    return [DraftSnapshot.model_validate(d) for d in result.scalars().all()]


async def mark_recovery_sent(
    db: AsyncSession, draft_ids: list[str], now: datetime | None = None
) -> int:
    if not draft_ids:
        return 0
    # updated_at is left alone so the draft's idle time is not reset
    result = await db.execute(
        update(CustomQuoteDraft)
        .where(CustomQuoteDraft.id.in_(draft_ids))
        .values(recovery_email_sent_at=now or utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


async def purge_stale_drafts(db: AsyncSession, now: datetime | None = None) -> dict:
    """Apply draft retention. Returns {"deleted": n, "scrubbed": m}."""
    now = now or utcnow()
    stale_before = now - timedelta(days=settings.stale_draft_retention_days)
    completed_before = now - timedelta(days=settings.completed_draft_retention_days)

    deleted = await db.execute(
        delete(CustomQuoteDraft).where(
            CustomQuoteDraft.status == _ACTIVE,
            CustomQuoteDraft.updated_at < stale_before,
        )
    )

    scrubbed = await db.execute(
        update(CustomQuoteDraft)
        .where(
            CustomQuoteDraft.status == _COMPLETED,
            CustomQuoteDraft.completed_at < completed_before,
            CustomQuoteDraft.email.is_not(None),
        )
        .values({name: None for name in _SCRUBBED_FIELDS})
        .execution_options(synchronize_session=False)
    )

    summary = {"deleted": deleted.rowcount, "scrubbed": scrubbed.rowcount}
    logger.info("Draft retention: %(deleted)d deleted, %(scrubbed)d scrubbed", summary)
    return summary


@dataclass
class DraftStats:
    total: int = 0
    completed: int = 0
    with_email: int = 0
    # unfinished drafts per furthest step reached
    by_step: dict[int, int] = field(default_factory=dict)

    @property
    def completion_rate(self) -> float:
        return self.completed / self.total if self.total else 0.0


async def draft_stats(
    db: AsyncSession, days: int = 30, now: datetime | None = None
) -> DraftStats:
    since = (now or utcnow()) - timedelta(days=days)
    recent = CustomQuoteDraft.created_at >= since

    totals = await db.execute(
        select(
            func.count(CustomQuoteDraft.id),
            func.count(CustomQuoteDraft.completed_at),
            func.count(CustomQuoteDraft.email),
        ).where(recent)
    )
    total, completed, with_email = totals.one()

    steps = await db.execute(
        select(CustomQuoteDraft.current_step, func.count(CustomQuoteDraft.id))
        .where(recent, CustomQuoteDraft.status == _ACTIVE)
        .group_by(CustomQuoteDraft.current_step)
        .order_by(CustomQuoteDraft.current_step)
    )

    return DraftStats(
        total=int(total or 0),
        completed=int(completed or 0),
        with_email=int(with_email or 0),
        by_step={int(step): int(count) for step, count in steps.all()},
    )

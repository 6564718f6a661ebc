"""Draft store: keyed persistence for in-progress quote drafts.

Drafts are addressed two ways:
  - by session key (the normal path; one active draft per session)
  - by id (the resume path, used by recovery links)

Lifecycle rules enforced here:
  - upsert never creates a second active draft for a session; a concurrent
    insert that loses the race on the partial unique index is retried as
    an update
  - an upsert whose step is lower than the stored step is a stale,
    out-of-order write and is ignored
  - `active -> completed` happens once; completed drafts are invisible to
    session lookups and answer `DraftGone` by id
  - session delete (reset) only touches the active draft and is idempotent

Every function takes the session key explicitly; nothing here reads
request state.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import delete as sa_delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.middleware.exceptions import ResourceNotFoundError
from app.models.quote_draft import (
    DETACHED_SESSION_PREFIX,
    CustomQuoteDraft,
    DraftStatus,
)
from app.schemas.quote_draft import (
    DRAFT_FIELD_NAMES,
    TOTAL_STEPS,
    DraftFields,
    DraftFound,
    DraftGone,
    DraftLookup,
    DraftNotFound,
    DraftSnapshot,
)
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

_ACTIVE = DraftStatus.ACTIVE.value
_COMPLETED = DraftStatus.COMPLETED.value


@dataclass(frozen=True)
class UpsertResult:
    draft_id: str
    current_step: int
    applied: bool


def _clamp_step(step: int) -> int:
    return max(1, min(TOTAL_STEPS, step))


def _snapshot(draft: CustomQuoteDraft) -> DraftSnapshot:
    return DraftSnapshot.model_validate(draft)


async def _active_for_session(
    db: AsyncSession, session_key: str, lock: bool = False
) -> CustomQuoteDraft | None:
    stmt = select(CustomQuoteDraft).where(
        CustomQuoteDraft.session_key == session_key,
        CustomQuoteDraft.status == _ACTIVE,
    )
    if lock:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


# ── Upsert ───────────────────────────────────────────────────

async def upsert(
    db: AsyncSession,
    session_key: str,
    fields: DraftFields,
    step: int,
    draft_id: str | None = None,
) -> UpsertResult:
    """Create or update the session's active draft.

    `step` is the furthest step the wizard has validated into. When
    `draft_id` names an active draft owned by another session (a resumed
    recovery link), that draft is adopted by `session_key` first.
    """
    data = fields.model_dump(include=set(DRAFT_FIELD_NAMES))
    step = _clamp_step(step)

    try:
        return await _upsert_once(db, session_key, data, step, draft_id)
    except IntegrityError:
        # Another request inserted this session's active draft between our
        # lookup and our insert. Start over; the lookup now finds that row.
        await db.rollback()
        logger.info("Concurrent draft insert for session %s; retrying as update", session_key)
        return await _upsert_once(db, session_key, data, step, draft_id)


async def _upsert_once(
    db: AsyncSession,
    session_key: str,
    data: dict,
    step: int,
    draft_id: str | None,
) -> UpsertResult:
    draft = None
    if draft_id:
        draft = await _adopt(db, session_key, draft_id)
    if draft is None:
        draft = await _active_for_session(db, session_key, lock=True)

    if draft is None:
        draft = CustomQuoteDraft(session_key=session_key, current_step=step, **data)
        db.add(draft)
        await db.flush()
        logger.info("Created draft %s for session %s at step %d", draft.id, session_key, step)
        return UpsertResult(draft_id=draft.id, current_step=draft.current_step, applied=True)

    if step < draft.current_step:
        logger.warning(
            "Ignoring stale write for draft %s (step %d < stored %d)",
            draft.id, step, draft.current_step,
        )
        return UpsertResult(draft_id=draft.id, current_step=draft.current_step, applied=False)

    for key, value in data.items():
        setattr(draft, key, value)
    draft.current_step = step
    draft.updated_at = utcnow()
    await db.flush()
    return UpsertResult(draft_id=draft.id, current_step=draft.current_step, applied=True)


async def _adopt(
    db: AsyncSession, session_key: str, draft_id: str
) -> CustomQuoteDraft | None:
    """Re-key an active draft to `session_key`.

    Whatever other draft the session had active is detached rather than
    deleted, so it can still be resumed through its own link.
    """
    draft = await db.get(CustomQuoteDraft, draft_id, with_for_update=True)
    if draft is None or draft.status != _ACTIVE:
        return None
    if draft.session_key == session_key:
        return draft

    current = await _active_for_session(db, session_key, lock=True)
    if current is not None:
        current.session_key = f"{DETACHED_SESSION_PREFIX}{current.id}"
        # Flush before re-keying so the unique index never sees two rows.
        await db.flush()

    previous_owner = draft.session_key
    draft.session_key = session_key
    await db.flush()
    logger.info(
        "Session %s adopted draft %s (previously %s)", session_key, draft.id, previous_owner
    )
    return draft


# ── Lookups ──────────────────────────────────────────────────

async def fetch_by_session(db: AsyncSession, session_key: str) -> DraftSnapshot | None:
    draft = await _active_for_session(db, session_key)
    return _snapshot(draft) if draft else None


async def fetch_by_id(db: AsyncSession, draft_id: str) -> DraftLookup:
    draft = await db.get(CustomQuoteDraft, draft_id)
    if draft is None:
        return DraftNotFound(draft_id=draft_id)
    if draft.status == _COMPLETED:
        return DraftGone(draft_id=draft_id)
    return DraftFound(draft=_snapshot(draft))


# ── Terminal operations ──────────────────────────────────────

async def delete(db: AsyncSession, session_key: str) -> bool:
    """Hard-delete the session's active draft. Returns False if there was none."""
    result = await db.execute(
        sa_delete(CustomQuoteDraft).where(
            CustomQuoteDraft.session_key == session_key,
            CustomQuoteDraft.status == _ACTIVE,
        )
    )
    deleted = result.rowcount > 0
    if deleted:
        logger.info("Deleted active draft for session %s", session_key)
    return deleted


async def complete(
    db: AsyncSession, draft_id: str, quote_request_id: str | None = None
) -> bool:
    """Flip a draft to completed.

    The status check lives in the UPDATE itself, so of any number of
    concurrent callers exactly one sees True. The rest get False.
    Raises ResourceNotFoundError for an unknown id.
    """
    now = utcnow()
    values = {"status": _COMPLETED, "completed_at": now, "updated_at": now}
    if quote_request_id:
        values["quote_request_id"] = quote_request_id

    result = await db.execute(
        update(CustomQuoteDraft)
        .where(CustomQuoteDraft.id == draft_id, CustomQuoteDraft.status == _ACTIVE)
        .values(**values)
    )
    if result.rowcount == 1:
        logger.info("Completed draft %s (quote %s)", draft_id, quote_request_id)
        return True

    exists = await db.scalar(
        select(CustomQuoteDraft.id).where(CustomQuoteDraft.id == draft_id)
    )
    if exists is None:
        raise ResourceNotFoundError("Quote draft", draft_id)
    logger.warning("Draft %s already completed; ignoring repeat completion", draft_id)
    return False


async def completed_quote_id(db: AsyncSession, draft_id: str) -> str | None:
    """Quote linked to a completed draft, if any."""
    return await db.scalar(
        select(CustomQuoteDraft.quote_request_id).where(
            CustomQuoteDraft.id == draft_id,
            CustomQuoteDraft.status == _COMPLETED,
        )
    )

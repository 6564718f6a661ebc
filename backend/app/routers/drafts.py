"""Draft persistence routes for the custom order wizard.

Every call is scoped to the caller's anonymous session key (cookie), except
fetch-by-id and complete, which address a draft directly by its resume id.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import get_optional_identity
from app.database import get_db
from app.middleware.exceptions import DraftGoneError, ResourceNotFoundError
from app.middleware.session import get_session_key
from app.schemas.quote_draft import (
    DraftCompleted,
    DraftDeleted,
    DraftEnvelope,
    DraftFields,
    DraftGone,
    DraftNotFound,
    DraftSaved,
    DraftUpsert,
    IdentityOut,
)
from app.services import draft_store

router = APIRouter()


@router.get("", response_model=DraftEnvelope)
async def get_session_draft(
    db: AsyncSession = Depends(get_db),
    session_key: str = Depends(get_session_key),
    identity: IdentityOut | None = Depends(get_optional_identity),
):
    """Active draft for this browser session (null when there is none)."""
    draft = await draft_store.fetch_by_session(db, session_key)
    return DraftEnvelope(draft=draft, user=identity)


@router.get("/{draft_id}", response_model=DraftEnvelope)
async def get_draft_by_id(
    draft_id: str,
    db: AsyncSession = Depends(get_db),
    identity: IdentityOut | None = Depends(get_optional_identity),
):
    """Resume path. 410 when the draft was already submitted, 404 when unknown."""
    lookup = await draft_store.fetch_by_id(db, draft_id)
    if isinstance(lookup, DraftGone):
        raise DraftGoneError(draft_id)
    if isinstance(lookup, DraftNotFound):
        raise ResourceNotFoundError("Quote draft", draft_id)
    return DraftEnvelope(draft=lookup.draft, user=identity)


@router.post("", response_model=DraftSaved)
async def save_draft(
    body: DraftUpsert,
    db: AsyncSession = Depends(get_db),
    session_key: str = Depends(get_session_key),
):
    fields = DraftFields.model_validate(body.model_dump(exclude={"step", "draft_id"}))
    result = await draft_store.upsert(
        db, session_key, fields, step=body.step, draft_id=body.draft_id,
    )
    return DraftSaved(
        draft_id=result.draft_id,
        current_step=result.current_step,
        applied=result.applied,
    )


@router.delete("", response_model=DraftDeleted)
async def reset_draft(
    db: AsyncSession = Depends(get_db),
    session_key: str = Depends(get_session_key),
):
    """Explicit reset. Idempotent: no active draft is still a success."""
    deleted = await draft_store.delete(db, session_key)
    return DraftDeleted(deleted=deleted)


@router.post("/{draft_id}/complete", response_model=DraftCompleted)
async def complete_draft(
    draft_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Idempotent completion; `completed=false` when it was already completed."""
    completed = await draft_store.complete(db, draft_id)
    return DraftCompleted(completed=completed)

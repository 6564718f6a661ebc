"""Quote intake: turn a reviewed wizard submission into a QuoteRequest.

Order of work, nothing is kept unless every step passes:
  1. parse and validate the structured `data` payload
  2. validate the model file and reference images
  3. verify the bot-verification token
  4. resolve the source draft (explicit id, else the session's active draft)
  5. insert the QuoteRequest and complete the draft in the same transaction
  6. store the uploaded files next to the quote and commit; the files are
     removed again if the commit fails

A submission whose draft is already completed replays the original quote
(`duplicate=True`) instead of creating a second one.
"""

import logging
import shutil
import uuid
from pathlib import Path, PurePath

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.middleware.exceptions import DraftGoneError, UploadRejectedError
from app.models.quote_request import QuoteFile, QuoteRequest
from app.schemas.quote import QuoteReceipt, QuoteSubmission
from app.schemas.quote_draft import DraftFound, DraftGone
from app.services import draft_store
from app.services.recaptcha import verify_token
from app.wizard.catalog import DEFAULT_TIMELINE
from app.wizard.files import UploadedFile, model_file_error, reference_images_error

logger = logging.getLogger(__name__)


def validate_uploads(
    model_file: UploadedFile | None, reference_images: list[UploadedFile]
) -> None:
    if model_file is not None:
        error = model_file_error(model_file)
        if error:
            raise UploadRejectedError(error, field="modelFile")
    error = reference_images_error(reference_images)
    if error:
        raise UploadRejectedError(error, field="referenceImages")


async def _quote_for_draft(db: AsyncSession, draft_id: str) -> str | None:
    return await db.scalar(select(QuoteRequest.id).where(QuoteRequest.draft_id == draft_id))


async def _resolve_draft(
    db: AsyncSession, session_key: str, draft_id: str | None
) -> tuple[str | None, str | None]:
    """Return (draft_id to complete, existing quote id for a replay)."""
    if draft_id:
        lookup = await draft_store.fetch_by_id(db, draft_id)
        if isinstance(lookup, DraftFound):
            return draft_id, None
        if isinstance(lookup, DraftGone):
            existing = await _quote_for_draft(db, draft_id)
            if existing is None:
                # completed through /complete without a quote on record
                raise DraftGoneError(draft_id)
            return None, existing
        logger.warning("Quote submitted with unknown draft id %s; not linking", draft_id)

    current = await draft_store.fetch_by_session(db, session_key)
    return (current.id if current else None), None


def _safe_name(filename: str) -> str:
    return PurePath(filename.replace("\\", "/")).name[:255] or "upload"


def _quote_dir(quote_id: str) -> Path:
    return Path(settings.upload_dir) / quote_id


def _store_file(quote: QuoteRequest, upload: UploadedFile, kind: str) -> QuoteFile:
    directory = _quote_dir(quote.id)
    directory.mkdir(parents=True, exist_ok=True)
    stored_name = f"{uuid.uuid4().hex}{upload.extension}"
    path = directory / stored_name
    path.write_bytes(upload.content)
    return QuoteFile(
        quote_request_id=quote.id,
        kind=kind,
        filename=stored_name,
        original_filename=_safe_name(upload.filename),
        file_path=str(path),
        file_size=upload.size,
        mime_type=upload.content_type,
    )


async def submit_quote(
    db: AsyncSession,
    session_key: str,
    data: str,
    model_file: UploadedFile | None = None,
    reference_images: list[UploadedFile] | None = None,
    recaptcha_token: str | None = None,
    remote_ip: str | None = None,
) -> QuoteReceipt:
    reference_images = reference_images or []

    # pydantic.ValidationError propagates to the validation handler (422)
    submission = QuoteSubmission.model_validate_json(data)
    validate_uploads(model_file, reference_images)
    verification = await verify_token(recaptcha_token, remote_ip)

    draft_id, existing = await _resolve_draft(db, session_key, submission.draft_id)
    if existing:
        logger.info("Replayed submission for completed draft %s -> quote %s", submission.draft_id, existing)
        return QuoteReceipt(quote_id=existing, draft_id=submission.draft_id, duplicate=True)

    fields = submission.model_dump(
        exclude={"draft_id", "terms_accepted"},
    )
    fields["timeline"] = fields.get("timeline") or DEFAULT_TIMELINE
    quote = QuoteRequest(
        draft_id=draft_id,
        session_key=session_key,
        verification_score=verification.score,
        **fields,
    )
    db.add(quote)

    try:
        await db.flush()
        completed = True
        if draft_id:
            completed = await draft_store.complete(db, draft_id, quote_request_id=quote.id)
    except IntegrityError:
        # Another request already created the quote for this draft.
        completed = False

    if not completed:
        await db.rollback()
        winner = await _quote_for_draft(db, draft_id)
        if winner is None:
            raise DraftGoneError(draft_id)
        logger.info("Concurrent submission for draft %s; returning quote %s", draft_id, winner)
        return QuoteReceipt(quote_id=winner, draft_id=draft_id, duplicate=True)

    # Files go to disk before the commit; a failed commit must not leave them behind.
    quote_id = quote.id
    try:
        if model_file is not None:
            db.add(_store_file(quote, model_file, "model"))
        for image in reference_images:
            db.add(_store_file(quote, image, "reference_image"))
        await db.flush()
        await db.commit()
    except Exception:
        shutil.rmtree(_quote_dir(quote_id), ignore_errors=True)
        raise

    logger.info(
        "Quote %s created (draft=%s, files=%d)",
        quote_id, draft_id, len(reference_images) + (1 if model_file else 0),
    )
    return QuoteReceipt(quote_id=quote_id, draft_id=draft_id)

"""Quote intake route: the wizard's final multipart submission."""

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.middleware.rate_limit import client_ip
from app.middleware.session import get_session_key
from app.schemas.quote import QuoteReceipt
from app.services.quote_intake import submit_quote
from app.wizard.files import UploadedFile

router = APIRouter()


async def _read_upload(upload: UploadFile) -> UploadedFile:
    content = await upload.read()
    return UploadedFile(
        filename=upload.filename or "upload",
        content=content,
        content_type=upload.content_type,
    )


@router.post("/quote", response_model=QuoteReceipt, status_code=status.HTTP_201_CREATED)
async def create_quote(
    request: Request,
    response: Response,
    data: str = Form(...),
    model_file: UploadFile | None = File(None, alias="modelFile"),
    reference_images: list[UploadFile] = File(default=[], alias="referenceImages"),
    recaptcha_token: str | None = Form(None, alias="g-recaptcha-response"),
    db: AsyncSession = Depends(get_db),
    session_key: str = Depends(get_session_key),
):
    """Validate, verify and record a quote request.

    `data` is the JSON-encoded structured fields (plus optional `draft_id`).
    Replaying a submission for an already-completed draft returns the
    original quote with `duplicate=true`.
    """
    model = None
    # Browsers send an empty part when no file was chosen.
    if model_file is not None and model_file.filename:
        model = await _read_upload(model_file)
    images = [await _read_upload(f) for f in reference_images if f.filename]

    receipt = await submit_quote(
        db,
        session_key,
        data,
        model_file=model,
        reference_images=images,
        recaptcha_token=recaptcha_token,
        remote_ip=client_ip(request),
    )
    if receipt.duplicate:
        response.status_code = status.HTTP_200_OK
    return receipt

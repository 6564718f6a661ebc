"""httpx implementations of the draft and quote-intake boundaries.

The `httpx.AsyncClient` passed in owns the cookie jar, so the anonymous
session cookie issued on the first response scopes every later call.
Error envelopes `{"error": {"code", "message"}}` are translated back:
404 -> DraftNotFound, 410 -> DraftGone, anything else -> PersistenceError
(drafts) or SubmissionRejected (quotes).
"""

import json
import logging

import httpx
from pydantic import ValidationError

from app.schemas.quote_draft import (
    DraftEnvelope,
    DraftFound,
    DraftGone,
    DraftLookup,
    DraftNotFound,
)
from app.wizard.files import UploadedFile
from app.wizard.gateways import (
    PersistenceError,
    QuoteResult,
    SaveResult,
    SessionDraft,
    SubmissionRejected,
)
from app.wizard.state import WizardFields
from app.wizard.submission import SUBMIT_FAILED

logger = logging.getLogger(__name__)

GENERIC_SUBMIT_ERROR = SUBMIT_FAILED


def error_message(resp: httpx.Response) -> str | None:
    try:
        body = resp.json()
    except ValueError:
        return None
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return error.get("message")
    if isinstance(error, str):
        return error
    return None


class HttpDraftGateway:
    def __init__(self, client: httpx.AsyncClient, base_path: str = "/api/custom/draft"):
        self.client = client
        self.base_path = base_path.rstrip("/")

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise PersistenceError(f"{method} {url} failed: {e}") from e

    @staticmethod
    def _check(resp: httpx.Response) -> None:
        if resp.status_code >= 400:
            raise PersistenceError(
                f"{resp.request.method} {resp.request.url.path} -> {resp.status_code}: "
                f"{error_message(resp) or resp.text[:200]}"
            )

    @staticmethod
    def _body(resp: httpx.Response) -> dict:
        try:
            body = resp.json()
        except ValueError as e:
            raise PersistenceError(
                f"{resp.request.method} {resp.request.url.path}: unreadable response body"
            ) from e
        if not isinstance(body, dict):
            raise PersistenceError(
                f"{resp.request.method} {resp.request.url.path}: unexpected response body"
            )
        return body

    def _envelope(self, resp: httpx.Response) -> DraftEnvelope:
        try:
            return DraftEnvelope.model_validate(self._body(resp))
        except ValidationError as e:
            raise PersistenceError(f"Malformed draft envelope: {e}") from e

    async def load_session(self) -> SessionDraft:
        resp = await self._request("GET", self.base_path)
        self._check(resp)
        envelope = self._envelope(resp)
        return SessionDraft(draft=envelope.draft, identity=envelope.user)

    async def load_by_id(self, draft_id: str) -> DraftLookup:
        resp = await self._request("GET", f"{self.base_path}/{draft_id}")
        if resp.status_code == 410:
            return DraftGone(draft_id=draft_id)
        if resp.status_code == 404:
            return DraftNotFound(draft_id=draft_id)
        self._check(resp)
        envelope = self._envelope(resp)
        if envelope.draft is None:
            return DraftNotFound(draft_id=draft_id)
        return DraftFound(draft=envelope.draft)

    async def save(self, fields: WizardFields, step: int, draft_id: str | None) -> SaveResult:
        body = {**fields.as_dict(), "step": step}
        if draft_id:
            body["draft_id"] = draft_id
        resp = await self._request("POST", self.base_path, json=body)
        self._check(resp)
        data = self._body(resp)
        try:
            return SaveResult(
                draft_id=data["draft_id"],
                current_step=data["current_step"],
                applied=data.get("applied", True),
            )
        except KeyError as e:
            raise PersistenceError(f"Draft save response missing {e}") from e

    async def delete(self) -> bool:
        resp = await self._request("DELETE", self.base_path)
        self._check(resp)
        return bool(self._body(resp).get("deleted"))

    async def complete(self, draft_id: str) -> bool:
        resp = await self._request("POST", f"{self.base_path}/{draft_id}/complete")
        self._check(resp)
        return bool(self._body(resp).get("completed"))


class HttpQuoteIntake:
    def __init__(self, client: httpx.AsyncClient, path: str = "/custom/quote"):
        self.client = client
        self.path = path

    async def submit(
        self,
        data: dict,
        model_file: UploadedFile | None,
        reference_images: tuple[UploadedFile, ...],
        verification_token: str | None,
    ) -> QuoteResult:
        form = {"data": json.dumps(data)}
        if verification_token:
            form["g-recaptcha-response"] = verification_token

        files = []
        if model_file is not None:
            files.append(("modelFile", _part(model_file, "application/octet-stream")))
        for image in reference_images:
            files.append(("referenceImages", _part(image, "image/jpeg")))

        try:
            resp = await self.client.post(self.path, data=form, files=files or None)
        except httpx.HTTPError as e:
            logger.error(f"Quote submission failed: {e}")
            raise SubmissionRejected(GENERIC_SUBMIT_ERROR) from e

        if resp.status_code >= 400:
            message = error_message(resp) or GENERIC_SUBMIT_ERROR
            raise SubmissionRejected(message, status_code=resp.status_code)

        try:
            body = resp.json()
            return QuoteResult(quote_id=body["quote_id"], duplicate=body.get("duplicate", False))
        except (ValueError, KeyError, TypeError, AttributeError):
            logger.warning("Unreadable quote intake response (%s)", resp.status_code)
            raise SubmissionRejected(GENERIC_SUBMIT_ERROR, status_code=resp.status_code)


def _part(upload: UploadedFile, default_type: str) -> tuple[str, bytes, str]:
    return (upload.filename, upload.content, upload.content_type or default_type)

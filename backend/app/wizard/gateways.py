"""Collaborator interfaces used by the wizard session and submission pipeline.

  DraftGateway   draft persistence boundary (HTTP or in-process store)
  BotVerifier    yields a verification token for an action label
  QuoteIntake    final multipart submission
  AnalyticsSink  fire-and-forget event dispatch
"""

from dataclasses import dataclass
from typing import Protocol

from app.schemas.quote_draft import DraftLookup, DraftSnapshot, IdentityOut
from app.wizard.files import UploadedFile
from app.wizard.state import WizardFields


class PersistenceError(Exception):
    """A draft load/save/delete call failed. Never fatal to the wizard."""


class VerificationError(Exception):
    """The bot-verification collaborator could not produce a token."""


class SubmissionRejected(Exception):
    """The quote-intake boundary refused or failed the submission."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


@dataclass(frozen=True)
class SessionDraft:
    draft: DraftSnapshot | None
    identity: IdentityOut | None = None


@dataclass(frozen=True)
class SaveResult:
    draft_id: str
    current_step: int
    applied: bool = True


@dataclass(frozen=True)
class QuoteResult:
    quote_id: str
    duplicate: bool = False


class DraftGateway(Protocol):
    async def load_session(self) -> SessionDraft: ...

    async def load_by_id(self, draft_id: str) -> DraftLookup: ...

    async def save(self, fields: WizardFields, step: int, draft_id: str | None) -> SaveResult: ...

    async def delete(self) -> bool: ...

    async def complete(self, draft_id: str) -> bool: ...


class BotVerifier(Protocol):
    async def token(self, action: str) -> str | None: ...


class QuoteIntake(Protocol):
    async def submit(
        self,
        data: dict,
        model_file: UploadedFile | None,
        reference_images: tuple[UploadedFile, ...],
        verification_token: str | None,
    ) -> QuoteResult: ...


class AnalyticsSink(Protocol):
    def track(self, name: str, params: dict) -> None: ...


class NoVerification:
    """Used when no site key is configured; submissions go out without a token."""

    async def token(self, action: str) -> str | None:
        return None


class StaticTokenVerifier:
    """Hands out a pre-issued token (server-rendered pages, tests)."""

    def __init__(self, token: str):
        self._token = token

    async def token(self, action: str) -> str | None:
        if not self._token:
            raise VerificationError(f"No verification token for {action}")
        return self._token

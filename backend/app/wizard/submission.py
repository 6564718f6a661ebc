"""Submission pipeline for the Review & Submit step.

Order matters:
  1. re-check every gate, files and terms (nothing sent on failure)
  2. obtain the bot-verification token (after validation, so no token is
     spent on an invalid form; before the network call, so a token failure
     never leaves a half-submitted quote)
  3. one multipart request to the quote-intake boundary
  4. complete the draft; the intake already did so server-side, so this is
     an idempotent confirmation and its failure is only logged

Any failure leaves the draft active and resumable.
"""

import logging
from dataclasses import dataclass

from app.wizard.catalog import DEFAULT_TIMELINE
from app.wizard.gateways import (
    BotVerifier,
    DraftGateway,
    PersistenceError,
    QuoteIntake,
    SubmissionRejected,
    VerificationError,
)
from app.wizard.state import WizardState
from app.wizard.validation import submission_errors

logger = logging.getLogger(__name__)

VERIFICATION_FAILED = "Security verification failed. Please refresh the page and try again."
INVALID_FORM = "Please review the highlighted fields and try again."
SUBMIT_FAILED = "There was an error submitting your request. Please try again."


@dataclass(frozen=True)
class SubmissionOutcome:
    ok: bool
    quote_id: str | None = None
    error: str | None = None
    duplicate: bool = False


def submission_payload(state: WizardState) -> dict:
    data = state.fields.as_dict()
    data["timeline"] = data.get("timeline") or DEFAULT_TIMELINE
    data["terms_accepted"] = state.terms_accepted
    if state.draft_id:
        data["draft_id"] = state.draft_id
    return data


class SubmissionPipeline:
    def __init__(
        self,
        intake: QuoteIntake,
        verifier: BotVerifier,
        drafts: DraftGateway,
        action: str = "custom_quote",
    ):
        self.intake = intake
        self.verifier = verifier
        self.drafts = drafts
        self.action = action

    async def submit(self, state: WizardState) -> SubmissionOutcome:
        if submission_errors(state):
            return SubmissionOutcome(ok=False, error=INVALID_FORM)

        try:
            token = await self.verifier.token(self.action)
        except VerificationError as e:
            logger.warning("Bot verification unavailable: %s", e)
            return SubmissionOutcome(ok=False, error=VERIFICATION_FAILED)

        try:
            result = await self.intake.submit(
                submission_payload(state),
                state.model_file,
                state.reference_images,
                token,
            )
        except SubmissionRejected as e:
            logger.warning("Quote submission rejected (%s): %s", e.status_code, e.message)
            return SubmissionOutcome(ok=False, error=e.message)

        if state.draft_id:
            try:
                await self.drafts.complete(state.draft_id)
            except PersistenceError as e:
                logger.warning("Could not confirm completion of draft %s: %s", state.draft_id, e)

        return SubmissionOutcome(ok=True, quote_id=result.quote_id, duplicate=result.duplicate)

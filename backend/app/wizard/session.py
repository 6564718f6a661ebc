"""WizardSession: runs the reducer and carries out its effects.

  PersistDraft     scheduled as a background task; the UI never waits
  TrackEvent       sent to the analytics sink, failures dropped
  ResetDraft       delete the session's draft, then re-initialise fresh
  BeginSubmission  run the SubmissionPipeline and feed the outcome back

Events are processed one at a time. Persistence failures are logged; the
next forward step sends the full field set again, so nothing is lost
while the page stays open.
"""

import asyncio
import logging

from app.schemas.quote_draft import IdentityOut
from app.wizard import analytics
from app.wizard.files import UploadedFile
from app.wizard.gateways import AnalyticsSink, DraftGateway, PersistenceError
from app.wizard.machine import (
    AcceptTerms,
    Advance,
    AttachModelFile,
    AttachReferenceImages,
    BeginSubmission,
    CancelReset,
    ConfirmReset,
    DraftPersisted,
    PersistDraft,
    RequestReset,
    RequestSubmit,
    ResetDraft,
    SelectColor,
    SelectMaterial,
    SelectProjectType,
    SelectSize,
    SetField,
    SubmissionFailed,
    SubmissionSucceeded,
    TrackEvent,
    reduce,
)
from app.wizard.resume import initialize_wizard
from app.wizard.state import WizardState
from app.wizard.submission import SUBMIT_FAILED, SubmissionPipeline

logger = logging.getLogger(__name__)


class WizardSession:
    def __init__(
        self,
        drafts: DraftGateway,
        pipeline: SubmissionPipeline | None = None,
        analytics_sink: AnalyticsSink | None = None,
        state: WizardState | None = None,
    ):
        self.drafts = drafts
        self.pipeline = pipeline
        self.analytics = analytics_sink
        self.state = state or WizardState()
        self._pending: set[asyncio.Task] = set()
        self._lock = asyncio.Lock()
        self.persist_failures = 0

    @classmethod
    async def start(
        cls,
        drafts: DraftGateway,
        pipeline: SubmissionPipeline | None = None,
        analytics_sink: AnalyticsSink | None = None,
        resume_id: str | None = None,
        identity: IdentityOut | None = None,
    ) -> "WizardSession":
        state = await initialize_wizard(drafts, resume_id=resume_id, identity=identity)
        return cls(drafts, pipeline=pipeline, analytics_sink=analytics_sink, state=state)

    # ── Event loop ───────────────────────────────────────────

    async def dispatch(self, event) -> WizardState:
        async with self._lock:
            await self._apply(event)
        return self.state

    async def _apply(self, event) -> None:
        transition = reduce(self.state, event)
        self.state = transition.state
        for effect in transition.effects:
            if isinstance(effect, PersistDraft):
                self._schedule_persist(effect)
            elif isinstance(effect, TrackEvent):
                analytics.emit(self.analytics, effect.name, effect.params)
            elif isinstance(effect, ResetDraft):
                await self._reset()
            elif isinstance(effect, BeginSubmission):
                await self._submit()

    # ── Effects ──────────────────────────────────────────────

    def _schedule_persist(self, effect: PersistDraft) -> None:
        task = asyncio.create_task(self._persist(effect))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _persist(self, effect: PersistDraft) -> None:
        try:
            result = await self.drafts.save(effect.fields, effect.step, effect.draft_id)
        except PersistenceError as e:
            self.persist_failures += 1
            logger.warning("Draft save at step %d failed: %s", effect.step, e)
            return
        if not result.applied:
            logger.info("Draft %s kept at step %d (stale save ignored)", result.draft_id, result.current_step)
        # Applied outside the event lock; DraftPersisted produces no effects.
        if self.state.draft_id != result.draft_id:
            self.state = reduce(self.state, DraftPersisted(result.draft_id)).state

    async def _reset(self) -> None:
        await self.drain()
        try:
            await self.drafts.delete()
        except PersistenceError as e:
            logger.warning("Draft delete on reset failed: %s", e)
        # Full re-initialisation; no resume id, nothing carried over.
        self.state = await initialize_wizard(self.drafts)

    async def _submit(self) -> None:
        if self.pipeline is None:
            raise RuntimeError("WizardSession has no SubmissionPipeline configured")
        # Make sure the last forward save has landed so the draft id is known.
        await self.drain()
        try:
            outcome = await self.pipeline.submit(self.state)
        except Exception:
            logger.exception("Quote submission crashed")
            await self._apply(SubmissionFailed(SUBMIT_FAILED))
            return
        if outcome.ok:
            await self._apply(SubmissionSucceeded(outcome.quote_id))
        else:
            await self._apply(SubmissionFailed(outcome.error))

    async def drain(self) -> None:
        """Wait for in-flight persistence tasks."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ── Convenience API ──────────────────────────────────────

    async def advance(self, delta: int = 1) -> WizardState:
        return await self.dispatch(Advance(delta))

    async def back(self) -> WizardState:
        return await self.dispatch(Advance(-1))

    async def select_project_type(self, project_type: str) -> WizardState:
        return await self.dispatch(SelectProjectType(project_type))

    async def set_material(self, material: str) -> WizardState:
        return await self.dispatch(SelectMaterial(material))

    async def set_size(self, size: str) -> WizardState:
        return await self.dispatch(SelectSize(size))

    async def set_color(self, color: str) -> WizardState:
        return await self.dispatch(SelectColor(color))

    async def set_field(self, name: str, value) -> WizardState:
        return await self.dispatch(SetField(name, value))

    async def attach_model_file(self, upload: UploadedFile | None) -> WizardState:
        return await self.dispatch(AttachModelFile(upload))

    async def attach_reference_images(self, images) -> WizardState:
        return await self.dispatch(AttachReferenceImages(tuple(images)))

    async def accept_terms(self, accepted: bool = True) -> WizardState:
        return await self.dispatch(AcceptTerms(accepted))

    async def request_reset(self) -> WizardState:
        return await self.dispatch(RequestReset())

    async def cancel_reset(self) -> WizardState:
        return await self.dispatch(CancelReset())

    async def confirm_reset(self) -> WizardState:
        return await self.dispatch(ConfirmReset())

    async def submit(self) -> WizardState:
        return await self.dispatch(RequestSubmit())

"""End-to-end wizard sessions driven against the ASGI app.

Each scenario plays a visitor through `WizardSession` using the HTTP
gateways, so drafts go through the real routes, cookie and store.
"""

import httpx
import pytest

from app.config import settings
from app.middleware.exceptions import VerificationFailedError
from app.schemas.quote_draft import DraftGone, IdentityOut
from app.services import draft_store
from app.wizard.analytics import LoggingAnalytics, emit
from app.wizard.files import UploadedFile
from app.wizard.gateways import (
    NoVerification,
    PersistenceError,
    SessionDraft,
    StaticTokenVerifier,
)
from app.wizard.http_gateway import GENERIC_SUBMIT_ERROR, HttpDraftGateway, HttpQuoteIntake
from app.wizard.resume import ALREADY_SUBMITTED
from app.wizard.session import WizardSession
from app.wizard.state import SUBMITTED, WizardFields, WizardState
from app.wizard.store_gateway import StoreDraftGateway
from app.wizard.submission import SUBMIT_FAILED, VERIFICATION_FAILED, SubmissionPipeline
from app.wizard.validation import MSG_EMAIL_INVALID

DRAFT_URL = "/api/custom/draft"


async def start(http, resume_id=None, analytics_sink=None, verifier=None) -> WizardSession:
    drafts = HttpDraftGateway(http)
    pipeline = SubmissionPipeline(HttpQuoteIntake(http), verifier or NoVerification(), drafts)
    return await WizardSession.start(
        drafts, pipeline=pipeline, analytics_sink=analytics_sink, resume_id=resume_id,
    )


async def fill_to_review(wizard: WizardSession) -> None:
    await wizard.select_project_type("figurine")
    await wizard.advance()
    await wizard.set_field("name", "Ada Lovelace")
    await wizard.set_field("email", "ada@example.com")
    await wizard.advance()
    await wizard.set_field("description", "A small dragon")
    await wizard.advance()
    await wizard.set_material("pla")
    await wizard.set_size("medium")
    await wizard.advance()
    await wizard.drain()


@pytest.mark.api
@pytest.mark.asyncio
class TestWizardScenarios:

    async def test_fresh_start(self, client):
        wizard = await start(client)
        assert wizard.state.step == 1
        assert wizard.state.fields.project_type is None
        assert wizard.state.notice is None

    async def test_restores_stored_draft(self, client):
        """A session draft at step 4 opens at step 4 with selections and estimate."""
        await client.post(DRAFT_URL, json={
            "step": 4, "project_type": "figurine", "name": "Ada",
            "email": "ada@example.com", "material": "pla", "size": "medium",
        })

        wizard = await start(client)
        state = wizard.state
        assert state.step == 4
        assert state.fields.material == "pla"
        assert state.fields.size == "medium"
        assert state.price_estimate.display() == "$20 - $30"

    async def test_invalid_email_is_not_saved(self, client):
        wizard = await start(client)
        await wizard.select_project_type("prototype")
        await wizard.advance()
        await wizard.drain()
        await wizard.set_field("name", "Ada")
        await wizard.set_field("email", "ada-at-example")
        state = await wizard.advance()
        await wizard.drain()

        assert state.step == 2
        assert state.errors["email"] == MSG_EMAIL_INVALID
        draft = (await client.get(DRAFT_URL)).json()["draft"]
        assert draft["current_step"] == 2
        assert draft["email"] is None

    async def test_each_forward_step_is_saved(self, client):
        wizard = await start(client)
        await fill_to_review(wizard)
        assert wizard.state.step == 5
        assert wizard.state.draft_id is not None

        draft = (await client.get(DRAFT_URL)).json()["draft"]
        assert draft["id"] == wizard.state.draft_id
        assert draft["current_step"] == 5
        assert draft["timeline"] == "standard"
        assert draft["description"] == "A small dragon"

    async def test_reset_clears_draft(self, client):
        wizard = await start(client)
        await wizard.select_project_type("decorative")
        await wizard.advance()
        await wizard.set_field("name", "Ada")
        await wizard.set_field("email", "ada@example.com")
        await wizard.advance()
        assert wizard.state.step == 3

        await wizard.request_reset()
        state = await wizard.confirm_reset()
        assert state.step == 1
        assert state.fields.project_type is None
        assert (await client.get(DRAFT_URL)).json()["draft"] is None

    async def test_submit_then_resume_link_is_gone(self, make_client):
        visitor = make_client()
        sink = LoggingAnalytics()
        wizard = await start(visitor, analytics_sink=sink)
        await fill_to_review(wizard)
        await wizard.attach_model_file(UploadedFile("dragon.stl", b"solid dragon"))
        await wizard.accept_terms()
        state = await wizard.submit()

        assert state.status == SUBMITTED
        assert state.quote_id
        draft_id = state.draft_id

        lead = [params for name, params in sink.events if name == "generate_lead"]
        assert lead == [{
            "currency": "USD", "value": 150, "lead_source": "custom_order",
            "project_type": "figurine", "has_model_file": True, "timeline": "standard",
        }]
        steps = [params["step_number"] for name, params in sink.events if name == "custom_order_step"]
        assert steps == [1, 2, 3, 4, 5]

        # Opening the recovery link later, from any browser
        later = make_client()
        resumed = await start(later, resume_id=draft_id)
        assert resumed.state.notice == ALREADY_SUBMITTED
        assert resumed.state.step == 1
        assert resumed.state.fields.project_type is None

    async def test_resume_link_on_another_device(self, make_client):
        laptop, phone = make_client(), make_client()
        first = await start(laptop)
        await first.select_project_type("prototype")
        await first.advance()
        await first.set_field("name", "Grace")
        await first.set_field("email", "grace@example.com")
        await first.advance()
        await first.drain()
        draft_id = first.state.draft_id

        second = await start(phone, resume_id=draft_id)
        assert second.state.step == 3
        assert second.state.fields.email == "grace@example.com"

        await second.advance()
        await second.drain()
        assert (await phone.get(DRAFT_URL)).json()["draft"]["id"] == draft_id
        assert (await laptop.get(DRAFT_URL)).json()["draft"] is None

    async def test_unknown_resume_id_starts_quietly(self, client):
        wizard = await start(client, resume_id="no-such-draft")
        assert wizard.state.step == 1
        assert wizard.state.notice is None

    async def test_verification_failure_keeps_draft(self, client):
        wizard = await start(client, verifier=StaticTokenVerifier(""))
        await fill_to_review(wizard)
        await wizard.accept_terms()
        state = await wizard.submit()

        assert state.status == "editing"
        assert state.form_error == VERIFICATION_FAILED
        assert (await client.get(DRAFT_URL)).json()["draft"]["id"] == state.draft_id

    async def test_server_rejection_surfaces_message(self, client, monkeypatch):
        # Server expects a token; this client sends none.
        monkeypatch.setattr(settings, "recaptcha_secret_key", "server-secret")
        wizard = await start(client)
        await fill_to_review(wizard)
        await wizard.accept_terms()
        state = await wizard.submit()

        assert state.status == "editing"
        assert state.form_error == VerificationFailedError().message
        assert state.fields.email == "ada@example.com"
        assert (await client.get(DRAFT_URL)).json()["draft"]["id"] == state.draft_id


class _FailingDrafts:
    async def load_session(self):
        raise PersistenceError("offline")

    async def load_by_id(self, draft_id):
        raise PersistenceError("offline")

    async def save(self, fields, step, draft_id):
        raise PersistenceError("offline")

    async def delete(self):
        raise PersistenceError("offline")

    async def complete(self, draft_id):
        raise PersistenceError("offline")


class _IdentityOnlyDrafts(_FailingDrafts):
    async def load_session(self):
        return SessionDraft(draft=None, identity=IdentityOut(name="Grace", email="grace@example.com"))


class _BrokenSink:
    def track(self, name, params):
        raise RuntimeError("sink down")


@pytest.mark.asyncio
class TestWizardResilience:

    async def test_persistence_failures_do_not_block(self):
        wizard = await WizardSession.start(_FailingDrafts())
        assert wizard.state == WizardState()

        await wizard.select_project_type("custom")
        state = await wizard.advance()
        await wizard.drain()
        assert state.step == 2
        assert wizard.persist_failures == 1

    async def test_identity_prefills_contact_step(self):
        wizard = await WizardSession.start(_IdentityOnlyDrafts())
        assert wizard.state.fields.name == "Grace"
        assert wizard.state.fields.email == "grace@example.com"

    async def test_analytics_failure_is_dropped(self):
        emit(_BrokenSink(), "custom_order_step", {"step_number": 1})
        wizard = await WizardSession.start(_IdentityOnlyDrafts(), analytics_sink=_BrokenSink())
        state = await wizard.select_project_type("figurine")
        assert state.fields.project_type == "figurine"


@pytest.mark.asyncio
class TestStoreGateway:

    async def test_in_process_wizard(self, session_factory, session_key):
        drafts = StoreDraftGateway(session_factory, session_key)
        wizard = await WizardSession.start(drafts)
        await wizard.select_project_type("figurine")
        await wizard.advance()
        await wizard.drain()

        async with session_factory() as db:
            snapshot = await draft_store.fetch_by_session(db, session_key)
        assert snapshot.id == wizard.state.draft_id
        assert snapshot.current_step == 2

        assert await drafts.complete(wizard.state.draft_id)
        assert isinstance(await drafts.load_by_id(wizard.state.draft_id), DraftGone)

    async def test_store_errors_become_persistence_errors(self, session_factory, session_key):
        drafts = StoreDraftGateway(session_factory, session_key)
        with pytest.raises(PersistenceError):
            await drafts.complete("missing")

    async def test_oversized_fields_become_persistence_errors(self, session_factory, session_key):
        drafts = StoreDraftGateway(session_factory, session_key)
        with pytest.raises(PersistenceError):
            await drafts.save(WizardFields(project_type="figurine", name="A" * 300), 2, None)

        async with session_factory() as db:
            assert await draft_store.fetch_by_session(db, session_key) is None


def _html_backend(calls: list) -> httpx.AsyncClient:
    """A backend that answers every request with a 200 HTML page."""

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, text="<html>ok</html>", headers={"Content-Type": "text/html"})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test")


class _CrashingIntake:
    async def submit(self, data, model_file, reference_images, verification_token):
        raise RuntimeError("intake exploded")


@pytest.mark.asyncio
class TestMalformedResponses:

    async def test_html_quote_response_returns_to_editing(self, session_factory, session_key):
        calls = []
        drafts = StoreDraftGateway(session_factory, session_key)
        async with _html_backend(calls) as http:
            pipeline = SubmissionPipeline(HttpQuoteIntake(http), NoVerification(), drafts)
            wizard = await WizardSession.start(drafts, pipeline=pipeline)
            await fill_to_review(wizard)
            await wizard.accept_terms()

            state = await wizard.submit()
            assert state.status == "editing"
            assert state.form_error == GENERIC_SUBMIT_ERROR
            assert state.fields.email == "ada@example.com"

            # not stuck: a retry reaches the intake again
            state = await wizard.submit()
            assert state.status == "editing"
            assert calls == ["/custom/quote", "/custom/quote"]

    async def test_pipeline_crash_returns_to_editing(self, session_factory, session_key):
        drafts = StoreDraftGateway(session_factory, session_key)
        pipeline = SubmissionPipeline(_CrashingIntake(), NoVerification(), drafts)
        wizard = await WizardSession.start(drafts, pipeline=pipeline)
        await fill_to_review(wizard)
        await wizard.accept_terms()

        state = await wizard.submit()
        assert state.status == "editing"
        assert state.form_error == SUBMIT_FAILED

        async with session_factory() as db:
            draft = await draft_store.fetch_by_session(db, session_key)
        assert draft.id == state.draft_id

    async def test_html_draft_responses_are_persistence_errors(self):
        calls = []
        async with _html_backend(calls) as http:
            drafts = HttpDraftGateway(http)
            with pytest.raises(PersistenceError):
                await drafts.load_session()
            with pytest.raises(PersistenceError):
                await drafts.save(WizardFields(project_type="figurine"), 2, None)
            with pytest.raises(PersistenceError):
                await drafts.complete("some-draft")

    async def test_html_draft_backend_does_not_block_wizard(self):
        async with _html_backend([]) as http:
            wizard = await WizardSession.start(HttpDraftGateway(http))
            assert wizard.state == WizardState()

            await wizard.select_project_type("figurine")
            state = await wizard.advance()
            await wizard.drain()
            assert state.step == 2
            assert wizard.persist_failures == 1

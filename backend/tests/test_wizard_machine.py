"""Wizard reducer tests (pure, no I/O)."""

from dataclasses import replace
from types import SimpleNamespace

import pytest

from app.wizard.files import UploadedFile
from app.wizard.machine import (
    AcceptTerms,
    Advance,
    AttachModelFile,
    BeginSubmission,
    CancelReset,
    ConfirmReset,
    PersistDraft,
    PrefillIdentity,
    RequestReset,
    RequestSubmit,
    ResetDraft,
    RestoreDraft,
    SelectMaterial,
    SelectProjectType,
    SelectSize,
    SetField,
    SubmissionFailed,
    SubmissionSucceeded,
    TrackEvent,
    reduce,
)
from app.wizard.state import SUBMITTED, SUBMITTING, WizardFields, WizardState
from app.wizard.validation import MSG_EMAIL_INVALID, MSG_PROJECT_TYPE, MSG_TERMS, MSG_TOO_LONG


def run(state, *events):
    effects = []
    for event in events:
        t = reduce(state, event)
        state = t.state
        effects.extend(t.effects)
    return state, effects


def at_review() -> WizardState:
    state, _ = run(
        WizardState(),
        SelectProjectType("prototype"),
        Advance(1),
        SetField("name", "Grace"),
        SetField("email", "grace@example.com"),
        Advance(1),
        Advance(1),
        SelectMaterial("petg"),
        SelectSize("large"),
        Advance(1),
    )
    return state


@pytest.mark.unit
class TestNavigation:

    def test_initial_state(self):
        state = WizardState()
        assert state.step == 1
        assert state.fields == WizardFields()
        assert state.errors == {}

    def test_step1_requires_project_type(self):
        """Advancing without a project type stays put with a step error and no effects."""
        t = reduce(WizardState(), Advance(1))
        assert t.state.step == 1
        assert t.state.errors == {"project_type": MSG_PROJECT_TYPE}
        assert t.effects == ()

    def test_forward_persists_and_tracks(self):
        state, _ = run(WizardState(), SelectProjectType("figurine"))
        t = reduce(state, Advance(1))
        assert t.state.step == 2
        persist = [e for e in t.effects if isinstance(e, PersistDraft)]
        assert len(persist) == 1
        assert persist[0].step == 2
        assert persist[0].fields.project_type == "figurine"
        tracked = [e for e in t.effects if isinstance(e, TrackEvent)]
        assert tracked[0].name == "custom_order_step"
        assert tracked[0].params["step_number"] == 2

    def test_invalid_email_blocks_without_persisting(self):
        state, _ = run(WizardState(), SelectProjectType("figurine"), Advance(1))
        state, _ = run(state, SetField("name", "Ada"), SetField("email", "not-an-email"))
        t = reduce(state, Advance(1))
        assert t.state.step == 2
        assert t.state.errors["email"] == MSG_EMAIL_INVALID
        assert t.state.focus == "email"
        assert not any(isinstance(e, PersistDraft) for e in t.effects)

    def test_overlong_name_blocks_advance(self):
        state, _ = run(WizardState(), SelectProjectType("figurine"), Advance(1))
        state, _ = run(state, SetField("name", "A" * 300), SetField("email", "ada@example.com"))
        t = reduce(state, Advance(1))
        assert t.state.step == 2
        assert t.state.errors["name"] == MSG_TOO_LONG.format(limit=200)
        assert t.state.focus == "name"
        assert not any(isinstance(e, PersistDraft) for e in t.effects)

    def test_overlong_description_blocks_advance(self):
        state, _ = run(
            WizardState(),
            SelectProjectType("figurine"),
            Advance(1),
            SetField("name", "Ada"),
            SetField("email", "ada@example.com"),
            Advance(1),
            SetField("description", "x" * 5001),
        )
        state, _ = run(state, Advance(1))
        assert state.step == 3
        assert "description" in state.errors

    def test_step2_trims_contact_fields(self):
        state, _ = run(WizardState(), SelectProjectType("figurine"), Advance(1))
        state, _ = run(state, SetField("name", "  Ada  "), SetField("email", " ada@example.com "))
        state, _ = run(state, Advance(1))
        assert state.step == 3
        assert state.fields.name == "Ada"
        assert state.fields.email == "ada@example.com"

    def test_step4_requires_material_and_size(self):
        state, _ = run(
            WizardState(), SelectProjectType("figurine"), Advance(1),
            SetField("name", "Ada"), SetField("email", "ada@example.com"), Advance(1), Advance(1),
        )
        t = reduce(state, Advance(1))
        assert t.state.step == 4
        assert set(t.state.errors) == {"material", "size"}
        assert t.state.focus == "material"

    def test_leaving_step4_defaults_timeline(self):
        state = at_review()
        assert state.fields.timeline == "standard"

    def test_back_never_validates_or_persists(self):
        state, _ = run(WizardState(), SelectProjectType("figurine"), Advance(1))
        t = reduce(state, Advance(-1))
        assert t.state.step == 1
        assert t.effects == ()
        assert t.state.fields.project_type == "figurine"

    def test_back_clamps_at_one(self):
        t = reduce(WizardState(), Advance(-1))
        assert t.state.step == 1

    def test_back_then_forward_round_trip(self):
        """advance(-1) then advance(+1) returns to the same step and fields."""
        before, _ = run(
            WizardState(), SelectProjectType("decorative"), Advance(1),
            SetField("name", "Ada"), SetField("email", "ada@example.com"), Advance(1),
        )
        after, effects = run(before, Advance(-1), Advance(1))
        assert after.step == before.step
        assert after.fields == before.fields
        assert after.furthest_step == before.furthest_step
        # the forward leg re-persists at the furthest step
        assert [e.step for e in effects if isinstance(e, PersistDraft)] == [3]

    def test_forward_at_review_is_noop(self):
        state = at_review()
        t = reduce(state, Advance(1))
        assert t.state is state
        assert t.effects == ()

    def test_reaching_review_builds_summary(self):
        state = at_review()
        assert state.step == 5
        assert state.review is not None
        assert state.review.material == "PETG"
        assert state.review.size == "Large (10-20cm)"
        assert state.review.timeline == "Standard (3-5 days)"


@pytest.mark.unit
class TestSetters:

    def test_select_clears_field_error(self):
        state = reduce(WizardState(), Advance(1)).state
        assert "project_type" in state.errors
        state = reduce(state, SelectProjectType("custom")).state
        assert "project_type" not in state.errors

    def test_project_type_selection_tracked(self):
        t = reduce(WizardState(), SelectProjectType("figurine"))
        assert t.effects == (
            TrackEvent("custom_order_step", {
                "step_number": 1, "step_name": "project_type", "project_type": "figurine",
            }),
        )

    def test_unknown_option_ignored(self):
        state = WizardState()
        t = reduce(state, SelectMaterial("titanium"))
        assert t.state.fields.material is None

    def test_price_estimate_follows_material_and_size(self):
        state, _ = run(WizardState(), SelectMaterial("abs"))
        assert state.price_estimate is None
        state, _ = run(state, SelectSize("medium"))
        assert state.price_estimate.display() == "$30 - $45"

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            reduce(WizardState(), SetField("favourite_food", "cake"))

    def test_model_file_rejected_on_attach(self):
        bad = UploadedFile("dragon.exe", b"MZ")
        state = reduce(WizardState(), AttachModelFile(bad)).state
        assert state.model_file is None
        assert "3D model file" in state.errors["model_file"]

    def test_model_file_kept_when_valid(self):
        good = UploadedFile("dragon.STL", b"solid dragon")
        state = reduce(WizardState(), AttachModelFile(good)).state
        assert state.model_file == good
        assert "model_file" not in state.errors


@pytest.mark.unit
class TestRestoreAndPrefill:

    def _draft(self, **overrides):
        data = dict(
            id="d-1", current_step=4, project_type="figurine", name="Ada",
            email="ada@example.com", phone=None, material="pla", size="medium",
            color=None, budget=None, timeline=None, description=None,
            finishing=False, painting=True, rush=False, need_design=False,
        )
        data.update(overrides)
        return SimpleNamespace(**data)

    def test_restore_opens_at_saved_step_with_estimate(self):
        t = reduce(WizardState(), RestoreDraft(self._draft()))
        state = t.state
        assert t.effects == ()
        assert state.step == 4
        assert state.draft_id == "d-1"
        assert state.fields.material == "pla"
        assert state.fields.size == "medium"
        assert state.fields.painting is True
        assert state.price_estimate.display() == "$20 - $30"

    def test_restore_matches_manual_selection(self):
        restored = reduce(WizardState(), RestoreDraft(self._draft(current_step=1))).state
        manual, _ = run(
            WizardState(), SelectProjectType("figurine"), SetField("name", "Ada"),
            SetField("email", "ada@example.com"), SelectMaterial("pla"), SelectSize("medium"),
            SetField("painting", True),
        )
        assert restored.fields == manual.fields
        assert restored.price_estimate == manual.price_estimate

    def test_restore_clamps_step(self):
        state = reduce(WizardState(), RestoreDraft(self._draft(current_step=9))).state
        assert state.step == 5
        assert state.review is not None

    def test_prefill_only_fills_empty_fields(self):
        state = reduce(WizardState(), RestoreDraft(self._draft())).state
        state = reduce(state, PrefillIdentity("Someone Else", "else@example.com")).state
        assert state.fields.name == "Ada"
        assert state.fields.email == "ada@example.com"

        fresh = reduce(WizardState(), PrefillIdentity("Grace", "grace@example.com")).state
        assert fresh.fields.name == "Grace"
        assert fresh.fields.email == "grace@example.com"


@pytest.mark.unit
class TestResetAndSubmit:

    def test_reset_requires_confirmation(self):
        t = reduce(WizardState(), ConfirmReset())
        assert t.effects == ()

        state = reduce(WizardState(), RequestReset()).state
        assert state.confirming_reset
        t = reduce(state, ConfirmReset())
        assert t.effects == (ResetDraft(),)
        assert not t.state.confirming_reset

    def test_cancel_reset(self):
        state = reduce(reduce(WizardState(), RequestReset()).state, CancelReset()).state
        assert not state.confirming_reset

    def test_submit_requires_terms(self):
        state = at_review()
        t = reduce(state, RequestSubmit())
        assert t.state.errors == {"terms": MSG_TERMS}
        assert t.effects == ()

    def test_submit_outside_review_is_ignored(self):
        t = reduce(WizardState(), RequestSubmit())
        assert t.effects == ()

    def test_submit_begins_pipeline(self):
        state = reduce(at_review(), AcceptTerms(True)).state
        t = reduce(state, RequestSubmit())
        assert t.state.status == SUBMITTING
        assert t.effects == (BeginSubmission(),)
        # navigation is frozen while submitting
        assert reduce(t.state, Advance(-1)).state.step == 5

    def test_submission_success_emits_lead(self):
        state = replace(at_review(), status=SUBMITTING)
        t = reduce(state, SubmissionSucceeded("q-1"))
        assert t.state.status == SUBMITTED
        assert t.state.quote_id == "q-1"
        (lead,) = t.effects
        assert lead.name == "generate_lead"
        assert lead.params["value"] == 150
        assert lead.params["project_type"] == "prototype"

    def test_submission_failure_keeps_data(self):
        state = replace(at_review(), status=SUBMITTING)
        t = reduce(state, SubmissionFailed("Boom"))
        assert t.state.status == "editing"
        assert t.state.form_error == "Boom"
        assert t.state.fields == state.fields

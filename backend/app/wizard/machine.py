"""Wizard state machine: a pure `reduce(state, event) -> Transition`.

The reducer never performs I/O. Anything with a side effect (saving the
draft, analytics, deleting the draft on reset, running the submission) is
returned as an effect for `WizardSession` to carry out.

Navigation rules:
  - Advance(+1) validates the current step. Invalid: stay, attach errors,
    no effects. Valid: merge the step's fields, move forward, persist.
  - Advance(-1) moves back unconditionally. No validation, no persistence,
    entered data is kept.
  - Step 5 is left only through RequestSubmit, never through Advance.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Union

from app.wizard.catalog import COLORS, DEFAULT_TIMELINE, MATERIALS, PROJECT_TYPES, SIZES, TIMELINES
from app.wizard.files import UploadedFile, model_file_error, reference_images_error
from app.wizard.pricing import estimate_price
from app.wizard.review import build_review
from app.wizard.state import (
    EDITING,
    FIELD_NAMES,
    OPTION_FIELDS,
    STEP_NAMES,
    SUBMITTED,
    SUBMITTING,
    TOTAL_STEPS,
    WizardFields,
    WizardState,
)
from app.wizard.validation import first_invalid, step_errors, submission_errors

LEAD_VALUE = 150
SUCCESS_MESSAGE = (
    "Your custom order request has been submitted! "
    "We'll contact you within 24 hours with a detailed quote."
)

_CHOICES = {
    "project_type": PROJECT_TYPES,
    "material": MATERIALS,
    "size": SIZES,
    "color": COLORS,
    "timeline": TIMELINES,
}
_TEXT_FIELDS = ("name", "email", "phone", "budget", "description")


# ── Events ───────────────────────────────────────────────────

@dataclass(frozen=True)
class Advance:
    delta: int


@dataclass(frozen=True)
class SelectProjectType:
    project_type: str


@dataclass(frozen=True)
class SelectMaterial:
    material: str


@dataclass(frozen=True)
class SelectSize:
    size: str


@dataclass(frozen=True)
class SelectColor:
    color: str


@dataclass(frozen=True)
class SetField:
    """Free-text fields, timeline and the option checkboxes."""
    name: str
    value: Any


@dataclass(frozen=True)
class AttachModelFile:
    upload: UploadedFile | None


@dataclass(frozen=True)
class AttachReferenceImages:
    images: tuple[UploadedFile, ...]


@dataclass(frozen=True)
class AcceptTerms:
    accepted: bool


@dataclass(frozen=True)
class RestoreDraft:
    """Hydrate from a loaded draft (any object with the draft attributes)."""
    draft: Any


@dataclass(frozen=True)
class PrefillIdentity:
    name: str | None = None
    email: str | None = None


@dataclass(frozen=True)
class ShowNotice:
    message: str


@dataclass(frozen=True)
class DraftPersisted:
    draft_id: str


@dataclass(frozen=True)
class RequestReset:
    pass


@dataclass(frozen=True)
class CancelReset:
    pass


@dataclass(frozen=True)
class ConfirmReset:
    pass


@dataclass(frozen=True)
class RequestSubmit:
    pass


@dataclass(frozen=True)
class SubmissionSucceeded:
    quote_id: str


@dataclass(frozen=True)
class SubmissionFailed:
    message: str


Event = Union[
    Advance, SelectProjectType, SelectMaterial, SelectSize, SelectColor, SetField,
    AttachModelFile, AttachReferenceImages, AcceptTerms, RestoreDraft, PrefillIdentity,
    ShowNotice, DraftPersisted, RequestReset, CancelReset, ConfirmReset, RequestSubmit,
    SubmissionSucceeded, SubmissionFailed,
]


# ── Effects ──────────────────────────────────────────────────

@dataclass(frozen=True)
class PersistDraft:
    fields: WizardFields
    step: int
    draft_id: str | None


@dataclass(frozen=True)
class TrackEvent:
    name: str
    params: dict = field(default_factory=dict)


@dataclass(frozen=True)
class ResetDraft:
    pass


@dataclass(frozen=True)
class BeginSubmission:
    pass


Effect = Union[PersistDraft, TrackEvent, ResetDraft, BeginSubmission]


@dataclass(frozen=True)
class Transition:
    state: WizardState
    effects: tuple[Effect, ...] = ()


# ── Helpers ──────────────────────────────────────────────────

def _clamp(step: int) -> int:
    return max(1, min(TOTAL_STEPS, step))


def _without(errors: dict[str, str], *names: str) -> dict[str, str]:
    if not any(n in errors for n in names):
        return errors
    return {k: v for k, v in errors.items() if k not in names}


def _step_event(step: int, **params) -> TrackEvent:
    return TrackEvent(
        "custom_order_step",
        {"step_number": step, "step_name": STEP_NAMES.get(step, "unknown"), **params},
    )


def _set_field(state: WizardState, name: str, value) -> WizardState:
    """Assign one field, clear its error, refresh derived values."""
    if name in _CHOICES:
        value = value or None
        if value is not None and value not in _CHOICES[name]:
            return state
    elif name in OPTION_FIELDS:
        value = bool(value)
    elif name in _TEXT_FIELDS:
        value = value if value else None
    else:
        raise ValueError(f"Unknown wizard field: {name}")

    fields = replace(state.fields, **{name: value})
    state = replace(state, fields=fields, errors=_without(state.errors, name))
    if name in ("material", "size"):
        state = replace(state, price_estimate=estimate_price(fields.material, fields.size))
    if state.review is not None:
        state = _with_review(state)
    return state


def _with_review(state: WizardState) -> WizardState:
    return replace(
        state,
        review=build_review(state.fields, state.model_file, state.reference_images),
    )


def _collect_step(fields: WizardFields, step: int) -> WizardFields:
    """Normalise the fields owned by the step being left."""
    if step == 2:
        return replace(
            fields,
            name=(fields.name or "").strip() or None,
            email=(fields.email or "").strip() or None,
            phone=(fields.phone or "").strip() or None,
        )
    if step == 4 and not fields.timeline:
        return replace(fields, timeline=DEFAULT_TIMELINE)
    return fields


# ── Reducer ──────────────────────────────────────────────────

def reduce(state: WizardState, event: Event) -> Transition:
    if isinstance(event, Advance):
        return _advance(state, event.delta)

    if isinstance(event, SelectProjectType):
        new = _set_field(state, "project_type", event.project_type)
        if new is state:
            return Transition(state)
        return Transition(new, (_step_event(1, project_type=event.project_type),))

    if isinstance(event, SelectMaterial):
        return Transition(_set_field(state, "material", event.material))
    if isinstance(event, SelectSize):
        return Transition(_set_field(state, "size", event.size))
    if isinstance(event, SelectColor):
        return Transition(_set_field(state, "color", event.color))
    if isinstance(event, SetField):
        return Transition(_set_field(state, event.name, event.value))

    if isinstance(event, AttachModelFile):
        return Transition(_attach_model(state, event.upload))
    if isinstance(event, AttachReferenceImages):
        return Transition(_attach_images(state, tuple(event.images)))
    if isinstance(event, AcceptTerms):
        return Transition(replace(
            state, terms_accepted=event.accepted, errors=_without(state.errors, "terms"),
        ))

    if isinstance(event, RestoreDraft):
        return Transition(restore_from_draft(state, event.draft))
    if isinstance(event, PrefillIdentity):
        return Transition(_prefill(state, event.name, event.email))
    if isinstance(event, ShowNotice):
        return Transition(replace(state, notice=event.message))
    if isinstance(event, DraftPersisted):
        if state.draft_id == event.draft_id:
            return Transition(state)
        return Transition(replace(state, draft_id=event.draft_id))

    if isinstance(event, RequestReset):
        return Transition(replace(state, confirming_reset=True))
    if isinstance(event, CancelReset):
        return Transition(replace(state, confirming_reset=False))
    if isinstance(event, ConfirmReset):
        if not state.confirming_reset:
            return Transition(state)
        return Transition(replace(state, confirming_reset=False), (ResetDraft(),))

    if isinstance(event, RequestSubmit):
        return _request_submit(state)
    if isinstance(event, SubmissionSucceeded):
        return _submitted(state, event.quote_id)
    if isinstance(event, SubmissionFailed):
        return Transition(replace(state, status=EDITING, form_error=event.message))

    raise TypeError(f"Unhandled wizard event: {event!r}")


def _advance(state: WizardState, delta: int) -> Transition:
    if state.status != EDITING or delta == 0:
        return Transition(state)

    if delta < 0:
        return Transition(replace(
            state, step=_clamp(state.step + delta), errors={}, focus=None, form_error=None,
        ))

    if state.is_terminal_step:
        return Transition(state)

    errors = step_errors(state.fields, state.step)
    if errors:
        return Transition(replace(state, errors=errors, focus=first_invalid(errors)))

    fields = _collect_step(state.fields, state.step)
    new_step = _clamp(state.step + 1)
    furthest = max(state.furthest_step, new_step)
    new = replace(
        state, fields=fields, step=new_step, furthest_step=furthest,
        errors={}, focus=None, notice=None,
    )
    if new.is_terminal_step:
        new = _with_review(new)

    effects = (
        PersistDraft(fields=fields, step=furthest, draft_id=state.draft_id),
        _step_event(new_step, project_type=fields.project_type or ""),
    )
    return Transition(new, effects)


def _attach_model(state: WizardState, upload: UploadedFile | None) -> WizardState:
    errors = _without(state.errors, "model_file")
    if upload is None:
        state = replace(state, model_file=None, errors=errors)
    else:
        message = model_file_error(upload)
        if message:
            # rejected files are not kept
            state = replace(
                state, model_file=None, errors={**errors, "model_file": message},
                focus="model_file",
            )
        else:
            state = replace(state, model_file=upload, errors=errors)
    return _with_review(state) if state.review is not None else state


def _attach_images(state: WizardState, images: tuple[UploadedFile, ...]) -> WizardState:
    errors = _without(state.errors, "reference_images")
    message = reference_images_error(images)
    if message:
        state = replace(
            state, reference_images=(), errors={**errors, "reference_images": message},
            focus="reference_images",
        )
    else:
        state = replace(state, reference_images=images, errors=errors)
    return _with_review(state) if state.review is not None else state


def restore_from_draft(state: WizardState, draft) -> WizardState:
    """Hydrate from a stored draft exactly as if each field had been selected.

    Setter events are folded through the reducer so selection state and the
    price estimate come out identical to manual entry; their effects
    (analytics) are discarded.
    """
    events = [
        SelectProjectType(draft.project_type),
        SelectMaterial(draft.material),
        SelectSize(draft.size),
        SelectColor(draft.color),
    ]
    events += [
        SetField(name, getattr(draft, name))
        for name in FIELD_NAMES
        if name not in ("project_type", "material", "size", "color")
    ]
    restored = replace(WizardState(), notice=state.notice)
    for event in events:
        restored = reduce(restored, event).state

    step = _clamp(draft.current_step or 1)
    restored = replace(restored, step=step, furthest_step=step, draft_id=draft.id, errors={})
    if restored.is_terminal_step:
        restored = _with_review(restored)
    return restored


def _prefill(state: WizardState, name: str | None, email: str | None) -> WizardState:
    """Identity values only fill fields that are still empty."""
    updates = {}
    if name and not state.fields.name:
        updates["name"] = name
    if email and not state.fields.email:
        updates["email"] = email
    if not updates:
        return state
    return replace(state, fields=replace(state.fields, **updates))


def _request_submit(state: WizardState) -> Transition:
    if state.status != EDITING or not state.is_terminal_step:
        return Transition(state)
    errors = submission_errors(state)
    if errors:
        return Transition(replace(
            state, errors=errors, focus=first_invalid(errors), form_error=None,
        ))
    return Transition(
        replace(state, status=SUBMITTING, errors={}, focus=None, form_error=None),
        (BeginSubmission(),),
    )


def _submitted(state: WizardState, quote_id: str) -> Transition:
    fields = state.fields
    new = replace(
        state, status=SUBMITTED, quote_id=quote_id, notice=SUCCESS_MESSAGE, form_error=None,
    )
    lead = TrackEvent("generate_lead", {
        "currency": "USD",
        "value": LEAD_VALUE,
        "lead_source": "custom_order",
        "project_type": fields.project_type or "unknown",
        "has_model_file": state.model_file is not None,
        "timeline": fields.timeline or DEFAULT_TIMELINE,
    })
    return Transition(new, (lead,))

"""Immutable wizard state.

`WizardFields` mirrors the persisted draft fields. Everything else on
`WizardState` is view state that never reaches the draft store: errors,
the review summary, attached files and the terms checkbox.
"""

from dataclasses import asdict, dataclass, field

from app.schemas.quote_draft import TOTAL_STEPS
from app.wizard.files import UploadedFile
from app.wizard.pricing import PriceEstimate
from app.wizard.review import ReviewSummary

STEP_NAMES = {
    1: "project_type",
    2: "contact_info",
    3: "model_details",
    4: "customization",
    5: "review_submit",
}

# status values
EDITING = "editing"
SUBMITTING = "submitting"
SUBMITTED = "submitted"


@dataclass(frozen=True)
class WizardFields:
    project_type: str | None = None
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    material: str | None = None
    size: str | None = None
    color: str | None = None
    budget: str | None = None
    timeline: str | None = None
    description: str | None = None
    finishing: bool = False
    painting: bool = False
    rush: bool = False
    need_design: bool = False

    def as_dict(self) -> dict:
        return asdict(self)


FIELD_NAMES = tuple(WizardFields.__dataclass_fields__)
OPTION_FIELDS = ("finishing", "painting", "rush", "need_design")


@dataclass(frozen=True)
class WizardState:
    step: int = 1
    # furthest step validated into; what gets persisted as current_step
    furthest_step: int = 1
    fields: WizardFields = field(default_factory=WizardFields)
    errors: dict[str, str] = field(default_factory=dict)
    focus: str | None = None
    draft_id: str | None = None
    price_estimate: PriceEstimate | None = None
    review: ReviewSummary | None = None
    model_file: UploadedFile | None = None
    reference_images: tuple[UploadedFile, ...] = ()
    terms_accepted: bool = False
    confirming_reset: bool = False
    status: str = EDITING
    notice: str | None = None
    form_error: str | None = None
    quote_id: str | None = None

    @property
    def is_terminal_step(self) -> bool:
        return self.step == TOTAL_STEPS

"""Read-only summary shown on the Review & Submit step."""

from dataclasses import dataclass

from app.wizard.catalog import (
    COLORS,
    DEFAULT_TIMELINE,
    MATERIALS,
    OPTION_LABELS,
    PROJECT_TYPES,
    SIZES,
    TIMELINES,
)
from app.wizard.files import UploadedFile
from app.wizard.pricing import estimate_price

NOT_SELECTED = "Not selected"
NOT_PROVIDED = "Not provided"


@dataclass(frozen=True)
class ReviewSummary:
    project_type: str
    material: str
    size: str
    color: str
    timeline: str
    name: str
    email: str
    phone: str | None
    options: tuple[str, ...]
    model_file: str | None
    reference_images: str | None
    description: str | None
    price_estimate: str | None

    @property
    def options_text(self) -> str:
        return ", ".join(self.options) if self.options else "None"


def _label(names: dict[str, str], value: str | None) -> str:
    if not value:
        return NOT_SELECTED
    return names.get(value, value)


def _images_text(count: int) -> str | None:
    if not count:
        return None
    return f"{count} image{'s' if count > 1 else ''} uploaded"


def build_review(
    fields,
    model_file: UploadedFile | None = None,
    reference_images: tuple[UploadedFile, ...] = (),
) -> ReviewSummary:
    """Summarise accumulated wizard fields with display names."""
    estimate = estimate_price(fields.material, fields.size)
    return ReviewSummary(
        project_type=_label(PROJECT_TYPES, fields.project_type),
        material=_label(MATERIALS, fields.material),
        size=_label(SIZES, fields.size),
        color=_label(COLORS, fields.color),
        timeline=TIMELINES[fields.timeline if fields.timeline in TIMELINES else DEFAULT_TIMELINE],
        name=fields.name or NOT_PROVIDED,
        email=fields.email or NOT_PROVIDED,
        phone=fields.phone or None,
        options=tuple(label for key, label in OPTION_LABELS.items() if getattr(fields, key)),
        model_file=model_file.filename if model_file else None,
        reference_images=_images_text(len(reference_images)),
        description=fields.description or None,
        price_estimate=estimate.display() if estimate else None,
    )

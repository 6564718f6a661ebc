"""Pydantic schemas for quote drafts and the three-way lookup result.

`DraftFields` is the flat field set shared by the upsert body, the stored
snapshot and the wizard's persistence payload. Blank strings arrive from
forms all the time, so they are normalised to None on the way in.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Union

from pydantic import BaseModel, Field, field_validator

from app.schemas.validators import blank_to_none, validate_choice
from app.wizard.catalog import COLORS, MATERIALS, PROJECT_TYPES, SIZES, TIMELINES

TOTAL_STEPS = 5

DRAFT_FIELD_NAMES = (
    "project_type", "name", "email", "phone",
    "material", "size", "color", "budget", "timeline", "description",
    "finishing", "painting", "rush", "need_design",
)


class _DraftFieldsBase(BaseModel):
    project_type: str | None = Field(None, max_length=50)
    name: str | None = Field(None, max_length=200)
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)
    material: str | None = Field(None, max_length=20)
    size: str | None = Field(None, max_length=20)
    color: str | None = Field(None, max_length=20)
    budget: str | None = Field(None, max_length=50)
    timeline: str | None = Field(None, max_length=20)
    description: str | None = Field(None, max_length=5000)
    finishing: bool = False
    painting: bool = False
    rush: bool = False
    need_design: bool = False

    @field_validator(
        "project_type", "name", "email", "phone", "material", "size",
        "color", "budget", "timeline", "description",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, v):
        return blank_to_none(v)


class DraftFields(_DraftFieldsBase):
    """Draft fields as accepted from clients (option fields checked against the catalog)."""

    @field_validator("project_type")
    @classmethod
    def _project_type(cls, v):
        return validate_choice(v, PROJECT_TYPES, "project type")

    @field_validator("material")
    @classmethod
    def _material(cls, v):
        return validate_choice(v, MATERIALS, "material")

    @field_validator("size")
    @classmethod
    def _size(cls, v):
        return validate_choice(v, SIZES, "size")

    @field_validator("color")
    @classmethod
    def _color(cls, v):
        return validate_choice(v, COLORS, "color")

    @field_validator("timeline")
    @classmethod
    def _timeline(cls, v):
        return validate_choice(v, TIMELINES, "timeline")


class DraftUpsert(DraftFields):
    """POST /api/custom/draft body.

    `step` is the furthest step the wizard has validated into. `draft_id`
    is sent after resuming from a recovery link so the resumed draft is
    adopted by the current session.
    """
    step: int = Field(..., ge=1, le=TOTAL_STEPS)
    draft_id: str | None = Field(None, max_length=36)


class DraftSnapshot(_DraftFieldsBase):
    """A stored draft. Option fields are not re-checked against the catalog."""
    id: str
    status: str
    current_step: int
    quote_request_id: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class IdentityOut(BaseModel):
    name: str | None = None
    email: str | None = None


class DraftEnvelope(BaseModel):
    draft: DraftSnapshot | None = None
    user: IdentityOut | None = None


class DraftSaved(BaseModel):
    draft_id: str
    current_step: int
    applied: bool


class DraftDeleted(BaseModel):
    deleted: bool


class DraftCompleted(BaseModel):
    completed: bool


# ── Fetch-by-id result ───────────────────────────────────────

@dataclass(frozen=True)
class DraftFound:
    draft: DraftSnapshot


@dataclass(frozen=True)
class DraftGone:
    """The draft existed and has been submitted."""
    draft_id: str


@dataclass(frozen=True)
class DraftNotFound:
    draft_id: str


DraftLookup = Union[DraftFound, DraftGone, DraftNotFound]

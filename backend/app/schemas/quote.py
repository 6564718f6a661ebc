"""Quote submission payload (the `data` part of POST /custom/quote) and receipt."""

from pydantic import BaseModel, Field, field_validator

from app.schemas.quote_draft import DraftFields
from app.schemas.validators import validate_email


class QuoteSubmission(DraftFields):
    """Structured fields of a final submission.

    Same field set as a draft, but with the submit-time requirements:
    contact details, material and size must be present and terms accepted.
    """
    draft_id: str | None = Field(None, max_length=36)
    terms_accepted: bool = False

    project_type: str = Field(..., max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., max_length=255)
    material: str = Field(..., max_length=20)
    size: str = Field(..., max_length=20)

    @field_validator("email")
    @classmethod
    def _email(cls, v):
        return validate_email(v)

    @field_validator("terms_accepted")
    @classmethod
    def _terms(cls, v):
        if not v:
            raise ValueError("Please accept the terms and conditions")
        return v


class QuoteReceipt(BaseModel):
    quote_id: str
    draft_id: str | None = None
    # True when this submission replayed an already-completed draft
    duplicate: bool = False

"""Aggregate model imports for Alembic auto-detection."""

from app.models.quote_draft import CustomQuoteDraft, DraftStatus  # noqa: F401
from app.models.quote_request import QuoteFile, QuoteRequest  # noqa: F401

"""In-progress custom quote requests, one active row per browsing session.

A draft is written on every forward step of the wizard and is addressable
two ways: by the anonymous session that owns it, and by its id (the resume
token carried in recovery links). Uploaded files are never stored here.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.utils.clock import utcnow


class DraftStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


# Prefix given to session keys of drafts detached from their session
# (an adopted resume link replaced them). They stay resumable by id.
DETACHED_SESSION_PREFIX = "abandoned:"

_ACTIVE_ONLY = text("status = 'active'")


class CustomQuoteDraft(Base):
    __tablename__ = "custom_quote_drafts"
    __table_args__ = (
        # At most one active draft per session.
        Index(
            "uq_custom_quote_drafts_active_session",
            "session_key",
            unique=True,
            sqlite_where=_ACTIVE_ONLY,
            postgresql_where=_ACTIVE_ONLY,
        ),
        Index(
            "ix_custom_quote_drafts_recovery",
            "status", "recovery_email_sent_at", "updated_at",
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    session_key: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DraftStatus.ACTIVE.value
    )
    current_step: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # ── Step 1 ─────────────────────────────────────────────────
    project_type: Mapped[str | None] = mapped_column(String(50))

    # ── Step 2: lead capture ───────────────────────────────────
    name: Mapped[str | None] = mapped_column(String(200))
    email: Mapped[str | None] = mapped_column(String(255), index=True)
    phone: Mapped[str | None] = mapped_column(String(50))

    # ── Step 4: customization ──────────────────────────────────
    material: Mapped[str | None] = mapped_column(String(20))
    size: Mapped[str | None] = mapped_column(String(20))
    color: Mapped[str | None] = mapped_column(String(20))
    budget: Mapped[str | None] = mapped_column(String(50))
    timeline: Mapped[str | None] = mapped_column(String(20))
    description: Mapped[str | None] = mapped_column(Text)

    # ── Options ────────────────────────────────────────────────
    finishing: Mapped[bool] = mapped_column(Boolean, default=False)
    painting: Mapped[bool] = mapped_column(Boolean, default=False)
    rush: Mapped[bool] = mapped_column(Boolean, default=False)
    need_design: Mapped[bool] = mapped_column(Boolean, default=False)

    # ── Lifecycle ──────────────────────────────────────────────
    quote_request_id: Mapped[str | None] = mapped_column(String(36), index=True)
    recovery_email_sent_at: Mapped[datetime | None] = mapped_column(DateTime)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )

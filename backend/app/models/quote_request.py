"""Submitted custom quote requests and their uploaded files.

A QuoteRequest is the durable record created by the quote-intake endpoint.
When it came from a wizard draft, `draft_id` links back to it and the draft
is completed in the same transaction.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.utils.clock import utcnow


class QuoteRequest(Base):
    __tablename__ = "quote_requests"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    draft_id: Mapped[str | None] = mapped_column(String(36), unique=True)
    session_key: Mapped[str | None] = mapped_column(String(128))

    project_type: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    phone: Mapped[str | None] = mapped_column(String(50))

    material: Mapped[str] = mapped_column(String(20), nullable=False)
    size: Mapped[str] = mapped_column(String(20), nullable=False)
    color: Mapped[str | None] = mapped_column(String(20))
    budget: Mapped[str | None] = mapped_column(String(50))
    timeline: Mapped[str] = mapped_column(String(20), nullable=False, default="standard")
    description: Mapped[str | None] = mapped_column(Text)

    finishing: Mapped[bool] = mapped_column(Boolean, default=False)
    painting: Mapped[bool] = mapped_column(Boolean, default=False)
    rush: Mapped[bool] = mapped_column(Boolean, default=False)
    need_design: Mapped[bool] = mapped_column(Boolean, default=False)

    # reCAPTCHA v3 score; null when verification was not configured
    verification_score: Mapped[float | None] = mapped_column()
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="new")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    files: Mapped[list["QuoteFile"]] = relationship(
        back_populates="quote_request", cascade="all, delete-orphan", lazy="selectin"
    )


class QuoteFile(Base):
    __tablename__ = "quote_files"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    quote_request_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("quote_requests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # model | reference_image
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    original_filename: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(500), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    mime_type: Mapped[str | None] = mapped_column(String(100))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    quote_request: Mapped[QuoteRequest] = relationship(back_populates="files")

"""Quote drafts, quote requests and their files.

Revision ID: 0001
Revises: (none)
Create Date: 2026-10-17

Run with:
    alembic upgrade head
"""

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa

_ACTIVE_ONLY = sa.text("status = 'active'")


def upgrade() -> None:
    op.create_table(
        "custom_quote_drafts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("session_key", sa.String(128), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("current_step", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("project_type", sa.String(50), nullable=True),
        sa.Column("name", sa.String(200), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("material", sa.String(20), nullable=True),
        sa.Column("size", sa.String(20), nullable=True),
        sa.Column("color", sa.String(20), nullable=True),
        sa.Column("budget", sa.String(50), nullable=True),
        sa.Column("timeline", sa.String(20), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("finishing", sa.Boolean(), server_default=sa.false()),
        sa.Column("painting", sa.Boolean(), server_default=sa.false()),
        sa.Column("rush", sa.Boolean(), server_default=sa.false()),
        sa.Column("need_design", sa.Boolean(), server_default=sa.false()),
        sa.Column("quote_request_id", sa.String(36), nullable=True),
        sa.Column("recovery_email_sent_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_custom_quote_drafts_session_key", "custom_quote_drafts", ["session_key"])
    op.create_index("ix_custom_quote_drafts_email", "custom_quote_drafts", ["email"])
    op.create_index(
        "ix_custom_quote_drafts_quote_request_id", "custom_quote_drafts", ["quote_request_id"]
    )
    op.create_index(
        "ix_custom_quote_drafts_recovery",
        "custom_quote_drafts",
        ["status", "recovery_email_sent_at", "updated_at"],
    )
    # One active draft per session
    op.create_index(
        "uq_custom_quote_drafts_active_session",
        "custom_quote_drafts",
        ["session_key"],
        unique=True,
        postgresql_where=_ACTIVE_ONLY,
        sqlite_where=_ACTIVE_ONLY,
    )

    op.create_table(
        "quote_requests",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("draft_id", sa.String(36), nullable=True, unique=True),
        sa.Column("session_key", sa.String(128), nullable=True),
        sa.Column("project_type", sa.String(50), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("material", sa.String(20), nullable=False),
        sa.Column("size", sa.String(20), nullable=False),
        sa.Column("color", sa.String(20), nullable=True),
        sa.Column("budget", sa.String(50), nullable=True),
        sa.Column("timeline", sa.String(20), nullable=False, server_default="standard"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("finishing", sa.Boolean(), server_default=sa.false()),
        sa.Column("painting", sa.Boolean(), server_default=sa.false()),
        sa.Column("rush", sa.Boolean(), server_default=sa.false()),
        sa.Column("need_design", sa.Boolean(), server_default=sa.false()),
        sa.Column("verification_score", sa.Float(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="new"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_quote_requests_email", "quote_requests", ["email"])

    op.create_table(
        "quote_files",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "quote_request_id", sa.String(36),
            sa.ForeignKey("quote_requests.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("filename", sa.String(255), nullable=False),
        sa.Column("original_filename", sa.String(255), nullable=False),
        sa.Column("file_path", sa.String(500), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("mime_type", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_quote_files_quote_request_id", "quote_files", ["quote_request_id"])


def downgrade() -> None:
    op.drop_table("quote_files")
    op.drop_table("quote_requests")
    op.drop_index("uq_custom_quote_drafts_active_session", table_name="custom_quote_drafts")
    op.drop_table("custom_quote_drafts")

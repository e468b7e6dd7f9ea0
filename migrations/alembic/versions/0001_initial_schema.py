"""Initial schema - users, resumes, resume_enhancements, user_api_keys

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates the resume enhancement schema. resume_enhancements.status moves
processing -> completed | error exactly once; the partial index on
processing rows keeps the stale-enhancement sweeper cheap.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Enable pgcrypto extension for gen_random_uuid()
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    # ==========================================================================
    # users table (id is the Supabase auth subject)
    # ==========================================================================
    op.create_table(
        "users",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    # ==========================================================================
    # resumes table
    # ==========================================================================
    op.create_table(
        "resumes",
        sa.Column(
            "id",
            sa.UUID(),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("original_name", sa.Text(), nullable=False),
        sa.Column("file_type", sa.Text(), nullable=False),
        sa.Column("original_content", sa.Text(), server_default="", nullable=False),
        sa.Column("status", sa.Text(), server_default="uploaded", nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_resumes_user_created", "resumes", ["user_id", "created_at"])

    # ==========================================================================
    # resume_enhancements table
    # ==========================================================================
    op.create_table(
        "resume_enhancements",
        sa.Column(
            "id",
            sa.UUID(),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("resume_id", sa.UUID(), nullable=False),
        sa.Column("enhancement_type", sa.Text(), nullable=False),
        sa.Column("llm_provider", sa.Text(), nullable=False),
        sa.Column("llm_model", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), server_default="processing", nullable=False),
        sa.Column("enhanced_content", sa.Text(), server_default="", nullable=False),
        sa.Column("enhancement_notes", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["resume_id"], ["resumes.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "status IN ('processing', 'completed', 'error')",
            name="ck_resume_enhancements_status",
        ),
        sa.CheckConstraint(
            "enhancement_type IN ('skills_certifications', 'project_experience', 'client_quality')",
            name="ck_resume_enhancements_type",
        ),
    )
    op.create_index(
        "ix_resume_enhancements_status_created",
        "resume_enhancements",
        ["status", "created_at"],
    )
    op.create_index(
        "ix_resume_enhancements_resume",
        "resume_enhancements",
        ["resume_id", "created_at"],
    )
    op.execute(
        """
        CREATE INDEX ix_resume_enhancements_processing
        ON resume_enhancements (created_at)
        WHERE status = 'processing'
        """
    )

    # ==========================================================================
    # user_api_keys table
    # ==========================================================================
    op.create_table(
        "user_api_keys",
        sa.Column(
            "id",
            sa.UUID(),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("provider", sa.Text(), nullable=False),
        sa.Column("key_name", sa.Text(), nullable=False),
        sa.Column("encrypted_key", sa.LargeBinary(), nullable=False),
        sa.Column("key_nonce", sa.LargeBinary(), nullable=False),
        sa.Column("master_key_version", sa.Integer(), server_default="1", nullable=False),
        sa.Column("key_fingerprint", sa.Text(), nullable=False),
        sa.Column("default_model", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "provider IN ('openai', 'anthropic', 'google')",
            name="ck_user_api_keys_provider",
        ),
        sa.CheckConstraint("master_key_version > 0", name="ck_user_api_keys_master_key_version"),
        sa.UniqueConstraint("user_id", "provider", name="uix_user_api_keys_user_provider"),
    )


def downgrade() -> None:
    op.drop_table("user_api_keys")
    op.execute("DROP INDEX IF EXISTS ix_resume_enhancements_processing")
    op.drop_index("ix_resume_enhancements_resume", table_name="resume_enhancements")
    op.drop_index("ix_resume_enhancements_status_created", table_name="resume_enhancements")
    op.drop_table("resume_enhancements")
    op.drop_index("ix_resumes_user_created", table_name="resumes")
    op.drop_table("resumes")
    op.drop_table("users")

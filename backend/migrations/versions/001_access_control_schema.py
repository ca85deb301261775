"""Create access-control tables: users, teams, user_teams, tokens, audit log.

Revision ID: 001_access_control_schema
Revises:
Create Date: 2026-10-19

- users: accounts with portal role (GP / LP).
- teams, user_teams: fund-manager organizations and memberships; the admin
  lookup reads ACTIVE OWNER / ADMIN / SUPER_ADMIN memberships.
- verification_tokens: single-use admin magic link tokens.
- magic_link_callbacks: pending visitor sign-in links (one per e-mail).
- audit_logs: immutable security events (rate limit violations).
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "001_access_control_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    # =========================================================================
    # Users
    # =========================================================================
    op.create_table(
        "users",
        sa.Column(
            "id",
            UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("email_verified", sa.DateTime(timezone=True), nullable=True),
        sa.Column("image", sa.Text(), nullable=True),
        sa.Column("role", sa.String(2), server_default="LP", nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint("role IN ('GP', 'LP')", name="ck_users_role"),
    )
    # Admin and visitor lookups compare lower(email)
    op.create_index("idx_users_email_lower", "users", [sa.text("lower(email)")])

    # =========================================================================
    # Teams and memberships
    # =========================================================================
    op.create_table(
        "teams",
        sa.Column(
            "id",
            UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "user_teams",
        sa.Column(
            "id",
            UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column(
            "user_id",
            UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "team_id",
            UUID(as_uuid=True),
            sa.ForeignKey("teams.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("role", sa.String(20), server_default="MEMBER", nullable=False),
        sa.Column("status", sa.String(20), server_default="ACTIVE", nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "team_id", name="uq_user_teams_user_team"),
    )
    op.create_index("idx_user_teams_user_id", "user_teams", ["user_id"])

    # =========================================================================
    # Admin magic link tokens
    # =========================================================================
    op.create_table(
        "verification_tokens",
        sa.Column("token", sa.String(255), primary_key=True),
        sa.Column("identifier", sa.String(320), nullable=False),
        sa.Column("expires", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "idx_verification_tokens_identifier", "verification_tokens", ["identifier"]
    )
    op.create_index(
        "idx_verification_tokens_expires", "verification_tokens", ["expires"]
    )

    # =========================================================================
    # Visitor sign-in links
    # =========================================================================
    op.create_table(
        "magic_link_callbacks",
        sa.Column("token", sa.String(64), primary_key=True),
        sa.Column("identifier", sa.String(255), nullable=False),
        sa.Column("callback_url", sa.Text(), nullable=False),
        sa.Column("expires", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "idx_magic_link_callbacks_identifier",
        "magic_link_callbacks",
        ["identifier"],
    )

    # =========================================================================
    # Audit log (insert-only)
    # =========================================================================
    op.create_table(
        "audit_logs",
        sa.Column(
            "id",
            UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column("severity", sa.String(16), nullable=False),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("resource", sa.Text(), nullable=True),
        sa.Column(
            "details",
            JSONB(),
            server_default=sa.text("'{}'::jsonb"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("idx_audit_logs_event_type", "audit_logs", ["event_type"])
    op.create_index("idx_audit_logs_created_at", "audit_logs", ["created_at"])


def downgrade() -> None:
    # Reverse order of creation
    op.drop_index("idx_audit_logs_created_at", table_name="audit_logs")
    op.drop_index("idx_audit_logs_event_type", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index(
        "idx_magic_link_callbacks_identifier", table_name="magic_link_callbacks"
    )
    op.drop_table("magic_link_callbacks")

    op.drop_index("idx_verification_tokens_expires", table_name="verification_tokens")
    op.drop_index(
        "idx_verification_tokens_identifier", table_name="verification_tokens"
    )
    op.drop_table("verification_tokens")

    op.drop_index("idx_user_teams_user_id", table_name="user_teams")
    op.drop_table("user_teams")
    op.drop_table("teams")

    op.drop_index("idx_users_email_lower", table_name="users")
    op.drop_table("users")

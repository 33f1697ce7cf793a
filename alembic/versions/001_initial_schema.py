"""Initial schema — the five CampusConnect tables.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── 1. users ────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password", sa.Text, nullable=False, comment="bcrypt hash"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("age", sa.Integer, nullable=False),
        sa.Column("college", sa.String(255), nullable=False),
        sa.Column("major", sa.String(255), nullable=True),
        sa.Column("year", sa.String(20), nullable=True),
        sa.Column("bio", sa.Text, nullable=True),
        sa.Column(
            "interests",
            postgresql.JSONB,
            server_default=sa.text("'[]'::jsonb"),
            nullable=False,
        ),
        sa.Column(
            "profile_photos",
            postgresql.JSONB,
            server_default=sa.text("'[]'::jsonb"),
            nullable=False,
            comment="Array of photo URLs",
        ),
        sa.Column(
            "swiped_left",
            postgresql.JSONB,
            server_default=sa.text("'[]'::jsonb"),
            nullable=False,
            comment="User ids passed on",
        ),
        sa.Column(
            "swiped_right",
            postgresql.JSONB,
            server_default=sa.text("'[]'::jsonb"),
            nullable=False,
            comment="User ids liked",
        ),
        sa.Column(
            "is_profile_complete",
            sa.Boolean,
            server_default="false",
            nullable=False,
        ),
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
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_college", "users", ["college"])

    # ── 2. matches ──────────────────────────────────────────────────
    op.create_table(
        "matches",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "user1_id",
            sa.Integer,
            sa.ForeignKey("users.id"),
            nullable=False,
            comment="User whose like completed the pair",
        ),
        sa.Column(
            "user2_id",
            sa.Integer,
            sa.ForeignKey("users.id"),
            nullable=False,
        ),
        sa.Column(
            "pair_key",
            sa.String(64),
            nullable=False,
            comment="min(user):max(user)",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("pair_key", name="uq_match_pair"),
    )
    op.create_index("ix_matches_user1_id", "matches", ["user1_id"])
    op.create_index("ix_matches_user2_id", "matches", ["user2_id"])

    # ── 3. messages ─────────────────────────────────────────────────
    op.create_table(
        "messages",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "match_id",
            sa.Integer,
            sa.ForeignKey("matches.id"),
            nullable=False,
        ),
        sa.Column(
            "sender_id",
            sa.Integer,
            sa.ForeignKey("users.id"),
            nullable=False,
        ),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_messages_match_id", "messages", ["match_id"])

    # ── 4. events ───────────────────────────────────────────────────
    op.create_table(
        "events",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column("datetime", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_by",
            sa.Integer,
            sa.ForeignKey("users.id"),
            nullable=False,
        ),
        sa.Column(
            "attendees",
            postgresql.JSONB,
            server_default=sa.text("'[]'::jsonb"),
            nullable=False,
            comment="Attending user ids",
        ),
        sa.Column("college", sa.String(255), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_events_datetime", "events", ["datetime"])
    op.create_index("ix_events_college", "events", ["college"])

    # ── 5. compliments ──────────────────────────────────────────────
    op.create_table(
        "compliments",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "from_user_id",
            sa.Integer,
            sa.ForeignKey("users.id"),
            nullable=False,
        ),
        sa.Column(
            "to_user_id",
            sa.Integer,
            sa.ForeignKey("users.id"),
            nullable=False,
        ),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column(
            "is_revealed",
            sa.Boolean,
            server_default="false",
            nullable=False,
            comment="Expose the sender to the recipient",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_compliments_to_user_id", "compliments", ["to_user_id"])


def downgrade() -> None:
    # Drop in reverse order (children / dependents first).
    op.drop_index("ix_compliments_to_user_id", table_name="compliments")
    op.drop_table("compliments")

    op.drop_index("ix_events_college", table_name="events")
    op.drop_index("ix_events_datetime", table_name="events")
    op.drop_table("events")

    op.drop_index("ix_messages_match_id", table_name="messages")
    op.drop_table("messages")

    op.drop_index("ix_matches_user2_id", table_name="matches")
    op.drop_index("ix_matches_user1_id", table_name="matches")
    op.drop_table("matches")

    op.drop_index("ix_users_college", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

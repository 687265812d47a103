"""Initial schema: catalog, users, price reports, votes, reputation, badges, inbox

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-17 00:00:00.000000

Written by hand so constraint and index names match the ORM models exactly.
"""
from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

from alembic import op

revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("now()"),
    )


def upgrade() -> None:
    # --- catalog ---
    op.create_table(
        "regions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("country", sa.Text(), nullable=False),
        _created_at(),
    )

    op.create_table(
        "markets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column(
            "region_id",
            sa.Integer(),
            sa.ForeignKey("regions.id", name="fk_markets_region_id_regions"),
            nullable=False,
        ),
        sa.Column("latitude", sa.Numeric(9, 6), nullable=True),
        sa.Column("longitude", sa.Numeric(9, 6), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
    )
    op.create_index("ix_markets_region_id", "markets", ["region_id"])
    op.create_index("ix_markets_is_active", "markets", ["is_active"])

    op.create_table(
        "items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("slug", sa.Text(), nullable=False, unique=True),
        sa.Column("category", sa.Text(), nullable=False, server_default="uncategorized"),
        sa.Column("default_unit", sa.Text(), nullable=False, server_default="unit"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("currency", sa.String(3), nullable=False, server_default="MYR"),
        _created_at(),
    )
    op.create_index("ix_items_name", "items", ["name"])
    op.create_index("ix_items_category", "items", ["category"])
    op.create_index("ix_items_is_active", "items", ["is_active"])

    op.create_table(
        "item_variants",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "item_id",
            sa.Integer(),
            sa.ForeignKey("items.id", name="fk_item_variants_item_id_items"),
            nullable=False,
        ),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("sku", sa.Text(), nullable=False, unique=True),
        _created_at(),
    )
    op.create_index("ix_item_variants_item_id", "item_variants", ["item_id"])

    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("name", sa.Text(), nullable=True),
        sa.Column("api_key_hash", sa.String(255), nullable=True, unique=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="user"),
        sa.Column("reputation", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("report_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("verified_report_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("onboarding_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index("ix_users_role", "users", ["role"])

    # --- price reports ---
    op.create_table(
        "price_reports",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "item_id",
            sa.Integer(),
            sa.ForeignKey("items.id", name="fk_price_reports_item_id_items"),
            nullable=False,
        ),
        sa.Column(
            "variant_id",
            sa.Integer(),
            sa.ForeignKey("item_variants.id", name="fk_price_reports_variant_id_item_variants"),
            nullable=True,
        ),
        sa.Column(
            "region_id",
            sa.Integer(),
            sa.ForeignKey("regions.id", name="fk_price_reports_region_id_regions"),
            nullable=False,
        ),
        sa.Column(
            "market_id",
            sa.Integer(),
            sa.ForeignKey("markets.id", name="fk_price_reports_market_id_markets"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", name="fk_price_reports_user_id_users"),
            nullable=True,
        ),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="MYR"),
        sa.Column(
            "reported_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column(
            "verified_by",
            sa.Integer(),
            sa.ForeignKey("users.id", name="fk_price_reports_verified_by_users"),
            nullable=True,
        ),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index(
        "ix_price_reports_item_region_reported",
        "price_reports",
        ["item_id", "region_id", "reported_at"],
    )
    op.create_index(
        "ix_price_reports_market_item_reported",
        "price_reports",
        ["market_id", "item_id", "reported_at"],
    )
    op.create_index("ix_price_reports_user_created", "price_reports", ["user_id", "created_at"])
    op.create_index("ix_price_reports_status", "price_reports", ["status"])

    op.create_table(
        "report_votes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "report_id",
            sa.Integer(),
            sa.ForeignKey("price_reports.id", name="fk_report_votes_report_id_price_reports"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", name="fk_report_votes_user_id_users"),
            nullable=False,
        ),
        sa.Column("is_helpful", sa.Boolean(), nullable=False),
        _created_at(),
        sa.UniqueConstraint("report_id", "user_id", name="uq_report_votes_report_id_user_id"),
    )
    op.create_index("ix_report_votes_report_id", "report_votes", ["report_id"])

    op.create_table(
        "report_comments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "report_id",
            sa.Integer(),
            sa.ForeignKey("price_reports.id", name="fk_report_comments_report_id_price_reports"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", name="fk_report_comments_user_id_users"),
            nullable=False,
        ),
        sa.Column("message", sa.Text(), nullable=False),
        _created_at(),
    )
    op.create_index("ix_report_comments_report_id", "report_comments", ["report_id"])
    op.create_index("ix_report_comments_user_id", "report_comments", ["user_id"])

    # --- reputation ---
    op.create_table(
        "user_reputation_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", name="fk_reputation_events_user_id_users"),
            nullable=False,
        ),
        sa.Column("delta", sa.Integer(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column(
            "report_id",
            sa.Integer(),
            sa.ForeignKey("price_reports.id", name="fk_reputation_events_report_id_price_reports"),
            nullable=True,
        ),
        _created_at(),
    )
    op.create_index("ix_reputation_events_user_id", "user_reputation_events", ["user_id"])
    op.create_index("ix_reputation_events_report_id", "user_reputation_events", ["report_id"])

    op.create_table(
        "badges",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text(), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
    )

    op.create_table(
        "user_badges",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", name="fk_user_badges_user_id_users"),
            nullable=False,
        ),
        sa.Column(
            "badge_id",
            sa.Integer(),
            sa.ForeignKey("badges.id", name="fk_user_badges_badge_id_badges"),
            nullable=False,
        ),
        sa.Column(
            "awarded_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.UniqueConstraint("user_id", "badge_id", name="uq_user_badges_user_id_badge_id"),
    )
    op.create_index("ix_user_badges_user_id", "user_badges", ["user_id"])

    # --- inbox and moderation ---
    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", name="fk_notifications_user_id_users"),
            nullable=False,
        ),
        sa.Column("type", sa.String(40), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("metadata", JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_user_read", "notifications", ["user_id", "is_read"])
    op.create_index("ix_notifications_created_at", "notifications", ["created_at"])

    op.create_table(
        "admin_audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "admin_id",
            sa.Integer(),
            sa.ForeignKey("users.id", name="fk_admin_audit_logs_admin_id_users"),
            nullable=False,
        ),
        sa.Column("action", sa.Text(), nullable=False),
        sa.Column("entity_type", sa.Text(), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=True),
        sa.Column("payload", JSONB(), nullable=True),
        _created_at(),
    )
    op.create_index(
        "ix_admin_audit_logs_admin_created", "admin_audit_logs", ["admin_id", "created_at"]
    )


def downgrade() -> None:
    op.drop_table("admin_audit_logs")
    op.drop_table("notifications")
    op.drop_table("user_badges")
    op.drop_table("badges")
    op.drop_table("user_reputation_events")
    op.drop_table("report_comments")
    op.drop_table("report_votes")
    op.drop_table("price_reports")
    op.drop_table("users")
    op.drop_table("item_variants")
    op.drop_table("items")
    op.drop_table("markets")
    op.drop_table("regions")

"""initial_schema

Revision ID: a1c4e07b92d3
Revises:
Create Date: 2026-10-19 10:12:41.208311

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "a1c4e07b92d3"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("telegram_id", sa.String(64), nullable=False),
        sa.Column("username", sa.String(255), nullable=True),
        sa.Column("first_name", sa.String(255), nullable=True),
        sa.Column("last_name", sa.String(255), nullable=True),
        sa.Column("currency", sa.String(8), nullable=False, server_default="USD"),
        sa.Column("language", sa.String(8), nullable=False, server_default="en"),
        sa.Column("notifications", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("tier", sa.String(16), nullable=False, server_default="free"),
        sa.Column("max_alerts", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "price_checks_per_minute", sa.Integer(), nullable=False, server_default="10"
        ),
        sa.Column("alerts_created", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "price_checks_this_minute", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column("last_price_check", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index("ix_users_telegram_id", "users", ["telegram_id"], unique=True)

    op.create_table(
        "items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("weapon_name", sa.String(128), nullable=False),
        sa.Column("weapon_type", sa.String(64), nullable=False),
        sa.Column("skin_name", sa.String(255), nullable=True),
        sa.Column("rarity", sa.String(64), nullable=False, server_default="Unknown"),
        sa.Column("rarity_definition", sa.String(255), nullable=True),
        sa.Column("rarity_color", sa.String(32), nullable=True),
        sa.Column("collection", sa.String(255), nullable=True),
        sa.Column("introduced_date", sa.Date(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index("ix_items_name", "items", ["name"], unique=True)
    op.create_index("ix_items_weapon_name", "items", ["weapon_name"])
    op.create_index("ix_items_weapon_type", "items", ["weapon_type"])

    op.create_table(
        "price_alerts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("item_name", sa.Text(), nullable=False),
        sa.Column(
            "item_id",
            sa.Integer(),
            sa.ForeignKey("items.id", ondelete="SET NULL"),
            nullable=True,
        ),
        # non-native enum: stored as varchar
        sa.Column("alert_type", sa.String(19), nullable=False, server_default="absolute"),
        sa.Column("target_price", sa.Float(), nullable=False),
        sa.Column("base_price", sa.Float(), nullable=True),
        sa.Column("percentage_threshold", sa.Float(), nullable=True),
        sa.Column("current_price", sa.Float(), nullable=True),
        sa.Column("currency", sa.String(8), nullable=False, server_default="USD"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("triggered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
    )
    op.create_index("ix_price_alerts_user_id", "price_alerts", ["user_id"])
    op.create_index("ix_price_alerts_item_name", "price_alerts", ["item_name"])
    op.create_index(
        "ix_price_alerts_active_user", "price_alerts", ["is_active", "user_id"]
    )

    op.create_table(
        "price_cache",
        sa.Column("item_name", sa.Text(), primary_key=True),
        sa.Column("price", sa.Float(), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(8), nullable=False),
        sa.Column("volume", sa.Integer(), nullable=True),
        sa.Column("median_price", sa.Float(), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("cached_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_price_cache_expires_at", "price_cache", ["expires_at"])

    op.create_table(
        "price_history",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("item_name", sa.Text(), nullable=False),
        sa.Column("price", sa.Float(), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(8), nullable=False),
        sa.Column("volume", sa.Integer(), nullable=True),
        sa.Column("median_price", sa.Float(), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.execute(
        """
        CREATE INDEX ix_price_history_item_recorded
        ON price_history (item_name, recorded_at DESC)
        """
    )


def downgrade() -> None:
    op.drop_table("price_history")
    op.drop_table("price_cache")
    op.drop_table("price_alerts")
    op.drop_table("items")
    op.drop_table("users")

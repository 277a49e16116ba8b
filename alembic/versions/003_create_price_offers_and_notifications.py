"""create price_offers and notifications

Revision ID: 003
Revises: 002
Create Date: 2026-09-01 00:02:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "price_offers",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            "listing_id",
            sa.Integer(),
            sa.ForeignKey(
                "listings.id",
                name="fk_price_offers_listing_id_listings",
                ondelete="CASCADE",
            ),
            nullable=False,
        ),
        sa.Column(
            "buyer_id",
            sa.Integer(),
            sa.ForeignKey("users.id", name="fk_price_offers_buyer_id_users"),
            nullable=False,
        ),
        sa.Column(
            "seller_id",
            sa.Integer(),
            sa.ForeignKey("users.id", name="fk_price_offers_seller_id_users"),
            nullable=False,
        ),
        sa.Column(
            "chat_room_id",
            sa.Integer(),
            sa.ForeignKey(
                "chat_rooms.id",
                name="fk_price_offers_chat_room_id_chat_rooms",
                ondelete="CASCADE",
            ),
            nullable=False,
        ),
        sa.Column(
            "offer_message_id",
            sa.Integer(),
            sa.ForeignKey("messages.id", name="fk_price_offers_offer_message_id_messages"),
            nullable=False,
        ),
        sa.Column(
            "result_message_id",
            sa.Integer(),
            sa.ForeignKey("messages.id", name="fk_price_offers_result_message_id_messages"),
            nullable=True,
        ),
        sa.Column("offer_price", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), server_default="PENDING", nullable=False),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
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
        sa.CheckConstraint("offer_price > 0", name="ck_price_offers_positive_price"),
    )
    op.create_index("ix_price_offers_buyer_id", "price_offers", ["buyer_id"])
    op.create_index("ix_price_offers_seller_id", "price_offers", ["seller_id"])
    # One outstanding offer per buyer and listing
    op.create_index(
        "uq_price_offers_pending",
        "price_offers",
        ["listing_id", "buyer_id"],
        unique=True,
        postgresql_where=sa.text("status = 'PENDING'"),
    )

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey(
                "users.id",
                name="fk_notifications_user_id_users",
                ondelete="CASCADE",
            ),
            nullable=False,
        ),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("link", sa.String(512), nullable=True),
        sa.Column("is_read", sa.Boolean(), server_default="false", nullable=False),
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
    op.create_index(
        "ix_notifications_user_created",
        "notifications",
        ["user_id", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_notifications_user_created", table_name="notifications")
    op.drop_table("notifications")
    op.drop_index("uq_price_offers_pending", table_name="price_offers")
    op.drop_index("ix_price_offers_seller_id", table_name="price_offers")
    op.drop_index("ix_price_offers_buyer_id", table_name="price_offers")
    op.drop_table("price_offers")

"""create chat_rooms and messages

Revision ID: 002
Revises: 001
Create Date: 2026-09-01 00:01:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "chat_rooms",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            "listing_id",
            sa.Integer(),
            sa.ForeignKey(
                "listings.id",
                name="fk_chat_rooms_listing_id_listings",
                ondelete="SET NULL",
            ),
            nullable=True,
        ),
        sa.Column(
            "buyer_id",
            sa.Integer(),
            sa.ForeignKey("users.id", name="fk_chat_rooms_buyer_id_users"),
            nullable=False,
        ),
        sa.Column(
            "seller_id",
            sa.Integer(),
            sa.ForeignKey("users.id", name="fk_chat_rooms_seller_id_users"),
            nullable=False,
        ),
        sa.Column("last_message", sa.Text(), nullable=True),
        sa.Column("last_message_at", sa.DateTime(timezone=True), nullable=True),
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
        sa.UniqueConstraint("listing_id", "buyer_id", name="uq_chat_rooms_listing_buyer"),
    )
    op.create_index("ix_chat_rooms_buyer_id", "chat_rooms", ["buyer_id"])
    op.create_index("ix_chat_rooms_seller_id", "chat_rooms", ["seller_id"])

    op.create_table(
        "messages",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            "chat_room_id",
            sa.Integer(),
            sa.ForeignKey(
                "chat_rooms.id",
                name="fk_messages_chat_room_id_chat_rooms",
                ondelete="CASCADE",
            ),
            nullable=False,
        ),
        sa.Column(
            "sender_id",
            sa.Integer(),
            sa.ForeignKey("users.id", name="fk_messages_sender_id_users"),
            nullable=False,
        ),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("kind", sa.String(20), server_default="TEXT", nullable=False),
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
        "ix_messages_room_created",
        "messages",
        ["chat_room_id", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_messages_room_created", table_name="messages")
    op.drop_table("messages")
    op.drop_index("ix_chat_rooms_seller_id", table_name="chat_rooms")
    op.drop_index("ix_chat_rooms_buyer_id", table_name="chat_rooms")
    op.drop_table("chat_rooms")

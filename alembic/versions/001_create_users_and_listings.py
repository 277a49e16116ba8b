"""create users, listings and listing_images

These tables belong to the profile and listing services; they are created
here so the chat schema has something to reference in a fresh database.

Revision ID: 001
Revises:
Create Date: 2026-09-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


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
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("nickname", sa.String(50), nullable=False),
        sa.Column("profile_image", sa.String(512), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("nickname", name="uq_users_nickname"),
    )

    op.create_table(
        "listings",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            "seller_id",
            sa.Integer(),
            sa.ForeignKey("users.id", name="fk_listings_seller_id_users"),
            nullable=False,
        ),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Integer(), nullable=True),
        sa.Column("is_free", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("status", sa.String(20), server_default="SALE", nullable=False),
        sa.Column("allow_offer", sa.Boolean(), server_default="true", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_listings_seller_id", "listings", ["seller_id"])

    op.create_table(
        "listing_images",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column(
            "listing_id",
            sa.Integer(),
            sa.ForeignKey(
                "listings.id",
                name="fk_listing_images_listing_id_listings",
                ondelete="CASCADE",
            ),
            nullable=False,
        ),
        sa.Column("image_url", sa.String(512), nullable=False),
        sa.Column("display_order", sa.Integer(), server_default="0", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_listing_images_listing_id", "listing_images", ["listing_id"])


def downgrade() -> None:
    op.drop_index("ix_listing_images_listing_id", table_name="listing_images")
    op.drop_table("listing_images")
    op.drop_index("ix_listings_seller_id", table_name="listings")
    op.drop_table("listings")
    op.drop_table("users")

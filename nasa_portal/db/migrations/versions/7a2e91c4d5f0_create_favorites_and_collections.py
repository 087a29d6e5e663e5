"""create favorites and collections tables

Revision ID: 7a2e91c4d5f0
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from __future__ import annotations

from typing import Sequence

from alembic import op
import sqlalchemy as sa

revision: str = "7a2e91c4d5f0"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "favorite_items",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("owner_id", sa.String(length=128), nullable=False),
        sa.Column("item_type", sa.String(length=16), nullable=False),
        sa.Column("external_key", sa.String(length=255), nullable=False),
        sa.Column("item_date", sa.Date(), nullable=True),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column(
            "saved_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "owner_id",
            "item_type",
            "external_key",
            name="uq_favorite_items_owner_type_key",
        ),
    )
    op.create_index("ix_favorite_items_owner_id", "favorite_items", ["owner_id"])
    op.create_index(
        "ix_favorite_items_owner_id_saved_at",
        "favorite_items",
        ["owner_id", "saved_at"],
    )

    op.create_table(
        "collections",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("owner_id", sa.String(length=128), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column(
            "is_public",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("owner_id", "name", name="uq_collections_owner_name"),
    )
    op.create_index("ix_collections_owner_id", "collections", ["owner_id"])
    op.create_index(
        "ix_collections_owner_id_created_at",
        "collections",
        ["owner_id", "created_at"],
    )

    op.create_table(
        "collection_items",
        sa.Column("collection_id", sa.String(length=36), nullable=False),
        sa.Column("favorite_item_id", sa.String(length=36), nullable=False),
        sa.Column("notes", sa.String(length=1024), nullable=True),
        sa.Column(
            "added_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.ForeignKeyConstraint(
            ["collection_id"],
            ["collections.id"],
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["favorite_item_id"],
            ["favorite_items.id"],
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("collection_id", "favorite_item_id"),
    )
    op.create_index(
        "ix_collection_items_favorite_item_id",
        "collection_items",
        ["favorite_item_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_collection_items_favorite_item_id", table_name="collection_items")
    op.drop_table("collection_items")

    op.drop_index("ix_collections_owner_id_created_at", table_name="collections")
    op.drop_index("ix_collections_owner_id", table_name="collections")
    op.drop_table("collections")

    op.drop_index("ix_favorite_items_owner_id_saved_at", table_name="favorite_items")
    op.drop_index("ix_favorite_items_owner_id", table_name="favorite_items")
    op.drop_table("favorite_items")

"""Create ledger tables

Revision ID: 3f1c9a7d2b10
Revises:
Create Date: 2026-10-19 09:12:44.318204

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

from indexledger.adapters.sqlalchemy.mappings import UTCDateTime

revision: str = "3f1c9a7d2b10"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "indexer_status",
        sa.Column("indexer_id", sa.String(), nullable=False),
        sa.Column("height", sa.BigInteger(), nullable=False),
        sa.Column("timestamp", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("indexer_id", name=op.f("pk_indexer_status")),
    )
    op.create_table(
        "block_status",
        sa.Column("indexer_id", sa.String(), nullable=False),
        sa.Column("height", sa.BigInteger(), autoincrement=False, nullable=False),
        sa.Column("hash", sa.String(), nullable=False),
        sa.Column("timestamp", UTCDateTime(), nullable=False),
        sa.Column("updated_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("indexer_id", "height", name=op.f("pk_block_status")),
    )
    op.create_index(
        "ix_block_status_indexer_updated_at",
        "block_status",
        ["indexer_id", "updated_at"],
        unique=False,
    )
    op.create_table(
        "block_fix",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("indexer_id", sa.String(), nullable=False),
        sa.Column("start_height", sa.BigInteger(), nullable=False),
        sa.Column("end_height", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_block_fix")),
    )
    op.create_index(
        "ix_block_fix_indexer_start_height",
        "block_fix",
        ["indexer_id", "start_height"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_block_fix_indexer_start_height", table_name="block_fix")
    op.drop_table("block_fix")
    op.drop_index("ix_block_status_indexer_updated_at", table_name="block_status")
    op.drop_table("block_status")
    op.drop_table("indexer_status")

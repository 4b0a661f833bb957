"""SQLAlchemy table metadata for the indexer ledger."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Dialect,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    TypeDecorator,
)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

indexer_status_table = Table(
    "indexer_status",
    metadata,
    Column("indexer_id", String, primary_key=True),
    Column("height", BigInteger, nullable=False),
    Column("timestamp", UTCDateTime(), nullable=False),
)

block_status_table = Table(
    "block_status",
    metadata,
    Column("indexer_id", String, primary_key=True),
    Column("height", BigInteger, primary_key=True, autoincrement=False),
    Column("hash", String, nullable=False),
    Column("timestamp", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    Index("ix_block_status_indexer_updated_at", "indexer_id", "updated_at"),
)

block_fix_table = Table(
    "block_fix",
    metadata,
    # Integer (not BigInteger) so SQLite treats it as the rowid alias.
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("indexer_id", String, nullable=False),
    Column("start_height", BigInteger, nullable=False),
    Column("end_height", BigInteger, nullable=False),
    Index("ix_block_fix_indexer_start_height", "indexer_id", "start_height"),
)

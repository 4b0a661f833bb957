"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from indexledger.adapters.sqlalchemy.mappings import (
    block_fix_table,
    block_status_table,
    indexer_status_table,
)
from indexledger.domain.clock import monitor_cutoff, utcnow
from indexledger.domain.errors import InconsistentLedgerError
from indexledger.domain.types import (
    BlockRange,
    BlockStatus,
    IndexerStatus,
    checked_height,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from datetime import datetime, timedelta

    from sqlalchemy import Table
    from sqlalchemy.orm import Session

    from indexledger.domain.clock import Clock
    from indexledger.domain.types import BlockHash, BlockHeight, IndexerId

log = logging.getLogger(__name__)


class UnsupportedDialectError(RuntimeError):
    """Raised when the bound database has no native upsert we know how to emit."""


def _upsert(
    session: Session,
    table: Table,
    values: Mapping[str, object],
    *,
    conflict_columns: Sequence[str],
    update_columns: Sequence[str],
) -> None:
    dialect_name = session.get_bind().dialect.name
    stmt: Any
    if dialect_name == "postgresql":
        stmt = postgresql_insert(table).values(**values)
    elif dialect_name == "sqlite":
        stmt = sqlite_insert(table).values(**values)
    else:
        raise UnsupportedDialectError(f"No upsert support for dialect {dialect_name!r}")
    stmt = stmt.on_conflict_do_update(
        index_elements=list(conflict_columns),
        set_={column: stmt.excluded[column] for column in update_columns},
    )
    session.execute(stmt)


def _stored_height(value: object) -> BlockHeight:
    return checked_height(int(cast(int, value)))


class SqlAlchemyIndexerStatusRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get_current_height(self, indexer_id: IndexerId) -> BlockHeight | None:
        stmt = (
            select(indexer_status_table.c.height)
            .where(indexer_status_table.c.indexer_id == indexer_id)
            .limit(1)
        )
        height = self.session.execute(stmt).scalar_one_or_none()
        return None if height is None else _stored_height(height)

    def get_indexer_status(self, indexer_id: IndexerId) -> IndexerStatus | None:
        stmt = select(indexer_status_table.c.height, indexer_status_table.c.timestamp).where(
            indexer_status_table.c.indexer_id == indexer_id
        )
        row = self.session.execute(stmt).one_or_none()
        if row is None:
            return None
        return IndexerStatus(
            indexer_id=indexer_id,
            height=_stored_height(row.height),
            timestamp=row.timestamp,
        )

    def update_current_height(
        self, indexer_id: IndexerId, height: BlockHeight, timestamp: datetime
    ) -> None:
        _upsert(
            self.session,
            indexer_status_table,
            {"indexer_id": indexer_id, "height": checked_height(height), "timestamp": timestamp},
            conflict_columns=("indexer_id",),
            update_columns=("height", "timestamp"),
        )


class SqlAlchemyBlockStatusRepository:
    def __init__(self, session: Session, *, clock: Clock = utcnow) -> None:
        self.session = session
        self._clock = clock

    def get_block_status_hash(self, indexer_id: IndexerId, height: BlockHeight) -> BlockHash | None:
        stmt = (
            select(block_status_table.c.hash)
            .where(block_status_table.c.indexer_id == indexer_id)
            .where(block_status_table.c.height == checked_height(height))
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def get_block_status(self, indexer_id: IndexerId, height: BlockHeight) -> BlockStatus | None:
        stmt = (
            select(
                block_status_table.c.hash,
                block_status_table.c.timestamp,
                block_status_table.c.updated_at,
            )
            .where(block_status_table.c.indexer_id == indexer_id)
            .where(block_status_table.c.height == checked_height(height))
        )
        row = self.session.execute(stmt).one_or_none()
        if row is None:
            return None
        return BlockStatus(
            indexer_id=indexer_id,
            height=height,
            hash=row.hash,
            timestamp=row.timestamp,
            updated_at=row.updated_at,
        )

    def update_block_status(
        self,
        indexer_id: IndexerId,
        height: BlockHeight,
        hash: BlockHash,  # noqa: A002
        timestamp: datetime,
    ) -> None:
        _upsert(
            self.session,
            block_status_table,
            {
                "indexer_id": indexer_id,
                "height": checked_height(height),
                "hash": hash,
                "timestamp": timestamp,
                "updated_at": self._clock(),
            },
            conflict_columns=("indexer_id", "height"),
            update_columns=("hash", "timestamp", "updated_at"),
        )

    def delete_block_status(self, indexer_id: IndexerId, height: BlockHeight) -> BlockHash | None:
        stmt = (
            delete(block_status_table)
            .where(block_status_table.c.indexer_id == indexer_id)
            .where(block_status_table.c.height == checked_height(height))
            .returning(block_status_table.c.hash)
        )
        previous = self.session.execute(stmt).scalar_one_or_none()
        if previous is not None:
            log.debug("Deleted block status %s@%s (was %s)", indexer_id, height, previous)
        return previous

    def get_block_range_to_finalize(self, indexer_id: IndexerId) -> BlockRange | None:
        stmt = select(
            func.min(block_status_table.c.height),
            func.max(block_status_table.c.height),
        ).where(block_status_table.c.indexer_id == indexer_id)
        min_height, max_height = self.session.execute(stmt).one()
        match (min_height, max_height):
            case (None, None):
                return None
            case (None, _) | (_, None):
                raise InconsistentLedgerError(
                    f"Finalize range for {indexer_id!r} has one bound only: "
                    f"min={min_height}, max={max_height}"
                )
            case _:
                last = _stored_height(max_height)
                return BlockRange(_stored_height(min_height), checked_height(last + 1))

    def get_next_block_to_monitor(
        self,
        indexer_id: IndexerId,
        consensus_height: BlockHeight,
        min_interval: timedelta,
    ) -> BlockHeight | None:
        cutoff = monitor_cutoff(min_interval, clock=self._clock)
        stmt = (
            select(block_status_table.c.height)
            .where(block_status_table.c.indexer_id == indexer_id)
            .where(block_status_table.c.height > checked_height(consensus_height))
            .where(block_status_table.c.updated_at < cutoff)
            .order_by(block_status_table.c.updated_at, block_status_table.c.height)
            .limit(1)
        )
        height = self.session.execute(stmt).scalar_one_or_none()
        return None if height is None else _stored_height(height)


class SqlAlchemyBlockFixRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add_block_range_to_fix(self, indexer_id: IndexerId, block_range: BlockRange) -> None:
        if block_range.is_empty:
            raise ValueError(f"Refusing to register empty fix range {block_range}")
        stmt = block_fix_table.insert().values(
            indexer_id=indexer_id,
            start_height=checked_height(block_range.start_inclusive),
            end_height=checked_height(block_range.end_exclusive),
        )
        self.session.execute(stmt)
        log.debug("Registered fix range %s for %s", block_range, indexer_id)

    def get_block_range_to_fix(self, indexer_id: IndexerId) -> BlockRange | None:
        earliest_start = (
            select(func.min(block_fix_table.c.start_height))
            .where(block_fix_table.c.indexer_id == indexer_id)
            .scalar_subquery()
        )
        stmt = (
            select(block_fix_table.c.start_height, func.max(block_fix_table.c.end_height))
            .where(block_fix_table.c.indexer_id == indexer_id)
            .where(block_fix_table.c.start_height == earliest_start)
            .group_by(block_fix_table.c.start_height)
        )
        row = self.session.execute(stmt).one_or_none()
        if row is None:
            return None
        start_height, end_height = row
        if end_height is None:
            raise InconsistentLedgerError(f"Fix range for {indexer_id!r} has no end height")
        return BlockRange(_stored_height(start_height), _stored_height(end_height))

    def list_block_ranges_to_fix(self, indexer_id: IndexerId) -> Sequence[BlockRange]:
        stmt = (
            select(block_fix_table.c.start_height, func.max(block_fix_table.c.end_height))
            .where(block_fix_table.c.indexer_id == indexer_id)
            .group_by(block_fix_table.c.start_height)
            .order_by(block_fix_table.c.start_height)
        )
        return [
            BlockRange(_stored_height(start), _stored_height(end))
            for start, end in self.session.execute(stmt).all()
        ]

    def update_block_range_to_fix(self, indexer_id: IndexerId, block_range: BlockRange) -> None:
        """Retire ``block_range`` from the front of the matching worklist entries.

        Entries starting at ``block_range.start_inclusive`` are advanced to
        ``block_range.end_exclusive``; entries left with no width are removed. Both
        statements run in the caller's transaction.
        """

        start = checked_height(block_range.start_inclusive)
        end = checked_height(block_range.end_exclusive)

        advance = (
            update(block_fix_table)
            .where(block_fix_table.c.indexer_id == indexer_id)
            .where(block_fix_table.c.start_height == start)
            .values(start_height=end)
        )
        advanced = self.session.execute(advance).rowcount

        prune = (
            delete(block_fix_table)
            .where(block_fix_table.c.indexer_id == indexer_id)
            .where(block_fix_table.c.start_height == end)
            .where(block_fix_table.c.end_height <= end)
        )
        pruned = self.session.execute(prune).rowcount

        log.debug(
            "Fix worklist %s retire %s: advanced=%s, pruned=%s",
            indexer_id,
            block_range,
            advanced,
            pruned,
        )


if TYPE_CHECKING:
    from indexledger.domain.ports.persistence import (
        BlockFixRepository,
        BlockStatusRepository,
        IndexerStatusRepository,
    )

    _session_stub = cast("Session", object())
    _indexer_repo: IndexerStatusRepository = SqlAlchemyIndexerStatusRepository(_session_stub)
    _status_repo: BlockStatusRepository = SqlAlchemyBlockStatusRepository(_session_stub)
    _fix_repo: BlockFixRepository = SqlAlchemyBlockFixRepository(_session_stub)

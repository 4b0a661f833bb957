"""Application orchestration entry points.

The helpers here combine ledger operations that an indexing driver performs together
in one cycle. None of them commit: the caller owns the unit of work and decides
whether the cycle's writes become visible.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from indexledger.adapters.sqlalchemy.unit_of_work import SqlAlchemyLedgerUnitOfWork, startup
from indexledger.domain.ports.unit_of_work import LedgerUnitOfWork
from indexledger.domain.types import HashChange

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from indexledger.domain.types import (
        BlockHash,
        BlockHeight,
        BlockRange,
        IndexerId,
        IndexerStatus,
    )

UnitOfWorkFactory = Callable[[], LedgerUnitOfWork]

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class IndexerSnapshot:
    indexer_id: IndexerId
    status: IndexerStatus | None
    range_to_finalize: BlockRange | None
    range_to_fix: BlockRange | None

    @property
    def current_height(self) -> BlockHeight | None:
        return None if self.status is None else self.status.height


def open_ledger(*, database_uri: str | None = None) -> UnitOfWorkFactory:
    """Start the SQLAlchemy adapter and return a unit-of-work factory."""

    startup(database_uri=database_uri, force=True)
    return SqlAlchemyLedgerUnitOfWork


def record_block(
    uow: LedgerUnitOfWork,
    indexer_id: IndexerId,
    height: BlockHeight,
    block_hash: BlockHash,
    timestamp: datetime,
) -> None:
    """Record a processed block and advance the indexer's height in the same unit."""

    repositories = uow.repositories
    repositories.block_status.update_block_status(indexer_id, height, block_hash, timestamp)
    repositories.indexer_status.update_current_height(indexer_id, height, timestamp)


def apply_block_fix(
    uow: LedgerUnitOfWork,
    indexer_id: IndexerId,
    repaired: BlockRange,
    hashes: Mapping[BlockHeight, BlockHash],
    timestamp: datetime,
) -> list[HashChange]:
    """Write re-fetched hashes for ``repaired`` and retire it from the fix worklist.

    Heights in ``repaired`` without an entry in ``hashes`` no longer exist upstream
    and are removed from the ledger.
    """

    unexpected = sorted(height for height in hashes if height not in repaired)
    if unexpected:
        raise ValueError(f"Hashes given for heights outside {repaired}: {unexpected}")

    block_status = uow.repositories.block_status
    changes: list[HashChange] = []
    for height in repaired.heights():
        current = hashes.get(height)
        if current is None:
            previous = block_status.delete_block_status(indexer_id, height)
        else:
            previous = block_status.get_block_status_hash(indexer_id, height)
            block_status.update_block_status(indexer_id, height, current, timestamp)
        change = HashChange(height=height, previous=previous, current=current)
        if change.changed:
            log.info(
                "Block %s@%s changed: %s -> %s", indexer_id, height, previous, current
            )
        changes.append(change)

    uow.repositories.block_fix.update_block_range_to_fix(indexer_id, repaired)
    return changes


def invalidate_blocks(
    uow: LedgerUnitOfWork,
    indexer_id: IndexerId,
    block_range: BlockRange,
) -> dict[BlockHeight, BlockHash]:
    """Delete the recorded statuses in ``block_range`` and return what was removed."""

    block_status = uow.repositories.block_status
    removed: dict[BlockHeight, BlockHash] = {}
    for height in block_range.heights():
        previous = block_status.delete_block_status(indexer_id, height)
        if previous is not None:
            removed[height] = previous
    log.info("Invalidated %s block(s) of %s in %s", len(removed), indexer_id, block_range)
    return removed


def describe_indexer(uow: LedgerUnitOfWork, indexer_id: IndexerId) -> IndexerSnapshot:
    repositories = uow.repositories
    return IndexerSnapshot(
        indexer_id=indexer_id,
        status=repositories.indexer_status.get_indexer_status(indexer_id),
        range_to_finalize=repositories.block_status.get_block_range_to_finalize(indexer_id),
        range_to_fix=repositories.block_fix.get_block_range_to_fix(indexer_id),
    )

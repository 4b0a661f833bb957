"""Ports for the height tracker, block status ledger and fix worklist.

Implementations operate on the transaction owned by the enclosing unit of work and
never commit on their own.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime, timedelta

    from indexledger.domain.types import (
        BlockHash,
        BlockHeight,
        BlockRange,
        BlockStatus,
        IndexerId,
        IndexerStatus,
    )


@runtime_checkable
class IndexerStatusRepository(Protocol):
    """Per-indexer progress cursor."""

    def get_current_height(self, indexer_id: IndexerId) -> BlockHeight | None: ...

    def get_indexer_status(self, indexer_id: IndexerId) -> IndexerStatus | None: ...

    def update_current_height(
        self, indexer_id: IndexerId, height: BlockHeight, timestamp: datetime
    ) -> None: ...


@runtime_checkable
class BlockStatusRepository(Protocol):
    """Per-height hash records plus the finality monitor query."""

    def get_block_status_hash(
        self, indexer_id: IndexerId, height: BlockHeight
    ) -> BlockHash | None: ...

    def get_block_status(
        self, indexer_id: IndexerId, height: BlockHeight
    ) -> BlockStatus | None: ...

    def update_block_status(
        self,
        indexer_id: IndexerId,
        height: BlockHeight,
        hash: BlockHash,  # noqa: A002
        timestamp: datetime,
    ) -> None: ...

    def delete_block_status(
        self, indexer_id: IndexerId, height: BlockHeight
    ) -> BlockHash | None: ...

    def get_block_range_to_finalize(self, indexer_id: IndexerId) -> BlockRange | None: ...

    def get_next_block_to_monitor(
        self,
        indexer_id: IndexerId,
        consensus_height: BlockHeight,
        min_interval: timedelta,
    ) -> BlockHeight | None: ...


@runtime_checkable
class BlockFixRepository(Protocol):
    """Reconciliation worklist of block ranges pending re-processing."""

    def add_block_range_to_fix(self, indexer_id: IndexerId, block_range: BlockRange) -> None: ...

    def get_block_range_to_fix(self, indexer_id: IndexerId) -> BlockRange | None: ...

    def list_block_ranges_to_fix(self, indexer_id: IndexerId) -> Sequence[BlockRange]: ...

    def update_block_range_to_fix(self, indexer_id: IndexerId, block_range: BlockRange) -> None: ...

"""Value types shared by the ledger, worklist and scheduler.

Scalar aliases stay plain so adapters can bind them directly; ``BlockRange`` is the
only value object with behaviour.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from indexledger.domain.errors import HeightOutOfRangeError

if TYPE_CHECKING:
    from collections.abc import Iterator
    from datetime import datetime

type IndexerId = str
type BlockHeight = int
type BlockHash = str

# Heights are persisted in signed 64-bit columns.
MIN_STORED_HEIGHT: Final[int] = 0
MAX_STORED_HEIGHT: Final[int] = 2**63 - 1


def checked_height(value: int) -> BlockHeight:
    """Return ``value`` unchanged if it fits the stored height range, else raise."""

    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"Block heights must be integers, got {type(value).__name__}")
    if not MIN_STORED_HEIGHT <= value <= MAX_STORED_HEIGHT:
        raise HeightOutOfRangeError(value, lower=MIN_STORED_HEIGHT, upper=MAX_STORED_HEIGHT)
    return value


@dataclass(frozen=True, slots=True)
class BlockRange:
    """Half-open interval ``[start_inclusive, end_exclusive)`` of block heights."""

    start_inclusive: BlockHeight
    end_exclusive: BlockHeight

    def __post_init__(self) -> None:
        if self.start_inclusive < 0 or self.end_exclusive < 0:
            raise ValueError(f"Block range bounds must be non-negative: {self}")
        if self.start_inclusive > self.end_exclusive:
            raise ValueError(
                f"Block range start {self.start_inclusive} exceeds end {self.end_exclusive}"
            )

    @classmethod
    def from_inclusive(cls, first: BlockHeight, last: BlockHeight) -> BlockRange:
        return cls(first, last + 1)

    @property
    def width(self) -> int:
        return self.end_exclusive - self.start_inclusive

    @property
    def is_empty(self) -> bool:
        return self.width == 0

    def __contains__(self, height: object) -> bool:
        if not isinstance(height, int):
            return False
        return self.start_inclusive <= height < self.end_exclusive

    def heights(self) -> Iterator[BlockHeight]:
        return iter(range(self.start_inclusive, self.end_exclusive))

    def __str__(self) -> str:
        return f"[{self.start_inclusive}, {self.end_exclusive})"


@dataclass(frozen=True, slots=True)
class IndexerStatus:
    indexer_id: IndexerId
    height: BlockHeight
    timestamp: datetime


@dataclass(frozen=True, slots=True)
class BlockStatus:
    indexer_id: IndexerId
    height: BlockHeight
    hash: BlockHash
    timestamp: datetime
    updated_at: datetime


@dataclass(frozen=True, slots=True)
class HashChange:
    """Before/after view of one height touched by a repair or invalidation."""

    height: BlockHeight
    previous: BlockHash | None
    current: BlockHash | None

    @property
    def changed(self) -> bool:
        return self.previous != self.current

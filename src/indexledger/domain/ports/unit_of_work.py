"""Transaction boundary for one indexing cycle."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, Self, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType

    from indexledger.domain.ports.persistence import (
        BlockFixRepository,
        BlockStatusRepository,
        IndexerStatusRepository,
    )


@dataclass(frozen=True, slots=True)
class LedgerRepositories:
    """Repositories bound to the same open transaction."""

    indexer_status: IndexerStatusRepository
    block_status: BlockStatusRepository
    block_fix: BlockFixRepository


@runtime_checkable
class LedgerUnitOfWork(Protocol):
    """Scope in which every ledger, worklist and height write commits or rolls back together.

    Leaving the scope with an exception discards the cycle; leaving it without calling
    ``commit`` discards it too.
    """

    @property
    def repositories(self) -> LedgerRepositories: ...

    def __enter__(self) -> Self: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import BlockFixRepository, BlockStatusRepository, IndexerStatusRepository
from .unit_of_work import LedgerRepositories, LedgerUnitOfWork

__all__ = [
    "BlockFixRepository",
    "BlockStatusRepository",
    "IndexerStatusRepository",
    "LedgerRepositories",
    "LedgerUnitOfWork",
]

"""SQLAlchemy adapter package for the indexer ledger."""

from __future__ import annotations

from .mappings import (
    block_fix_table,
    block_status_table,
    indexer_status_table,
    metadata,
)
from .repositories import (
    SqlAlchemyBlockFixRepository,
    SqlAlchemyBlockStatusRepository,
    SqlAlchemyIndexerStatusRepository,
    UnsupportedDialectError,
)
from .unit_of_work import (
    SqlAlchemyLedgerUnitOfWork,
    StartupError,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyBlockFixRepository",
    "SqlAlchemyBlockStatusRepository",
    "SqlAlchemyIndexerStatusRepository",
    "SqlAlchemyLedgerUnitOfWork",
    "StartupError",
    "UnsupportedDialectError",
    "block_fix_table",
    "block_status_table",
    "indexer_status_table",
    "metadata",
    "shutdown",
    "startup",
]

"""SQLAlchemy-backed unit of work for the indexer ledger.

The adapter keeps one engine per process. ``startup`` migrates its schema and every
``SqlAlchemyLedgerUnitOfWork`` opens a fresh ``Session`` on it; the repositories of a
unit share that session and therefore its transaction.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from indexledger.adapters.sqlalchemy.migrations import upgrade_head
from indexledger.adapters.sqlalchemy.repositories import (
    SqlAlchemyBlockFixRepository,
    SqlAlchemyBlockStatusRepository,
    SqlAlchemyIndexerStatusRepository,
)
from indexledger.config import get_database_config
from indexledger.domain.clock import utcnow
from indexledger.domain.ports.unit_of_work import LedgerRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

    from indexledger.domain.clock import Clock

log = logging.getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when the ledger database is used before ``startup`` or reconfigured twice."""


_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Bind the adapter to a migrated database.

    With ``force=True`` an already bound engine is disposed and replaced.
    """

    global _engine, _session_factory  # noqa: PLW0603

    if _engine is not None and not force:
        raise StartupError("Ledger database already started. Pass force=True to rebind.")

    resolved_engine = engine or create_engine(
        database_uri or get_database_config().uri, future=True
    )
    upgrade_head(engine=resolved_engine)

    if _engine is not None and _engine is not resolved_engine:
        log.debug("Disposing previous ledger engine %s", _engine.url)
        _engine.dispose()
    _engine = resolved_engine
    _session_factory = sessionmaker(bind=resolved_engine, expire_on_commit=False)


def shutdown() -> None:
    """Dispose the bound engine and forget it."""

    global _engine, _session_factory  # noqa: PLW0603

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


class SqlAlchemyLedgerUnitOfWork:
    """One transaction spanning the height tracker, status ledger and fix worklist."""

    def __init__(self, *, clock: Clock = utcnow) -> None:
        if _session_factory is None:
            raise StartupError(
                "Ledger database not started. Call indexledger.adapters.sqlalchemy."
                "unit_of_work.startup() before opening a unit of work."
            )
        self._session_factory = _session_factory
        self._clock = clock
        self._session: Session | None = None
        self._repositories: LedgerRepositories | None = None

    def __enter__(self) -> SqlAlchemyLedgerUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work is already open")
        session = self._session_factory()
        self._session = session
        self._repositories = LedgerRepositories(
            indexer_status=SqlAlchemyIndexerStatusRepository(session),
            block_status=SqlAlchemyBlockStatusRepository(session, clock=self._clock),
            block_fix=SqlAlchemyBlockFixRepository(session),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        session = self.session
        try:
            if exc_type is not None:
                session.rollback()
        finally:
            session.close()
            self._session = None
            self._repositories = None
        return False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work is not open")
        return self._session

    @property
    def repositories(self) -> LedgerRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work is not open")
        return self._repositories

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


if TYPE_CHECKING:
    from indexledger.domain.ports.unit_of_work import LedgerUnitOfWork

    _uow_check: LedgerUnitOfWork = SqlAlchemyLedgerUnitOfWork()

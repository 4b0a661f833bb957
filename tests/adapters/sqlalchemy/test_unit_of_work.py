from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine, inspect

from indexledger.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyLedgerUnitOfWork,
    StartupError,
    shutdown,
    startup,
)
from indexledger.domain.ports.unit_of_work import LedgerUnitOfWork
from indexledger.domain.types import BlockRange

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from sqlalchemy.engine import Engine

T0 = datetime(2025, 1, 1, tzinfo=UTC)


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_sqlalchemy_unit_of_work_requires_startup() -> None:
    with pytest.raises(StartupError):
        SqlAlchemyLedgerUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:", future=True)
    engine_b = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    with SqlAlchemyLedgerUnitOfWork() as uow:
        uow.repositories.indexer_status.update_current_height("eth", 3, T0)
        uow.commit()

    with engine_b.connect() as connection:
        assert connection.exec_driver_sql("SELECT height FROM indexer_status").scalar() == 3


def test_forced_startup_disposes_replaced_engine() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:", future=True)
    engine_b = create_engine("sqlite+pysqlite:///:memory:", future=True)
    startup(engine=engine_a)
    pool_before = engine_a.pool

    startup(engine=engine_b, force=True)

    assert engine_a.pool is not pool_before


def test_forced_startup_keeps_same_engine_alive(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine)
    with SqlAlchemyLedgerUnitOfWork() as uow:
        uow.repositories.block_status.update_block_status("eth", 1, "0x01", T0)
        uow.commit()
    pool_before = sqlite_engine.pool

    startup(engine=sqlite_engine, force=True)

    assert sqlite_engine.pool is pool_before
    with SqlAlchemyLedgerUnitOfWork() as uow:
        assert uow.repositories.block_status.get_block_status_hash("eth", 1) == "0x01"


def test_startup_creates_ledger_tables() -> None:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine, force=True)

    tables = set(inspect(engine).get_table_names())
    assert {"indexer_status", "block_status", "block_fix"} <= tables


def test_unit_of_work_satisfies_ledger_port(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    assert isinstance(SqlAlchemyLedgerUnitOfWork(), LedgerUnitOfWork)


def test_repositories_require_open_unit(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    uow = SqlAlchemyLedgerUnitOfWork()

    with pytest.raises(StartupError):
        _ = uow.repositories

    with uow:
        pass

    with pytest.raises(StartupError):
        _ = uow.repositories


def test_unit_of_work_cannot_be_nested(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)
    uow = SqlAlchemyLedgerUnitOfWork()

    with uow, pytest.raises(StartupError, match="already open"):
        uow.__enter__()


def test_committed_cycle_is_visible(
    sqlite_unit_of_work: Callable[[], SqlAlchemyLedgerUnitOfWork],
) -> None:
    with sqlite_unit_of_work() as uow:
        uow.repositories.block_status.update_block_status("eth", 1, "0x01", T0)
        uow.repositories.indexer_status.update_current_height("eth", 1, T0)
        uow.commit()

    with sqlite_unit_of_work() as uow:
        assert uow.repositories.indexer_status.get_current_height("eth") == 1
        assert uow.repositories.block_status.get_block_status_hash("eth", 1) == "0x01"


def test_uncommitted_cycle_is_discarded(
    sqlite_unit_of_work: Callable[[], SqlAlchemyLedgerUnitOfWork],
) -> None:
    with sqlite_unit_of_work() as uow:
        uow.repositories.indexer_status.update_current_height("eth", 1, T0)

    with sqlite_unit_of_work() as uow:
        assert uow.repositories.indexer_status.get_current_height("eth") is None


def test_failure_rolls_back_partial_worklist_update(
    sqlite_unit_of_work: Callable[[], SqlAlchemyLedgerUnitOfWork],
) -> None:
    with sqlite_unit_of_work() as uow:
        uow.repositories.block_fix.add_block_range_to_fix("eth", BlockRange(10, 20))
        uow.commit()

    with pytest.raises(RuntimeError, match="driver failed"), sqlite_unit_of_work() as uow:
        uow.repositories.block_fix.update_block_range_to_fix("eth", BlockRange(10, 12))
        raise RuntimeError("driver failed")

    with sqlite_unit_of_work() as uow:
        assert uow.repositories.block_fix.get_block_range_to_fix("eth") == BlockRange(10, 20)

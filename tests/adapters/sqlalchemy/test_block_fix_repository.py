"""Tests for the block fix worklist."""

from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session  # noqa: TC002

from indexledger.adapters.sqlalchemy.mappings import block_fix_table
from indexledger.adapters.sqlalchemy.repositories import SqlAlchemyBlockFixRepository
from indexledger.domain.types import BlockRange


@pytest.fixture
def repository(sqlite_session: Session) -> SqlAlchemyBlockFixRepository:
    return SqlAlchemyBlockFixRepository(sqlite_session)


def _rows(session: Session, indexer_id: str) -> list[tuple[int, int]]:
    stmt = (
        select(block_fix_table.c.start_height, block_fix_table.c.end_height)
        .where(block_fix_table.c.indexer_id == indexer_id)
        .order_by(block_fix_table.c.start_height, block_fix_table.c.end_height)
    )
    return [(start, end) for start, end in session.execute(stmt).all()]


def test_empty_worklist(repository: SqlAlchemyBlockFixRepository) -> None:
    assert repository.get_block_range_to_fix("eth") is None
    assert repository.list_block_ranges_to_fix("eth") == []


def test_earliest_start_is_selected(repository: SqlAlchemyBlockFixRepository) -> None:
    repository.add_block_range_to_fix("eth", BlockRange(30, 40))
    repository.add_block_range_to_fix("eth", BlockRange(10, 20))

    assert repository.get_block_range_to_fix("eth") == BlockRange(10, 20)


def test_duplicate_starts_are_widened(repository: SqlAlchemyBlockFixRepository) -> None:
    repository.add_block_range_to_fix("eth", BlockRange(10, 15))
    repository.add_block_range_to_fix("eth", BlockRange(10, 25))
    repository.add_block_range_to_fix("eth", BlockRange(12, 40))

    assert repository.get_block_range_to_fix("eth") == BlockRange(10, 25)
    assert repository.list_block_ranges_to_fix("eth") == [BlockRange(10, 25), BlockRange(12, 40)]


def test_selection_is_scoped_to_indexer(repository: SqlAlchemyBlockFixRepository) -> None:
    repository.add_block_range_to_fix("cosmos", BlockRange(1, 100))
    repository.add_block_range_to_fix("eth", BlockRange(50, 60))

    assert repository.get_block_range_to_fix("eth") == BlockRange(50, 60)
    assert repository.get_block_range_to_fix("cosmos") == BlockRange(1, 100)


def test_contiguous_retirement_converges(
    sqlite_session: Session, repository: SqlAlchemyBlockFixRepository
) -> None:
    repository.add_block_range_to_fix("eth", BlockRange(10, 20))

    repository.update_block_range_to_fix("eth", BlockRange(10, 12))
    assert repository.get_block_range_to_fix("eth") == BlockRange(12, 20)

    repository.update_block_range_to_fix("eth", BlockRange(12, 15))
    assert repository.get_block_range_to_fix("eth") == BlockRange(15, 20)

    repository.update_block_range_to_fix("eth", BlockRange(15, 20))
    assert repository.get_block_range_to_fix("eth") is None
    assert _rows(sqlite_session, "eth") == []


def test_misaligned_retirement_is_a_no_op(
    sqlite_session: Session, repository: SqlAlchemyBlockFixRepository
) -> None:
    repository.add_block_range_to_fix("eth", BlockRange(10, 20))

    repository.update_block_range_to_fix("eth", BlockRange(11, 13))

    assert _rows(sqlite_session, "eth") == [(10, 20)]


def test_retrying_a_retired_range_is_a_no_op(
    sqlite_session: Session, repository: SqlAlchemyBlockFixRepository
) -> None:
    repository.add_block_range_to_fix("eth", BlockRange(10, 20))
    repository.update_block_range_to_fix("eth", BlockRange(10, 12))

    repository.update_block_range_to_fix("eth", BlockRange(10, 12))

    assert _rows(sqlite_session, "eth") == [(12, 20)]


def test_overshooting_retirement_removes_entry(
    sqlite_session: Session, repository: SqlAlchemyBlockFixRepository
) -> None:
    repository.add_block_range_to_fix("eth", BlockRange(10, 20))

    repository.update_block_range_to_fix("eth", BlockRange(10, 25))

    assert _rows(sqlite_session, "eth") == []


def test_retirement_advances_every_registration_at_start(
    sqlite_session: Session, repository: SqlAlchemyBlockFixRepository
) -> None:
    repository.add_block_range_to_fix("eth", BlockRange(10, 12))
    repository.add_block_range_to_fix("eth", BlockRange(10, 30))

    repository.update_block_range_to_fix("eth", BlockRange(10, 12))

    assert _rows(sqlite_session, "eth") == [(12, 30)]
    assert repository.get_block_range_to_fix("eth") == BlockRange(12, 30)


def test_retirement_leaves_other_indexers_alone(
    sqlite_session: Session, repository: SqlAlchemyBlockFixRepository
) -> None:
    repository.add_block_range_to_fix("eth", BlockRange(10, 20))
    repository.add_block_range_to_fix("cosmos", BlockRange(10, 20))

    repository.update_block_range_to_fix("eth", BlockRange(10, 20))

    assert _rows(sqlite_session, "eth") == []
    assert _rows(sqlite_session, "cosmos") == [(10, 20)]


def test_empty_registration_is_rejected(repository: SqlAlchemyBlockFixRepository) -> None:
    with pytest.raises(ValueError, match="empty"):
        repository.add_block_range_to_fix("eth", BlockRange(5, 5))

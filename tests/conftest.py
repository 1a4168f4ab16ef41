from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.pool import StaticPool

from lingx.adapters.sqlalchemy import start_mappers
from lingx.adapters.sqlalchemy.migrations import upgrade_head
from lingx.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, shutdown, startup
from lingx.domain.branches import create_space

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from lingx.domain.branches import SpaceOverview


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    # one shared connection, so API handlers running in worker threads see the same database
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()


@pytest.fixture
def space(sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork]) -> SpaceOverview:
    return create_space(sqlite_unit_of_work, "webshop", "Frontend")

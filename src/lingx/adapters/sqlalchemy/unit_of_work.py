"""SQLAlchemy-backed units of work for branch catalogs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine, event
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from lingx.adapters.sqlalchemy.mappings import start_mappers
from lingx.adapters.sqlalchemy.migrations import upgrade_head
from lingx.adapters.sqlalchemy.repositories import (
    SqlAlchemyBranchRepository,
    SqlAlchemyProjectRepository,
    SqlAlchemySpaceRepository,
    SqlAlchemyTranslationRepository,
)
from lingx.config import DatabaseConfig, get_database_config
from lingx.domain.errors import CatalogWriteError
from lingx.domain.ports.unit_of_work import CatalogRepositories, RepositoryCollection

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call lingx.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: object, _record: object) -> None:  # pyright: ignore[reportUnusedFunction]
        cursor = dbapi_connection.cursor()  # type: ignore[attr-defined]
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine, run migrations, and reset the session factory."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    if engine is None:
        db_config = (
            DatabaseConfig(uri=database_uri) if database_uri else get_database_config()
        )
        resolved_engine = create_engine(db_config.uri, future=True, echo=db_config.echo)
        if db_config.is_sqlite:
            _enable_sqlite_foreign_keys(resolved_engine)
    else:
        resolved_engine = engine
    start_mappers()
    upgrade_head(engine=resolved_engine)

    _STATE.engine = resolved_engine


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """Generic SQLAlchemy unit of work with pluggable repository collections.

    Database failures that escape the ``with`` block are rolled back and
    re-raised as :class:`~lingx.domain.errors.CatalogWriteError`; operational
    errors (locks, dropped connections) are marked retryable.
    """

    def __init__(self) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.session_factory
        self._session: Session | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        self.session = self.session_factory()
        self._repositories = self._build_repositories(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        try:
            if exc_type is not None:
                self.rollback()
        finally:
            self.session.close()
            self.session = None
        if isinstance(exc_value, SQLAlchemyError):
            raise _as_write_error(exc_value) from exc_value
        return False

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> TRepositories:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


def _as_write_error(exc: SQLAlchemyError) -> CatalogWriteError:
    retryable = isinstance(exc, OperationalError) or (
        isinstance(exc, DBAPIError) and exc.connection_invalidated
    )
    return CatalogWriteError(f"Database error: {exc}", retryable=retryable)


class SqlAlchemyUnitOfWork(BaseSqlAlchemyUnitOfWork[CatalogRepositories]):
    """Unit of work managing projects, spaces, branches and their catalogs."""

    def _build_repositories(self, session: Session) -> CatalogRepositories:
        return CatalogRepositories(
            projects=SqlAlchemyProjectRepository(session),
            spaces=SqlAlchemySpaceRepository(session),
            branches=SqlAlchemyBranchRepository(session),
            translations=SqlAlchemyTranslationRepository(session),
        )


if TYPE_CHECKING:
    from lingx.domain.ports.unit_of_work import CatalogUnitOfWork

    _uow_check: CatalogUnitOfWork = SqlAlchemyUnitOfWork()

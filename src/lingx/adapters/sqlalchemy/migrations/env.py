"""Alembic environment configuration for Lingx."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from alembic import context
from sqlalchemy import create_engine, pool

from lingx.adapters.sqlalchemy.mappings import mapper_registry, start_mappers
from lingx.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

config = context.config
log = logging.getLogger("alembic.env")

start_mappers()
target_metadata = mapper_registry.metadata

_COMMON_OPTIONS: dict[str, bool] = {
    "render_as_batch": True,
    "compare_type": True,
    "compare_server_default": True,
}


def _database_url() -> str:
    return config.get_main_option("sqlalchemy.url") or get_database_config().uri


def _run_with(connection: Connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata, **_COMMON_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    """Emit SQL for the migrations instead of running them."""

    context.configure(
        url=_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        **_COMMON_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations on a shared connection or on a throwaway engine."""

    existing_connection = config.attributes.get("connection")
    if existing_connection is not None:
        _run_with(existing_connection)
        return

    engine = create_engine(_database_url(), poolclass=pool.NullPool, future=True)
    try:
        with engine.connect() as connection:
            _run_with(connection)
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    log.debug("Running migrations online")
    run_migrations_online()

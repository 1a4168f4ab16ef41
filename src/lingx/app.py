"""Application orchestration entry points."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from lingx.adapters.files import LocalCatalogStore
from lingx.adapters.remote import LingxApiClient, RemoteBranchCatalog
from lingx.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, is_started, startup
from lingx.api import create_app
from lingx.domain.reconciliation import ResolutionMode, build_policy
from lingx.domain.sync import diff_local_remote, pull_catalogs, push_catalogs, sync_catalogs

if TYPE_CHECKING:
    from collections.abc import Iterable

    from fastapi import FastAPI

    from lingx.config import ProjectConfig, ServerConfig
    from lingx.domain.ports.prompting import ConflictPrompt
    from lingx.domain.ports.unit_of_work import CatalogUnitOfWorkFactory
    from lingx.domain.reconciliation import DiffResult
    from lingx.domain.sync import FullSyncReport, SyncReport


log = getLogger(__name__)


def start_database(*, database_uri: str | None = None) -> None:
    """Initialise the database once per process."""

    if is_started():
        return
    startup(database_uri=database_uri)


def build_api(
    *,
    unit_of_work_factory: CatalogUnitOfWorkFactory | None = None,
    database_uri: str | None = None,
) -> FastAPI:
    if unit_of_work_factory is None:
        start_database(database_uri=database_uri)
    return create_app(unit_of_work_factory or SqlAlchemyUnitOfWork)


def serve(config: ServerConfig, *, database_uri: str | None = None) -> None:
    import uvicorn  # noqa: PLC0415

    app = build_api(database_uri=database_uri)
    log.info("Serving Lingx API on http://%s:%d", config.host, config.port)
    uvicorn.run(app, host=config.host, port=config.port, log_level="info")


def api_client(config: ProjectConfig) -> LingxApiClient:
    return LingxApiClient(config=config.api)


def open_local_store(config: ProjectConfig) -> LocalCatalogStore:
    return LocalCatalogStore(config.files)


def open_remote_branch(
    config: ProjectConfig,
    *,
    client: LingxApiClient | None = None,
) -> RemoteBranchCatalog:
    """Resolve the configured project/space/branch to a remote branch catalog."""

    effective_client = client or api_client(config)
    branch = effective_client.resolve_branch(config.project, config.space, config.branch)
    label = f"{config.project}/{config.space}/{branch.name}"
    return RemoteBranchCatalog(effective_client, branch.id, label=label)


def diff_project(
    config: ProjectConfig,
    *,
    languages: Iterable[str] | None = None,
    client: LingxApiClient | None = None,
) -> DiffResult:
    return diff_local_remote(
        open_local_store(config),
        open_remote_branch(config, client=client),
        languages=languages,
    )


def push_project(
    config: ProjectConfig,
    *,
    mode: ResolutionMode,
    prompt: ConflictPrompt | None = None,
    delete_remote: bool = False,
    languages: Iterable[str] | None = None,
    dry_run: bool = False,
    client: LingxApiClient | None = None,
) -> SyncReport:
    """Push local translation files to the configured remote branch."""

    log.info(
        "Pushing %s to %s/%s/%s (mode=%s, delete=%s, dry_run=%s)",
        config.files.directory,
        config.project,
        config.space,
        config.branch,
        mode.value,
        delete_remote,
        dry_run,
    )
    return push_catalogs(
        open_local_store(config),
        open_remote_branch(config, client=client),
        build_policy(mode, prompt=prompt, resolutions=()),
        delete_remote=delete_remote,
        languages=languages,
        dry_run=dry_run,
    )


def pull_project(
    config: ProjectConfig,
    *,
    mode: ResolutionMode,
    prompt: ConflictPrompt | None = None,
    languages: Iterable[str] | None = None,
    dry_run: bool = False,
    client: LingxApiClient | None = None,
) -> SyncReport:
    """Pull the configured remote branch into the local translation files."""

    config.files.directory.mkdir(parents=True, exist_ok=True)
    return pull_catalogs(
        open_remote_branch(config, client=client),
        open_local_store(config),
        build_policy(mode, prompt=prompt, resolutions=()),
        languages=languages,
        dry_run=dry_run,
    )


def sync_project(
    config: ProjectConfig,
    *,
    mode: ResolutionMode,
    prompt: ConflictPrompt | None = None,
    delete_remote: bool = False,
    languages: Iterable[str] | None = None,
    dry_run: bool = False,
    client: LingxApiClient | None = None,
) -> FullSyncReport:
    """Push local changes, then pull what only the remote has."""

    return sync_catalogs(
        open_local_store(config),
        open_remote_branch(config, client=client),
        build_policy(mode, prompt=prompt, resolutions=()),
        delete_remote=delete_remote,
        languages=languages,
        dry_run=dry_run,
    )

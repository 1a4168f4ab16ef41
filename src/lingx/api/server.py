"""FastAPI application exposing spaces, branches and branch catalogs.

Handlers are plain ``def`` functions: each one runs its use case in a worker
thread with its own unit of work, so the synchronous SQLAlchemy stack is used
as-is.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import APIRouter, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from lingx.domain.branches import (
    BranchCatalog,
    create_branch,
    create_space,
    diff_branches,
    get_space,
    list_spaces,
    merge_branches,
)
from lingx.domain.errors import (
    AlreadyExistsError,
    CatalogNotFoundError,
    CatalogWriteError,
    InvalidReconciliationError,
    LingxError,
    ReconciliationRetryError,
    StaleCatalogError,
    UnresolvedConflictError,
)
from lingx.domain.model import Catalog

from .schemas import (
    BranchDiffResponse,
    BranchInfo,
    ChangedEntry,
    CreateBranchRequest,
    CreateSpaceRequest,
    ErrorCode,
    ErrorResponse,
    MergeRequest,
    MergeResponse,
    SpaceDetail,
    SpaceList,
    SpaceSummary,
    TranslationsResponse,
    UpdateTranslationsRequest,
    UpdateTranslationsResponse,
    nested_to_wire,
)

if TYPE_CHECKING:
    from lingx.domain.branches import SpaceOverview
    from lingx.domain.ports.unit_of_work import CatalogUnitOfWorkFactory

log = logging.getLogger(__name__)

HTTP_422_UNPROCESSABLE = 422


def _space_detail(overview: SpaceOverview) -> SpaceDetail:
    space = overview.space
    return SpaceDetail(
        id=space.id,
        slug=space.slug,
        name=space.name,
        branches=[BranchInfo.from_branch(branch) for branch in overview.branches],
    )


def _error(status_code: int, error: ErrorResponse) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


def _status_for(exc: LingxError) -> tuple[int, ErrorCode]:  # noqa: PLR0911
    if isinstance(exc, CatalogNotFoundError):
        return status.HTTP_404_NOT_FOUND, ErrorCode.NOT_FOUND
    if isinstance(exc, AlreadyExistsError):
        return status.HTTP_409_CONFLICT, ErrorCode.ALREADY_EXISTS
    if isinstance(exc, StaleCatalogError | ReconciliationRetryError):
        return status.HTTP_409_CONFLICT, ErrorCode.STALE_REVISION
    if isinstance(exc, UnresolvedConflictError):
        return status.HTTP_409_CONFLICT, ErrorCode.UNRESOLVED_CONFLICTS
    if isinstance(exc, InvalidReconciliationError):
        return HTTP_422_UNPROCESSABLE, ErrorCode.INVALID_REQUEST
    if isinstance(exc, CatalogWriteError):
        return status.HTTP_503_SERVICE_UNAVAILABLE, ErrorCode.WRITE_FAILED
    return status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.WRITE_FAILED


async def _handle_domain_error(_request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, LingxError)
    status_code, code = _status_for(exc)
    conflicts: list[ChangedEntry] = []
    if isinstance(exc, UnresolvedConflictError):
        conflicts = [ChangedEntry.from_conflict(conflict) for conflict in exc.conflicts]
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        log.error("Request failed: %s", exc)
    else:
        log.info("Request rejected (%s): %s", code.value, exc)
    return _error(status_code, ErrorResponse(detail=str(exc), code=code, conflicts=conflicts))


async def _handle_value_error(_request: Request, exc: Exception) -> JSONResponse:
    return _error(
        HTTP_422_UNPROCESSABLE,
        ErrorResponse(detail=str(exc), code=ErrorCode.INVALID_REQUEST),
    )


async def _handle_validation_error(_request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, RequestValidationError)
    messages = [
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
        for error in exc.errors()
    ]
    return _error(
        HTTP_422_UNPROCESSABLE,
        ErrorResponse(detail="; ".join(messages), code=ErrorCode.INVALID_REQUEST),
    )


def build_router(unit_of_work_factory: CatalogUnitOfWorkFactory) -> APIRouter:  # noqa: C901
    router = APIRouter(prefix="/api")

    @router.get("/projects/{project}/spaces", response_model=SpaceList)
    def list_project_spaces(project: str) -> SpaceList:
        spaces = list_spaces(unit_of_work_factory, project)
        return SpaceList(spaces=[SpaceSummary.from_space(space) for space in spaces])

    @router.post(
        "/projects/{project}/spaces",
        response_model=SpaceDetail,
        status_code=status.HTTP_201_CREATED,
    )
    def create_project_space(project: str, request: CreateSpaceRequest) -> SpaceDetail:
        overview = create_space(
            unit_of_work_factory,
            project,
            request.name,
            slug=request.slug,
            project_name=request.project_name,
        )
        return _space_detail(overview)

    @router.get("/spaces/{space_id}", response_model=SpaceDetail)
    def read_space(space_id: UUID) -> SpaceDetail:
        return _space_detail(get_space(unit_of_work_factory, space_id))

    @router.post(
        "/spaces/{space_id}/branches",
        response_model=BranchInfo,
        status_code=status.HTTP_201_CREATED,
    )
    def create_space_branch(space_id: UUID, request: CreateBranchRequest) -> BranchInfo:
        branch = create_branch(
            unit_of_work_factory,
            space_id,
            request.name,
            from_branch_id=request.from_branch_id,
        )
        return BranchInfo.from_branch(branch)

    @router.get("/branches/{branch_id}/translations", response_model=TranslationsResponse)
    def read_translations(branch_id: UUID) -> TranslationsResponse:
        catalog = BranchCatalog(unit_of_work_factory, branch_id).load_catalog()
        return TranslationsResponse(
            translations=nested_to_wire(catalog.to_nested()),
            languages=list(catalog.languages),
            revision=catalog.revision,
        )

    @router.put(
        "/branches/{branch_id}/translations",
        response_model=UpdateTranslationsResponse,
    )
    def update_translations(
        branch_id: UUID,
        request: UpdateTranslationsRequest,
    ) -> UpdateTranslationsResponse:
        # validates language codes, keys and values the same way stored catalogs are
        upserts = Catalog.from_nested(request.translations)
        deletes = [(entry.language, entry.key) for entry in request.deletes]
        overlap = sorted(set(upserts.identities()) & set(deletes))
        if overlap:
            language, key = overlap[0]
            raise InvalidReconciliationError(f"{language}:{key} is both upserted and deleted")
        result = BranchCatalog(unit_of_work_factory, branch_id).write(
            upserts=upserts,
            deletes=deletes,
            expected_revision=request.expected_revision,
        )
        return UpdateTranslationsResponse(
            upserted=result.upserted,
            deleted=result.deleted,
            revision=result.revision,
        )

    @router.get(
        "/branches/{source_branch_id}/diff/{target_branch_id}",
        response_model=BranchDiffResponse,
    )
    def read_branch_diff(source_branch_id: UUID, target_branch_id: UUID) -> BranchDiffResponse:
        result = diff_branches(unit_of_work_factory, source_branch_id, target_branch_id)
        return BranchDiffResponse.build(result.source, result.target, result.diff)

    @router.post("/branches/{source_branch_id}/merge", response_model=MergeResponse)
    def merge_branch(source_branch_id: UUID, request: MergeRequest) -> MergeResponse:
        result = merge_branches(
            unit_of_work_factory,
            source_branch_id,
            request.target_branch_id,
            resolutions=[resolution.to_domain() for resolution in request.resolutions],
            delete_unmatched=request.delete_unmatched,
        )
        return MergeResponse.from_result(result)

    return router


def create_app(unit_of_work_factory: CatalogUnitOfWorkFactory) -> FastAPI:
    """Build the API around ``unit_of_work_factory``.

    The caller is responsible for database startup; tests hand in a factory
    bound to a throwaway engine.
    """

    app = FastAPI(title="Lingx", version="0.1.0")
    app.include_router(build_router(unit_of_work_factory))
    app.add_exception_handler(LingxError, _handle_domain_error)
    app.add_exception_handler(ValueError, _handle_value_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    return app

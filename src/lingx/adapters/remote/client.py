"""HTTP client for the Lingx API."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import BaseModel, ValidationError

from lingx.adapters.http_resilience import ResilienceConfig, ResilientClient
from lingx.api.schemas import (
    BranchDiffResponse,
    BranchInfo,
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
)
from lingx.config import ApiConfig
from lingx.domain.errors import (
    AlreadyExistsError,
    CatalogNotFoundError,
    CatalogWriteError,
    InvalidReconciliationError,
    LingxError,
    StaleCatalogError,
    UnresolvedConflictError,
)
from lingx.domain.model import slugify

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

log = getLogger(__name__)


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


class LingxAPIError(LingxError):
    """Raised when the API answers with an error the domain has no name for."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _error_payload(response: httpx.Response) -> ErrorResponse:
    try:
        return ErrorResponse.model_validate(response.json())
    except (ValueError, ValidationError):
        return ErrorResponse(detail=response.text or response.reason_phrase)


def _raise_for_error(response: httpx.Response, *, identity: str) -> None:
    if response.is_success:
        return
    error = _error_payload(response)
    log.debug("API error %s on %s: %s", response.status_code, identity, error.detail)

    match error.code:
        case ErrorCode.NOT_FOUND:
            raise CatalogNotFoundError(identity)
        case ErrorCode.ALREADY_EXISTS:
            raise AlreadyExistsError(error.detail)
        case ErrorCode.STALE_REVISION:
            raise StaleCatalogError(identity, expected=None, actual=None)
        case ErrorCode.UNRESOLVED_CONFLICTS:
            raise UnresolvedConflictError([entry.to_conflict() for entry in error.conflicts])
        case ErrorCode.INVALID_REQUEST:
            raise InvalidReconciliationError(error.detail)
        case ErrorCode.WRITE_FAILED:
            raise CatalogWriteError(error.detail, retryable=True)
        case None:
            pass

    if response.status_code == httpx.codes.NOT_FOUND:
        raise CatalogNotFoundError(identity)
    raise LingxAPIError(
        f"Lingx API error {response.status_code}: {error.detail}",
        status_code=response.status_code,
    )


@dataclass(slots=True)
class LingxApiClient:
    """Synchronous facade over the async API client.

    Every call opens its own client and runs to completion with
    ``asyncio.run``; callers never see coroutines.
    """

    config: ApiConfig = field(default_factory=ApiConfig.from_environment)
    resilience: ResilienceConfig | None = None
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    def list_spaces(self, project: str) -> SpaceList:
        return self._call(
            "GET", f"/api/projects/{project}/spaces", SpaceList, identity=f"project {project}"
        )

    def create_space(self, project: str, request: CreateSpaceRequest) -> SpaceDetail:
        return self._call(
            "POST",
            f"/api/projects/{project}/spaces",
            SpaceDetail,
            identity=f"project {project}",
            body=request,
        )

    def get_space(self, space_id: UUID) -> SpaceDetail:
        return self._call(
            "GET", f"/api/spaces/{space_id}", SpaceDetail, identity=f"space {space_id}"
        )

    def create_branch(self, space_id: UUID, request: CreateBranchRequest) -> BranchInfo:
        return self._call(
            "POST",
            f"/api/spaces/{space_id}/branches",
            BranchInfo,
            identity=f"space {space_id}",
            body=request,
        )

    def get_translations(self, branch_id: UUID) -> TranslationsResponse:
        return self._call(
            "GET",
            f"/api/branches/{branch_id}/translations",
            TranslationsResponse,
            identity=f"branch {branch_id}",
        )

    def put_translations(
        self,
        branch_id: UUID,
        request: UpdateTranslationsRequest,
    ) -> UpdateTranslationsResponse:
        return self._call(
            "PUT",
            f"/api/branches/{branch_id}/translations",
            UpdateTranslationsResponse,
            identity=f"branch {branch_id}",
            body=request,
        )

    def diff(self, source_branch_id: UUID, target_branch_id: UUID) -> BranchDiffResponse:
        return self._call(
            "GET",
            f"/api/branches/{source_branch_id}/diff/{target_branch_id}",
            BranchDiffResponse,
            identity=f"branches {source_branch_id}..{target_branch_id}",
        )

    def merge(self, source_branch_id: UUID, request: MergeRequest) -> MergeResponse:
        return self._call(
            "POST",
            f"/api/branches/{source_branch_id}/merge",
            MergeResponse,
            identity=f"branch {request.target_branch_id}",
            body=request,
        )

    def resolve_space(self, project: str, space: str) -> SpaceSummary:
        """Find a space by project slug and space slug (or display name)."""

        space_slug = slugify(space)
        spaces = self.list_spaces(project).spaces
        match = next((s for s in spaces if s.slug == space_slug or s.name == space), None)
        if match is None:
            raise CatalogNotFoundError(f"space {project}/{space}")
        return match

    def resolve_branch(self, project: str, space: str, branch: str) -> BranchInfo:
        """Find a branch by project slug, space slug (or name) and branch name."""

        branch_slug = slugify(branch)
        detail = self.get_space(self.resolve_space(project, space).id)
        found = next(
            (b for b in detail.branches if b.slug == branch_slug or b.name == branch),
            None,
        )
        if found is None:
            raise CatalogNotFoundError(f"branch {project}/{space}/{branch}")
        return found

    def _call[TModel: BaseModel](
        self,
        method: str,
        path: str,
        model: type[TModel],
        *,
        identity: str,
        body: BaseModel | None = None,
    ) -> TModel:
        return asyncio.run(self._call_async(method, path, model, identity=identity, body=body))

    async def _call_async[TModel: BaseModel](
        self,
        method: str,
        path: str,
        model: type[TModel],
        *,
        identity: str,
        body: BaseModel | None,
    ) -> TModel:
        resilience = self.resilience or ResilienceConfig.for_api(self.config)
        payload: Any = None
        if body is not None:
            payload = body.model_dump(mode="json", by_alias=True)

        async with self.client_factory(resilience) as client:
            try:
                if payload is None:
                    response = await client.request(method, path)
                else:
                    response = await client.request(method, path, json=payload)
            except httpx.HTTPError as exc:
                if method == "GET":
                    raise LingxAPIError(f"Request to {path} failed: {exc}") from exc
                raise CatalogWriteError(f"Request to {path} failed: {exc}") from exc

        _raise_for_error(response, identity=identity)
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise LingxAPIError(f"Unexpected response payload from {path}") from exc

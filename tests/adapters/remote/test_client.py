from __future__ import annotations

import json
import uuid
from typing import TYPE_CHECKING

import httpx
import pytest

from lingx.adapters.http_resilience import ResilienceConfig, ResilientClient, RetryPolicy
from lingx.adapters.remote import LingxAPIError, LingxApiClient, RemoteBranchCatalog
from lingx.api.schemas import CreateSpaceRequest
from lingx.config import ApiConfig
from lingx.domain.errors import (
    AlreadyExistsError,
    CatalogNotFoundError,
    CatalogWriteError,
    StaleCatalogError,
    UnresolvedConflictError,
)
from lingx.domain.reconciliation import ChangeKind, Delete, MergePlan, Upsert

if TYPE_CHECKING:
    from collections.abc import Callable

    Handler = Callable[[httpx.Request], httpx.Response]

SPACE_ID = uuid.UUID("00000000-0000-4000-8000-000000000001")
BRANCH_ID = uuid.UUID("00000000-0000-4000-8000-000000000002")


def _client(handler: Handler, *, api_key: str | None = None) -> LingxApiClient:
    config = ApiConfig(base_url="https://lingx.test", api_key=api_key)
    headers = {"Authorization": f"Bearer {api_key}"} if api_key else None
    resilience = ResilienceConfig(
        name="lingx-test",
        base_url=config.base_url,
        retry=RetryPolicy(total=0),
        default_headers=headers,
    )
    return LingxApiClient(
        config=config,
        resilience=resilience,
        client_factory=lambda cfg: ResilientClient(cfg, transport=httpx.MockTransport(handler)),
    )


def _space_detail() -> dict[str, object]:
    return {
        "id": str(SPACE_ID),
        "slug": "frontend",
        "name": "Frontend",
        "branches": [
            {"id": str(BRANCH_ID), "name": "main", "slug": "main", "isDefault": True, "revision": 4}
        ],
    }


def test_resolve_branch_walks_project_and_space() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        if request.url.path == "/api/projects/webshop/spaces":
            summary = {"id": str(SPACE_ID), "slug": "frontend", "name": "Frontend"}
            return httpx.Response(200, json={"spaces": [summary]})
        return httpx.Response(200, json=_space_detail())

    branch = _client(handler).resolve_branch("webshop", "Frontend", "main")

    assert branch.id == BRANCH_ID
    assert branch.is_default
    assert branch.revision == 4
    assert seen == ["/api/projects/webshop/spaces", f"/api/spaces/{SPACE_ID}"]


def test_resolve_unknown_space_is_not_found() -> None:
    client = _client(lambda _request: httpx.Response(200, json={"spaces": []}))

    with pytest.raises(CatalogNotFoundError, match="webshop/mobile"):
        client.resolve_space("webshop", "mobile")


def test_requests_send_camel_case_json_and_bearer_token() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(201, json=_space_detail())

    client = _client(handler, api_key="secret")
    request_body = CreateSpaceRequest(name="Frontend", project_name="Shop")
    detail = client.create_space("webshop", request_body)

    (request,) = captured
    assert request.method == "POST"
    assert request.headers["Authorization"] == "Bearer secret"
    assert json.loads(request.content) == {"name": "Frontend", "slug": None, "projectName": "Shop"}
    assert detail.branches[0].slug == "main"


def test_default_resilience_config_carries_api_key() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"spaces": []})

    client = LingxApiClient(
        config=ApiConfig(base_url="https://lingx.test", api_key="token"),
        client_factory=lambda cfg: ResilientClient(cfg, transport=httpx.MockTransport(handler)),
    )

    client.list_spaces("webshop")

    assert captured[0].headers["Authorization"] == "Bearer token"
    assert str(captured[0].url) == "https://lingx.test/api/projects/webshop/spaces"


@pytest.mark.parametrize(
    ("status", "payload", "expected"),
    [
        (404, {"detail": "nope", "code": "not_found"}, CatalogNotFoundError),
        (404, {"detail": "Not Found"}, CatalogNotFoundError),
        (409, {"detail": "dup", "code": "already_exists"}, AlreadyExistsError),
        (409, {"detail": "moved", "code": "stale_revision"}, StaleCatalogError),
        (503, {"detail": "db down", "code": "write_failed"}, CatalogWriteError),
        (418, {"detail": "teapot"}, LingxAPIError),
    ],
)
def test_error_responses_map_to_domain_errors(
    status: int,
    payload: dict[str, object],
    expected: type[Exception],
) -> None:
    client = _client(lambda _request: httpx.Response(status, json=payload))

    with pytest.raises(expected):
        client.get_translations(BRANCH_ID)


def test_unresolved_conflicts_carry_the_conflicts() -> None:
    payload = {
        "detail": "1 unresolved conflict(s)",
        "code": "unresolved_conflicts",
        "conflicts": [
            {"language": "en", "key": "greeting", "sourceValue": "Hi", "targetValue": "Hello"}
        ],
    }
    client = _client(lambda _request: httpx.Response(409, json=payload))

    with pytest.raises(UnresolvedConflictError) as excinfo:
        client.diff(BRANCH_ID, SPACE_ID)

    assert [c.identity for c in excinfo.value.conflicts] == [("en", "greeting")]


def test_non_json_error_body_keeps_status() -> None:
    client = _client(lambda _request: httpx.Response(500, text="boom"))

    with pytest.raises(LingxAPIError) as excinfo:
        client.get_space(SPACE_ID)

    assert excinfo.value.status_code == 500
    assert "boom" in str(excinfo.value)


def test_transport_failures_on_writes_are_retryable_write_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = _client(handler)

    with pytest.raises(CatalogWriteError) as excinfo:
        client.create_space("webshop", CreateSpaceRequest(name="Frontend"))
    assert excinfo.value.retryable

    with pytest.raises(LingxAPIError):
        client.list_spaces("webshop")


def test_remote_branch_catalog_reads_and_writes() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        if request.method == "GET":
            return httpx.Response(
                200,
                json={
                    "translations": {"en": {"greeting": "Hello"}},
                    "languages": ["en"],
                    "revision": 7,
                },
            )
        return httpx.Response(200, json={"upserted": 1, "deleted": 1, "revision": 8})

    remote = RemoteBranchCatalog(_client(handler), BRANCH_ID, label="webshop/frontend/main")

    catalog = remote.load_catalog()
    remote.apply_plan(
        MergePlan(
            upserts=(Upsert("es", "greeting", "Hola", ChangeKind.ADDED),),
            deletes=(Delete("en", "legacy"),),
        ),
        expected_revision=catalog.revision,
    )

    assert catalog.value("en", "greeting") == "Hello"
    assert catalog.revision == 7
    assert remote.identity == "remote webshop/frontend/main"
    put = captured[-1]
    assert put.method == "PUT"
    assert put.url.path == f"/api/branches/{BRANCH_ID}/translations"
    assert json.loads(put.content) == {
        "translations": {"es": {"greeting": "Hola"}},
        "deletes": [{"language": "en", "key": "legacy"}],
        "expectedRevision": 7,
    }


def test_resilience_for_api_never_retries_post(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LINGX_HTTP_RETRIES", "5")

    resilience = ResilienceConfig.for_api(ApiConfig(base_url="https://lingx.test"))

    assert resilience.retry.total == 5
    assert "POST" not in resilience.retry.allowed_methods
    assert "PUT" in resilience.retry.allowed_methods
    assert resilience.default_headers == {"Accept": "application/json"}

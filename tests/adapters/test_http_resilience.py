from __future__ import annotations

import asyncio

import httpx

from lingx.adapters.http_resilience import (
    RateLimit,
    ResilienceConfig,
    ResilientClient,
    RetryPolicy,
    build_retry,
)


def _run(config: ResilienceConfig, transport: httpx.MockTransport) -> httpx.Response:
    async def call() -> httpx.Response:
        async with ResilientClient(config, transport=transport) as client:
            return await client.get("/ping")

    return asyncio.run(call())


def test_build_retry_copies_policy() -> None:
    retry = build_retry(RetryPolicy(total=5, backoff_factor=0.0))

    assert retry.total == 5
    assert retry.backoff_factor == 0.0


def test_retries_transient_status_codes() -> None:
    statuses = iter([503, 200])
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(next(statuses), json={})

    config = ResilienceConfig(
        name="test",
        base_url="https://lingx.test",
        retry=RetryPolicy(total=2, backoff_factor=0.0, backoff_jitter=0.0),
    )

    response = _run(config, httpx.MockTransport(handler))

    assert response.status_code == 200
    assert len(calls) == 2


def test_default_headers_and_response_hooks() -> None:
    seen: list[int] = []

    async def hook(response: httpx.Response) -> None:
        seen.append(response.status_code)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"auth": request.headers.get("Authorization")})

    config = ResilienceConfig(
        name="test",
        base_url="https://lingx.test",
        retry=RetryPolicy(total=0),
        ratelimit=RateLimit(max_calls=5, per_seconds=1.0),
        default_headers={"Authorization": "Bearer abc"},
        response_hooks=(hook,),
    )

    response = _run(config, httpx.MockTransport(handler))

    assert response.json() == {"auth": "Bearer abc"}
    assert seen == [200]


def test_post_is_not_replayed() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(503, json={})

    config = ResilienceConfig(
        name="test",
        base_url="https://lingx.test",
        retry=RetryPolicy(total=2, backoff_factor=0.0, backoff_jitter=0.0),
    )

    async def call() -> httpx.Response:
        async with ResilientClient(config, transport=httpx.MockTransport(handler)) as client:
            return await client.post("/api/branches/x/merge", json={})

    response = asyncio.run(call())

    assert response.status_code == 503
    assert len(calls) == 1

"""Retry, rate limit and header settings for talking to the Lingx API."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

import httpx

from .env import env_int

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .api import ApiConfig

ResponseHook = Callable[[httpx.Response], Awaitable[None] | None]

# POST creates spaces and branches and runs merges; replaying one is not safe.
IDEMPOTENT_METHODS = frozenset({"DELETE", "GET", "HEAD", "OPTIONS", "PUT"})


@dataclass(slots=True, frozen=True)
class RetryPolicy:
    total: int = 3
    backoff_factor: float = 0.5
    max_backoff_wait: float = 30.0
    respect_retry_after_header: bool = True
    allowed_methods: frozenset[str] = IDEMPOTENT_METHODS
    status_forcelist: frozenset[int] = frozenset({429, 502, 503, 504})
    retry_on_exceptions: tuple[type[httpx.HTTPError], ...] = (
        httpx.TimeoutException,
        httpx.NetworkError,
        httpx.RemoteProtocolError,
    )
    backoff_jitter: float = 1.0


@dataclass(slots=True, frozen=True)
class RateLimit:
    max_calls: int
    per_seconds: float


@dataclass(slots=True, frozen=True)
class ResilienceConfig:
    name: str
    base_url: str | None = None
    timeout_seconds: float = 30.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    ratelimit: RateLimit | None = None
    response_hooks: tuple[ResponseHook, ...] = field(default_factory=tuple)
    default_headers: Mapping[str, str] | None = None

    @classmethod
    def for_api(cls, api: ApiConfig) -> ResilienceConfig:
        """Defaults for the CLI talking to a Lingx server.

        ``LINGX_HTTP_RETRIES`` overrides how often idempotent calls are retried.
        """

        headers = {"Accept": "application/json"}
        if api.api_key:
            headers["Authorization"] = f"Bearer {api.api_key}"
        retry = RetryPolicy()
        return cls(
            name="lingx-api",
            base_url=api.base_url,
            timeout_seconds=api.timeout_seconds,
            retry=replace(retry, total=env_int("LINGX_HTTP_RETRIES", retry.total)),
            ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
            default_headers=headers,
        )

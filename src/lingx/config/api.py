"""Configuration for the HTTP API server and its clients."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .env import env_int, optional_env

DEFAULT_API_URL: Final[str] = "http://127.0.0.1:8000"
DEFAULT_HOST: Final[str] = "127.0.0.1"
DEFAULT_PORT: Final[int] = 8000


@dataclass(frozen=True, slots=True)
class ApiConfig:
    """Where the CLI finds the Lingx API.

    ``api_key`` is forwarded as a bearer token. Checking it is the job of the
    access-control layer in front of the API, not of this package.
    """

    base_url: str = DEFAULT_API_URL
    api_key: str | None = None
    timeout_seconds: float = 30.0

    @classmethod
    def from_environment(cls) -> ApiConfig:
        return cls(
            base_url=optional_env("LINGX_API_URL") or DEFAULT_API_URL,
            api_key=optional_env("LINGX_API_KEY"),
        )


@dataclass(frozen=True, slots=True)
class ServerConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    @classmethod
    def from_environment(cls) -> ServerConfig:
        return cls(
            host=optional_env("LINGX_HOST") or DEFAULT_HOST,
            port=env_int("LINGX_PORT", DEFAULT_PORT),
        )

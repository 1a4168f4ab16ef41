"""HTTP API for branch catalogs."""

from __future__ import annotations

from .server import build_router, create_app

__all__ = ["build_router", "create_app"]

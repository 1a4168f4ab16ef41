"""Remote Lingx API adapter."""

from __future__ import annotations

from .catalog import RemoteBranchCatalog
from .client import LingxAPIError, LingxApiClient

__all__ = ["LingxAPIError", "LingxApiClient", "RemoteBranchCatalog"]

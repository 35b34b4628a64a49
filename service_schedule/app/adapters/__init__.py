"""
Upstream provider adapters.

Each client turns one provider's HTTP API into plain async functions
returning raw payloads and raising ``ExternalServiceError`` on failure.
"""

from .balldontlie_client import BalldontlieClient
from .espn_client import EspnClient

__all__ = ["BalldontlieClient", "EspnClient"]

"""
ConnectorRegistry — provides access to all connectors by provider slug.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import httpx

from config.settings import Settings
from connectors.base import BaseConnector
from connectors.errors import UnknownProviderError
from connectors.google import GoogleConnector
from connectors.zoom import ZoomConnector

logger = logging.getLogger(__name__)

# ── All known connectors — add new ones here ─────────────────────────────

_ALL_CONNECTORS = (GoogleConnector, ZoomConnector)


class ConnectorRegistry:
    """
    Holds one connector instance per provider.

    Unlike a discovery-time filter, unconfigured connectors are kept: the
    OAuth routes must be able to tell the caller *which* settings are
    missing instead of answering "unknown provider".
    """

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None) -> None:
        self._connectors: Dict[str, BaseConnector] = {}
        for cls in _ALL_CONNECTORS:
            conn = cls(settings, http_client)
            self._connectors[conn.provider_name] = conn
            if conn.is_configured():
                logger.info("Connector registered: %s (%s)", conn.display_name, conn.provider_name)
            else:
                logger.warning(
                    "Connector %s not configured (missing %s)",
                    conn.provider_name,
                    ", ".join(conn.missing_config()),
                )

    def get(self, provider: str) -> Optional[BaseConnector]:
        """Get a connector by provider name."""
        return self._connectors.get(provider)

    def require(self, provider: str) -> BaseConnector:
        conn = self.get(provider)
        if conn is None:
            raise UnknownProviderError(provider)
        return conn

    def list_providers(self) -> List[Dict[str, object]]:
        """Return info about all available connectors."""
        return [
            {
                "provider": c.provider_name,
                "display_name": c.display_name,
                "configured": c.is_configured(),
            }
            for c in self._connectors.values()
        ]

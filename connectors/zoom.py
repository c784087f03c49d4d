"""
ZoomConnector — OAuth2 (user-level app) for Zoom meetings.

Zoom authenticates the client at its token endpoint with HTTP Basic auth
rather than form fields, and may rotate the refresh token on every refresh.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import httpx

from connectors.base import BaseConnector
from connectors.schemas import AccountIdentity

logger = logging.getLogger(__name__)

# Zoom OAuth2 endpoints
_ZOOM_AUTH_URL = "https://zoom.us/oauth/authorize"
_ZOOM_TOKEN_URL = "https://zoom.us/oauth/token"
_ZOOM_ME_URL = "https://api.zoom.us/v2/users/me"


class ZoomConnector(BaseConnector):
    """OAuth2 connector for Zoom."""

    auth_url = _ZOOM_AUTH_URL
    token_url = _ZOOM_TOKEN_URL

    @property
    def provider_name(self) -> str:
        return "zoom"

    @property
    def display_name(self) -> str:
        return "Zoom"

    @property
    def scopes(self) -> List[str]:
        return ["meeting:write", "user:read"]

    @property
    def client_id(self) -> str:
        return self._settings.zoom_client_id

    @property
    def client_secret(self) -> str:
        return self._settings.zoom_client_secret

    @property
    def redirect_uri(self) -> str:
        return self._settings.zoom_redirect_uri

    def _token_request_auth(self, form: Dict[str, str]) -> Optional[httpx.Auth]:
        return httpx.BasicAuth(self.client_id, self.client_secret)

    async def fetch_identity(self, access_token: str) -> AccountIdentity:
        me = await self._get_json(_ZOOM_ME_URL, access_token)
        account_id = me.get("id")
        return AccountIdentity(
            email=me.get("email"),
            account_id=str(account_id) if account_id is not None else None,
        )

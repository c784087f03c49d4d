"""
GoogleConnector — OAuth2 web flow for Google Calendar.

Google only hands out a refresh token on an explicit consent screen, so
every authorization request forces ``access_type=offline`` and
``prompt=consent``.
"""

from __future__ import annotations

import logging
from typing import Dict, List

from connectors.base import BaseConnector
from connectors.schemas import AccountIdentity

logger = logging.getLogger(__name__)

# Google OAuth2 endpoints
_GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
_GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
_GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"


class GoogleConnector(BaseConnector):
    """OAuth2 connector for Google Calendar."""

    auth_url = _GOOGLE_AUTH_URL
    token_url = _GOOGLE_TOKEN_URL

    @property
    def provider_name(self) -> str:
        return "google"

    @property
    def display_name(self) -> str:
        return "Google Calendar"

    @property
    def scopes(self) -> List[str]:
        return [
            "openid",
            "email",
            "profile",
            "https://www.googleapis.com/auth/calendar.readonly",
            "https://www.googleapis.com/auth/calendar.events",
        ]

    @property
    def client_id(self) -> str:
        return self._settings.google_oauth_client_id

    @property
    def client_secret(self) -> str:
        return self._settings.google_oauth_client_secret

    @property
    def redirect_uri(self) -> str:
        return self._settings.google_oauth_redirect_uri

    def extra_auth_params(self) -> Dict[str, str]:
        return {
            "access_type": "offline",       # gets refresh_token
            "prompt": "consent",            # force consent to always get refresh_token
            "include_granted_scopes": "true",
        }

    async def fetch_identity(self, access_token: str) -> AccountIdentity:
        info = await self._get_json(_GOOGLE_USERINFO_URL, access_token)
        return AccountIdentity(email=info.get("email"), account_id=info.get("sub"))

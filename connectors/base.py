"""
BaseConnector — abstract interface for all OAuth2 connectors.

Every provider (Google, Zoom, …) subclasses this and supplies its
endpoints, scopes and the few places where its protocol differs
(client authentication, identity lookup).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional
from urllib.parse import urlencode

import httpx

from config.settings import Settings
from connectors.errors import ProviderError
from connectors.schemas import AccountIdentity, TokenGrant

logger = logging.getLogger(__name__)


class BaseConnector(ABC):
    """Abstract base for all OAuth2 connectors."""

    auth_url: str
    token_url: str

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None) -> None:
        self._settings = settings
        self._http_client = http_client

    # ── Identity ────────────────────────────────────────────────────────
    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique slug: 'google', 'zoom'."""
        ...

    @property
    @abstractmethod
    def display_name(self) -> str:
        ...

    @property
    @abstractmethod
    def scopes(self) -> List[str]:
        """OAuth scopes required by this connector."""
        ...

    # ── Configuration ───────────────────────────────────────────────────
    @property
    @abstractmethod
    def client_id(self) -> str:
        ...

    @property
    @abstractmethod
    def client_secret(self) -> str:
        ...

    @property
    @abstractmethod
    def redirect_uri(self) -> str:
        ...

    def missing_config(self) -> List[str]:
        """Env var names this connector needs but which are empty."""
        return self._settings.missing_for(self.provider_name)

    def is_configured(self) -> bool:
        return not self.missing_config()

    # ── OAuth flow ──────────────────────────────────────────────────────

    def extra_auth_params(self) -> Dict[str, str]:
        """Provider-specific additions to the authorization URL."""
        return {}

    def get_auth_url(self, state: str) -> str:
        """
        Build the provider's OAuth2 authorization URL.

        Parameters
        ----------
        state : str
            Signed state token (employee_id + return_to).
        """
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": " ".join(self.scopes),
            **self.extra_auth_params(),
            "state": state,
        }
        return f"{self.auth_url}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> TokenGrant:
        """Exchange an authorization code for tokens."""
        return await self._request_token(
            "token exchange",
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri,
            },
        )

    async def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        """Mint a new access token from a stored refresh token."""
        return await self._request_token(
            "token refresh",
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            },
        )

    @abstractmethod
    async def fetch_identity(self, access_token: str) -> AccountIdentity:
        """Look up the connected account's email / id.  May raise."""
        ...

    # ── HTTP helpers ────────────────────────────────────────────────────

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(timeout=self._settings.http_timeout_seconds) as client:
            yield client

    def _token_request_auth(self, form: Dict[str, str]) -> Optional[httpx.Auth]:
        """
        Attach client credentials to a token request.

        Default is ``client_secret_post``: credentials go in the form body.
        """
        form["client_id"] = self.client_id
        form["client_secret"] = self.client_secret
        return None

    async def _request_token(self, step: str, form: Dict[str, str]) -> TokenGrant:
        auth = self._token_request_auth(form)
        try:
            async with self._client() as client:
                resp = await client.post(
                    self.token_url,
                    data=form,
                    auth=auth,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            # timeouts and connection failures look like any other failed call
            logger.warning("%s %s error: %s", self.provider_name, step, exc)
            raise ProviderError(self.provider_name, step, raw=f"{type(exc).__name__}: {exc}") from exc

        if resp.status_code // 100 != 2:
            logger.warning("%s %s returned HTTP %s", self.provider_name, step, resp.status_code)
            raise ProviderError(self.provider_name, step, status=resp.status_code, raw=resp.text)

        try:
            data: Dict[str, Any] = resp.json()
            return TokenGrant(
                access_token=data["access_token"],
                refresh_token=data.get("refresh_token") or None,
                expires_in=int(data.get("expires_in") or 3600),
                scope=data.get("scope"),
                token_type=data.get("token_type"),
            )
        except (ValueError, KeyError, TypeError) as exc:
            raise ProviderError(self.provider_name, step, status=resp.status_code, raw=resp.text) from exc

    async def _get_json(self, url: str, access_token: str) -> Dict[str, Any]:
        async with self._client() as client:
            resp = await client.get(url, headers={"Authorization": f"Bearer {access_token}"})
        resp.raise_for_status()
        return resp.json()

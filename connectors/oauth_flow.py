"""
OAuth start / callback orchestration.

``start``    → signed state + provider authorization URL (no persistence).
``complete`` → verify state → exchange code → resolve identity → persist →
               (optional legacy notify) → redirect URL for the host app.

The callback steps run strictly in that order; persistence depends on the
exchange result.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from config.settings import Settings
from connectors.base import BaseConnector
from connectors.errors import ConfigurationError, InvalidRequestError, InvalidStateError
from connectors.notifier import LegacyTokenNotifier
from connectors.registry import ConnectorRegistry
from connectors.schemas import AccountIdentity, IntegrationPatch, Provider
from connectors.state import mint_state, verify_state
from connectors.token_store import CredentialStore

logger = logging.getLogger(__name__)


def with_query(url: str, params: Dict[str, str]) -> str:
    """Append ``params`` to ``url``, replacing keys that already exist."""
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in params]
    query.extend(params.items())
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


def resolve_return_to(
    fixed_url: str,
    state_return_to: Optional[str],
    request_url: Optional[str],
    *,
    landing_path: str = "/call",
    preview_prefixes: Optional[List[str]] = None,
) -> str:
    """
    Decide where the user lands after a callback.

    1. A configured fixed URL always wins.
    2. Otherwise the origin of the state's ``return_to``, coerced onto the
       landing path (keeping a preview prefix such as ``/version-test``).
    3. Otherwise the origin of the callback request itself.
    """
    fixed = (fixed_url or "").strip()
    if fixed:
        return fixed

    if state_return_to:
        parts = urlsplit(state_return_to)
        if parts.scheme in ("http", "https") and parts.netloc:
            path = landing_path
            for prefix in preview_prefixes or []:
                if parts.path.startswith(prefix.rstrip("/") + "/"):
                    path = prefix.rstrip("/") + landing_path
                    break
            return f"{parts.scheme}://{parts.netloc}{path}"

    if request_url:
        parts = urlsplit(request_url)
        if parts.scheme and parts.netloc:
            return f"{parts.scheme}://{parts.netloc}{landing_path}"

    return landing_path


class OAuthFlow:
    def __init__(
        self,
        settings: Settings,
        registry: ConnectorRegistry,
        store: CredentialStore,
        notifier: Optional[LegacyTokenNotifier] = None,
    ) -> None:
        self._settings = settings
        self._registry = registry
        self._store = store
        self._notifier = notifier

    def _check_config(self, provider: str) -> None:
        missing = self._settings.missing_for(provider)
        if missing:
            logger.error("OAuth %s misconfigured, missing: %s", provider, ", ".join(missing))
            raise ConfigurationError(missing, provider)

    # ── start ───────────────────────────────────────────────────────────

    def start(self, provider: str, employee_id: Optional[str], return_to: Optional[str] = None) -> str:
        """Return the provider authorization URL for ``employee_id``."""
        connector = self._registry.require(provider)
        employee_id = (employee_id or "").strip()
        if not employee_id:
            raise InvalidRequestError("employee_id required")
        self._check_config(provider)

        return_to = (return_to or "").strip() or self._settings.app_base_url or "/"
        state = mint_state(employee_id, return_to, self._settings.oauth_state_secret)
        logger.info("OAuth start: provider=%s employee=%s", provider, employee_id)
        return connector.get_auth_url(state)

    # ── callback ────────────────────────────────────────────────────────

    async def _identity(self, connector: BaseConnector, access_token: str) -> AccountIdentity:
        try:
            return await connector.fetch_identity(access_token)
        except Exception as exc:
            # identity is enrichment only; the connection itself succeeded
            logger.warning("%s identity lookup failed: %s", connector.provider_name, exc)
            return AccountIdentity()

    async def complete(
        self,
        provider: str,
        code: Optional[str],
        state: Optional[str],
        request_url: Optional[str] = None,
    ) -> str:
        """Finish the authorization and return the URL to redirect the user to."""
        connector = self._registry.require(provider)
        self._check_config(provider)

        if not code:
            raise InvalidRequestError("code missing")
        if not state:
            raise InvalidRequestError("state missing")

        payload = verify_state(state, self._settings.oauth_state_secret)
        if payload is None:
            logger.warning("OAuth %s callback with invalid state", provider)
            raise InvalidStateError()
        employee_id = payload.employee_id

        return_to = resolve_return_to(
            self._settings.app_return_to_url,
            payload.return_to,
            request_url,
            landing_path=self._settings.app_landing_path,
            preview_prefixes=self._settings.app_preview_prefixes,
        )

        grant = await connector.exchange_code(code)
        identity = await self._identity(connector, grant.access_token)

        patch = IntegrationPatch(
            access_token=grant.access_token,
            expiry=datetime.now(timezone.utc) + timedelta(seconds=grant.expires_in),
            scopes=grant.scope or " ".join(connector.scopes),
            # absent on re-consent: the stored refresh token is kept
            refresh_token=grant.refresh_token,
            # always written: an unknown identity clears the previous account
            provider_account_email=identity.email,
            provider_account_id=identity.account_id,
        )
        await self._store.upsert(employee_id, Provider(provider), patch)
        logger.info(
            "OAuth connected: employee=%s provider=%s account=%s",
            employee_id, provider, identity.email or "?",
        )

        params = {
            "connected": provider,
            f"{provider}_auth": "ok",
            "employee_id": employee_id,
        }
        if identity.email:
            params[f"{provider}_email"] = identity.email

        if self._notifier is not None and self._notifier.enabled:
            delivered = await self._notifier.notify(
                {
                    "employee_id": employee_id,
                    "provider": provider,
                    f"{provider}_email": identity.email or "",
                    "access_token": grant.access_token,
                    "refresh_token": grant.refresh_token or "",
                    "expires_in": grant.expires_in,
                }
            )
            if not delivered:
                params["legacy_sync"] = "failed"

        return with_query(return_to, params)

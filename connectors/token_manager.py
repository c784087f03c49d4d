"""
Token manager — hand out a currently-valid access token per employee +
provider, refreshing and persisting transparently.

This is the single interface that calendar / meeting code uses to get an
active token.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Dict, Optional, Tuple

from connectors.errors import NotConnectedError
from connectors.registry import ConnectorRegistry
from connectors.schemas import IntegrationPatch, IntegrationRecord, Provider
from connectors.token_store import CredentialStore

logger = logging.getLogger(__name__)

# Refresh this long before the stored expiry (clock skew + in-flight requests).
REFRESH_MARGIN = timedelta(seconds=60)


def is_stale(record: IntegrationRecord, now: Optional[datetime] = None) -> bool:
    if not record.access_token or record.expiry is None:
        return True
    now = now or datetime.now(timezone.utc)
    return now >= record.expiry - REFRESH_MARGIN


class TokenManager:
    """
    Refreshes are serialized per ``(employee_id, provider)`` so concurrent
    callers share one provider round trip instead of racing each other.
    """

    def __init__(self, store: CredentialStore, registry: ConnectorRegistry) -> None:
        self._store = store
        self._registry = registry
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = {}
        self._waiters: Dict[Tuple[str, str], int] = {}

    @asynccontextmanager
    async def _refresh_lock(self, employee_id: str, provider: Provider) -> AsyncIterator[None]:
        """Hold the per-key lock; the entry is dropped once nobody holds or awaits it."""
        key = (employee_id, provider.value)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if not self._waiters[key]:
                del self._waiters[key]
                del self._locks[key]

    async def _load(self, employee_id: str, provider: Provider) -> IntegrationRecord:
        record = await self._store.get(employee_id, provider)
        if record is None or not record.refresh_token:
            raise NotConnectedError(employee_id, provider.value)
        return record

    async def get_access_token(self, employee_id: str, provider: Provider | str) -> str:
        """
        Return a valid access token for the employee + provider.

        1. Look up the record; no record or no refresh token → ``NotConnectedError``.
        2. If the token is still fresh, return it with no network call.
        3. Otherwise refresh under the per-key lock, persist, and return it.

        Provider failures propagate as ``ProviderError`` and leave the store
        untouched.
        """
        provider = Provider(provider)
        record = await self._load(employee_id, provider)
        if not is_stale(record):
            return record.access_token

        async with self._refresh_lock(employee_id, provider):
            # Another caller may have refreshed while we waited.
            record = await self._load(employee_id, provider)
            if not is_stale(record):
                return record.access_token

            connector = self._registry.require(provider.value)
            grant = await connector.refresh_access_token(record.refresh_token)

            patch = IntegrationPatch(
                access_token=grant.access_token,
                expiry=datetime.now(timezone.utc) + timedelta(seconds=grant.expires_in),
                refresh_token=grant.refresh_token or record.refresh_token,
            )
            await self._store.upsert(employee_id, provider, patch)
            logger.info("Refreshed %s token for employee %s", provider.value, employee_id)
            return grant.access_token

"""
Post-commit notification to the host app's legacy token sink.

Some host-app deployments still keep their own copy of the tokens behind
a backend-workflow URL.  The credential store stays the source of truth:
this call runs only after the store commit, and a failure is logged and
reported back to the caller but never undoes the commit.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class LegacyTokenNotifier:
    def __init__(
        self,
        url: str,
        api_key: str = "",
        *,
        timeout: float = 15.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._url = (url or "").strip()
        self._api_key = (api_key or "").strip()
        self._timeout = timeout
        self._http_client = http_client

    @property
    def enabled(self) -> bool:
        return bool(self._url)

    async def _post(self, client: httpx.AsyncClient, body: Dict[str, Any]) -> httpx.Response:
        headers = {"x-scheduler-api-key": self._api_key} if self._api_key else {}
        return await client.post(self._url, json=body, headers=headers)

    async def notify(self, body: Dict[str, Any]) -> bool:
        """
        POST ``body`` to the legacy sink.

        Returns True on success (or when no sink is configured), False when
        the sink could not be reached or answered non-2xx.
        """
        if not self.enabled:
            return True
        try:
            if self._http_client is not None:
                resp = await self._post(self._http_client, body)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    resp = await self._post(client, body)
        except httpx.HTTPError as exc:
            logger.error(
                "Legacy token sink unreachable for %s/%s: %s",
                body.get("provider"), body.get("employee_id"), exc,
            )
            return False

        if resp.status_code // 100 != 2:
            logger.error(
                "Legacy token sink rejected %s/%s: HTTP %s %s",
                body.get("provider"), body.get("employee_id"), resp.status_code, resp.text[:500],
            )
            return False
        return True

"""
Zoom meeting creation on behalf of the connected employee.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from connectors.errors import ProviderError
from connectors.schemas import Provider
from connectors.token_manager import TokenManager
from integrations.schemas import ZoomMeetingRequest, ZoomMeetingResponse

logger = logging.getLogger(__name__)

_ZOOM_MEETINGS_URL = "https://api.zoom.us/v2/users/me/meetings"
_SCHEDULED_MEETING = 2


class ZoomMeetingClient:
    def __init__(
        self,
        token_manager: TokenManager,
        *,
        timeout: float = 15.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._tokens = token_manager
        self._timeout = timeout
        self._http_client = http_client

    async def create_meeting(self, req: ZoomMeetingRequest) -> ZoomMeetingResponse:
        token = await self._tokens.get_access_token(req.employee_id, Provider.ZOOM)
        body = {
            "topic": req.topic,
            "type": _SCHEDULED_MEETING,
            "start_time": req.start_time,
            "duration": req.duration,
            "timezone": req.timezone,
        }
        headers = {"Authorization": f"Bearer {token}"}
        try:
            if self._http_client is not None:
                resp = await self._http_client.post(_ZOOM_MEETINGS_URL, json=body, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    resp = await client.post(_ZOOM_MEETINGS_URL, json=body, headers=headers)
        except httpx.HTTPError as exc:
            raise ProviderError("zoom", "meeting create", raw=f"{type(exc).__name__}: {exc}") from exc

        if resp.status_code // 100 != 2:
            logger.warning("Zoom meeting create for %s returned HTTP %s", req.employee_id, resp.status_code)
            raise ProviderError("zoom", "meeting create", status=resp.status_code, raw=resp.text)

        data = resp.json()
        logger.info("Created Zoom meeting %s for %s", data.get("id"), req.employee_id)
        return ZoomMeetingResponse(
            meeting_id=str(data["id"]),
            join_url=data["join_url"],
            start_url=data.get("start_url"),
            password=data.get("password"),
        )

"""
Google Calendar client — free/busy lookup and event creation using the
employee's own OAuth token.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from connectors.errors import ProviderError
from connectors.schemas import Provider
from connectors.token_manager import TokenManager
from integrations.schemas import (
    BusyWindow,
    CalendarEventRequest,
    CalendarEventResponse,
    FreeBusyRequest,
    FreeBusyResponse,
)

logger = logging.getLogger(__name__)

_CALENDAR_API = "https://www.googleapis.com/calendar/v3"


class GoogleCalendarClient:
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

    async def _post(self, step: str, employee_id: str, url: str, body: Dict[str, Any]) -> Dict[str, Any]:
        token = await self._tokens.get_access_token(employee_id, Provider.GOOGLE)
        headers = {"Authorization": f"Bearer {token}"}
        try:
            if self._http_client is not None:
                resp = await self._http_client.post(url, json=body, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    resp = await client.post(url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            raise ProviderError("google", step, raw=f"{type(exc).__name__}: {exc}") from exc

        if resp.status_code // 100 != 2:
            logger.warning("Google %s for %s returned HTTP %s", step, employee_id, resp.status_code)
            raise ProviderError("google", step, status=resp.status_code, raw=resp.text)
        return resp.json()

    async def free_busy(self, req: FreeBusyRequest) -> FreeBusyResponse:
        """Busy windows of one calendar between ``time_min`` and ``time_max``."""
        data = await self._post(
            "freeBusy",
            req.employee_id,
            f"{_CALENDAR_API}/freeBusy",
            {
                "timeMin": req.time_min,
                "timeMax": req.time_max,
                "timeZone": req.time_zone,
                "items": [{"id": req.calendar_id}],
            },
        )
        calendar = (data.get("calendars") or {}).get(req.calendar_id) or {}
        return FreeBusyResponse(busy=[BusyWindow(**w) for w in calendar.get("busy", [])])

    async def create_event(self, req: CalendarEventRequest) -> CalendarEventResponse:
        body: Dict[str, Any] = {
            "summary": req.summary,
            "start": {"dateTime": req.start_iso, "timeZone": req.time_zone},
            "end": {"dateTime": req.end_iso, "timeZone": req.time_zone},
        }
        if req.description:
            body["description"] = req.description
        if req.attendee_email:
            attendee = {"email": req.attendee_email}
            if req.attendee_name:
                attendee["displayName"] = req.attendee_name
            body["attendees"] = [attendee]

        data = await self._post(
            "event create",
            req.employee_id,
            f"{_CALENDAR_API}/calendars/{quote(req.calendar_id, safe='')}/events",
            body,
        )
        logger.info("Created calendar event %s for %s", data.get("id"), req.employee_id)
        return CalendarEventResponse(event_id=data["id"], html_link=data.get("htmlLink"))

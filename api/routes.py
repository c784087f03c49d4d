"""
REST API routes used by the host app: connection status, free/busy,
calendar events and Zoom meetings.

Route prefix: /api
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends

from api.dependencies import (
    get_calendar_client,
    get_credential_store,
    get_zoom_client,
    require_api_key,
)
from connectors.token_store import CredentialStore
from integrations.google_calendar import GoogleCalendarClient
from integrations.schemas import (
    CalendarEventRequest,
    CalendarEventResponse,
    FreeBusyRequest,
    FreeBusyResponse,
    ZoomMeetingRequest,
    ZoomMeetingResponse,
)
from integrations.zoom_meetings import ZoomMeetingClient

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_api_key)])


@router.get("/integrations/{employee_id}")
async def list_integrations(
    employee_id: str,
    store: CredentialStore = Depends(get_credential_store),
) -> Dict[str, Any]:
    """Which providers the employee has connected (no tokens exposed)."""
    connections = await store.list_for_employee(employee_id)
    return {
        "employee_id": employee_id,
        "connections": [c.model_dump(mode="json") for c in connections],
    }


@router.post("/freebusy", response_model=FreeBusyResponse)
async def freebusy(
    req: FreeBusyRequest,
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
) -> FreeBusyResponse:
    return await calendar.free_busy(req)


@router.post("/calendar-create", response_model=CalendarEventResponse)
async def calendar_create(
    req: CalendarEventRequest,
    calendar: GoogleCalendarClient = Depends(get_calendar_client),
) -> CalendarEventResponse:
    return await calendar.create_event(req)


@router.post("/zoom-meeting", response_model=ZoomMeetingResponse)
async def zoom_meeting(
    req: ZoomMeetingRequest,
    zoom: ZoomMeetingClient = Depends(get_zoom_client),
) -> ZoomMeetingResponse:
    return await zoom.create_meeting(req)

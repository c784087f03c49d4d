"""
Request / response schemas for the calendar and meeting endpoints.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class FreeBusyRequest(BaseModel):
    employee_id: str = Field(..., min_length=1)
    time_min: str                      # RFC 3339
    time_max: str
    time_zone: str = "Asia/Tokyo"
    calendar_id: str = "primary"


class BusyWindow(BaseModel):
    start: str
    end: str


class FreeBusyResponse(BaseModel):
    busy: List[BusyWindow] = Field(default_factory=list)


class CalendarEventRequest(BaseModel):
    employee_id: str = Field(..., min_length=1)
    summary: str = "Meeting"
    description: Optional[str] = None
    start_iso: str
    end_iso: str
    time_zone: str = "Asia/Tokyo"
    attendee_email: Optional[str] = None
    attendee_name: Optional[str] = None
    calendar_id: str = "primary"


class CalendarEventResponse(BaseModel):
    event_id: str
    html_link: Optional[str] = None


class ZoomMeetingRequest(BaseModel):
    employee_id: str = Field(..., min_length=1)
    topic: str = "Meeting"
    start_time: str                    # e.g. 2025-12-10T19:00:00
    duration: int = Field(30, gt=0)    # minutes
    timezone: str = "Asia/Tokyo"


class ZoomMeetingResponse(BaseModel):
    meeting_id: str
    join_url: str
    start_url: Optional[str] = None
    password: Optional[str] = None

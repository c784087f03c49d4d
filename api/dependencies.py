"""
FastAPI dependencies (shared across routes).

Services are built once in ``main.create_app`` and parked on
``app.state``; routes pull them from there.
"""

from __future__ import annotations

import hmac
from typing import Optional

from fastapi import Header, HTTPException, Request, status

from config.settings import Settings
from connectors.oauth_flow import OAuthFlow
from connectors.token_store import CredentialStore
from integrations.google_calendar import GoogleCalendarClient
from integrations.zoom_meetings import ZoomMeetingClient


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_oauth_flow(request: Request) -> OAuthFlow:
    return request.app.state.oauth_flow


def get_credential_store(request: Request) -> CredentialStore:
    return request.app.state.credential_store


async def require_api_key(
    request: Request,
    api_key: Optional[str] = Header(None, alias="x-scheduler-api-key"),
) -> None:
    """
    Guard host-app facing endpoints with the shared scheduler key.

    Open when no ``SCHEDULER_API_KEY`` is configured.
    """
    expected = get_settings(request).scheduler_api_key
    if not expected:
        return
    if not api_key or not hmac.compare_digest(api_key.encode(), expected.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing x-scheduler-api-key",
        )


def get_calendar_client(request: Request) -> GoogleCalendarClient:
    return request.app.state.calendar_client


def get_zoom_client(request: Request) -> ZoomMeetingClient:
    return request.app.state.zoom_client

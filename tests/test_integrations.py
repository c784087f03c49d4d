"""
Tests for the host-app facing API: connection listing, free/busy,
calendar events and Zoom meetings.
"""

from datetime import datetime, timedelta, timezone

import httpx
import pytest
import pytest_asyncio

from conftest import json_of, make_settings
from connectors.schemas import IntegrationPatch, Provider
from main import create_app

API_KEY = "scheduler-key"
FREEBUSY_URL = "https://www.googleapis.com/calendar/v3/freeBusy"
EVENTS_URL = "https://www.googleapis.com/calendar/v3/calendars/primary/events"
ZOOM_MEETINGS_URL = "https://api.zoom.us/v2/users/me/meetings"


@pytest_asyncio.fixture
async def client(engine, http_client):
    app = create_app(make_settings(scheduler_api_key=API_KEY), engine=engine, http_client=http_client)
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="https://api.example.com",
        headers={"x-scheduler-api-key": API_KEY},
    ) as c:
        yield c


async def _connect(store, provider=Provider.GOOGLE, access="AT", employee="emp_1"):
    await store.upsert(
        employee,
        provider,
        IntegrationPatch(
            access_token=access,
            refresh_token="RT",
            expiry=datetime.now(timezone.utc) + timedelta(hours=1),
            provider_account_email=f"{employee}@example.com",
            scopes="openid email",
        ),
    )


class TestApiKey:
    @pytest.mark.asyncio
    async def test_missing_key_rejected(self, client):
        resp = await client.get("/api/integrations/emp_1", headers={"x-scheduler-api-key": ""})
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_wrong_key_rejected(self, client):
        resp = await client.get("/api/integrations/emp_1", headers={"x-scheduler-api-key": "nope"})
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_open_when_no_key_configured(self, engine, http_client):
        app = create_app(make_settings(), engine=engine, http_client=http_client)
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="https://api.example.com") as c:
            resp = await c.get("/api/integrations/emp_1")
        assert resp.status_code == 200


class TestIntegrationListing:
    @pytest.mark.asyncio
    async def test_lists_connections_without_tokens(self, client, store):
        await _connect(store, Provider.GOOGLE)
        await _connect(store, Provider.ZOOM)

        resp = await client.get("/api/integrations/emp_1")

        assert resp.status_code == 200
        body = resp.json()
        assert body["employee_id"] == "emp_1"
        assert [c["provider"] for c in body["connections"]] == ["google", "zoom"]
        assert body["connections"][0]["scopes"] == ["openid", "email"]
        assert "AT" not in resp.text
        assert "RT" not in resp.text

    @pytest.mark.asyncio
    async def test_unknown_employee_has_no_connections(self, client):
        resp = await client.get("/api/integrations/nobody")
        assert resp.json() == {"employee_id": "nobody", "connections": []}


class TestFreeBusy:
    @pytest.mark.asyncio
    async def test_returns_busy_windows(self, client, store, stub):
        await _connect(store)
        stub.add(
            "POST",
            FREEBUSY_URL,
            json_body={
                "calendars": {
                    "primary": {"busy": [{"start": "2025-12-10T10:00:00Z", "end": "2025-12-10T11:00:00Z"}]}
                }
            },
        )

        resp = await client.post(
            "/api/freebusy",
            json={"employee_id": "emp_1", "time_min": "2025-12-10T00:00:00Z", "time_max": "2025-12-11T00:00:00Z"},
        )

        assert resp.status_code == 200
        assert resp.json() == {"busy": [{"start": "2025-12-10T10:00:00Z", "end": "2025-12-10T11:00:00Z"}]}
        sent = stub.calls_to(FREEBUSY_URL)[0]
        assert sent.headers["authorization"] == "Bearer AT"
        body = json_of(sent)
        assert body["items"] == [{"id": "primary"}]
        assert body["timeZone"] == "Asia/Tokyo"

    @pytest.mark.asyncio
    async def test_not_connected(self, client, stub):
        resp = await client.post(
            "/api/freebusy",
            json={"employee_id": "emp_9", "time_min": "2025-12-10T00:00:00Z", "time_max": "2025-12-11T00:00:00Z"},
        )
        assert resp.status_code == 409
        assert resp.json()["provider"] == "google"
        assert stub.calls == []

    @pytest.mark.asyncio
    async def test_provider_error_is_reported(self, client, store, stub):
        await _connect(store)
        stub.add("POST", FREEBUSY_URL, status=403, json_body={"error": {"message": "forbidden"}})
        resp = await client.post(
            "/api/freebusy",
            json={"employee_id": "emp_1", "time_min": "a", "time_max": "b"},
        )
        assert resp.status_code == 500
        assert resp.json()["provider_status"] == 403

    @pytest.mark.asyncio
    async def test_blank_employee_rejected(self, client):
        resp = await client.post("/api/freebusy", json={"employee_id": "", "time_min": "a", "time_max": "b"})
        assert resp.status_code == 422


class TestCalendarCreate:
    @pytest.mark.asyncio
    async def test_creates_event_with_attendee(self, client, store, stub):
        await _connect(store)
        stub.add("POST", EVENTS_URL, json_body={"id": "evt1", "htmlLink": "https://calendar.google.com/evt1"})

        resp = await client.post(
            "/api/calendar-create",
            json={
                "employee_id": "emp_1",
                "summary": "Interview",
                "start_iso": "2025-12-10T19:00:00+09:00",
                "end_iso": "2025-12-10T19:30:00+09:00",
                "attendee_email": "guest@example.com",
                "attendee_name": "Guest",
            },
        )

        assert resp.status_code == 200
        assert resp.json() == {"event_id": "evt1", "html_link": "https://calendar.google.com/evt1"}
        body = json_of(stub.calls_to(EVENTS_URL)[0])
        assert body["attendees"] == [{"email": "guest@example.com", "displayName": "Guest"}]
        assert body["start"] == {"dateTime": "2025-12-10T19:00:00+09:00", "timeZone": "Asia/Tokyo"}
        assert "description" not in body


class TestZoomMeeting:
    @pytest.mark.asyncio
    async def test_creates_scheduled_meeting(self, client, store, stub):
        await _connect(store, Provider.ZOOM, access="ZAT")
        stub.add(
            "POST",
            ZOOM_MEETINGS_URL,
            json_body={"id": 123456789, "join_url": "https://zoom.us/j/123456789", "password": "pw"},
        )

        resp = await client.post(
            "/api/zoom-meeting",
            json={"employee_id": "emp_1", "topic": "Interview", "start_time": "2025-12-10T19:00:00", "duration": 45},
        )

        assert resp.status_code == 200
        assert resp.json()["meeting_id"] == "123456789"
        assert resp.json()["password"] == "pw"
        sent = stub.calls_to(ZOOM_MEETINGS_URL)[0]
        assert sent.headers["authorization"] == "Bearer ZAT"
        assert json_of(sent)["type"] == 2
        assert json_of(sent)["duration"] == 45

    @pytest.mark.asyncio
    async def test_zero_duration_rejected(self, client):
        resp = await client.post(
            "/api/zoom-meeting",
            json={"employee_id": "emp_1", "start_time": "2025-12-10T19:00:00", "duration": 0},
        )
        assert resp.status_code == 422

"""
Shared fixtures: settings, a throwaway SQLite credential store and a
stubbed provider transport.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from urllib.parse import parse_qs

import httpx
import pytest
import pytest_asyncio

from config.settings import Settings
from connectors.encryption import TokenCipher
from connectors.registry import ConnectorRegistry
from connectors.token_manager import TokenManager
from connectors.token_store import CredentialStore
from database.session import build_engine, init_models

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
ZOOM_TOKEN_URL = "https://zoom.us/oauth/token"
ZOOM_ME_URL = "https://api.zoom.us/v2/users/me"

STATE_SECRET = "test-state-secret"


def make_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = {
        "google_oauth_client_id": "google-client",
        "google_oauth_client_secret": "google-secret",
        "google_oauth_redirect_uri": "https://api.example.com/api/auth/google/callback",
        "zoom_client_id": "zoom-client",
        "zoom_client_secret": "zoom-secret",
        "zoom_redirect_uri": "https://api.example.com/api/auth/zoom/callback",
        "oauth_state_secret": STATE_SECRET,
        "token_encryption_key": "",
        "scheduler_api_key": "",
        "app_base_url": "https://host.example.com",
        "app_return_to_url": "",
        "legacy_token_webhook_url": "",
        "database_url": "sqlite+aiosqlite://",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


Handler = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class ProviderStub:
    """
    Route-table ``httpx.MockTransport`` handler.

    Unknown URLs answer 404 so an unexpected call shows up as a failure.
    """

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Handler] = {}
        self.calls: List[httpx.Request] = []

    def add(
        self,
        method: str,
        url: str,
        status: int = 200,
        json_body: Optional[Any] = None,
        text: Optional[str] = None,
    ) -> None:
        if json_body is not None:
            self.routes[(method, url)] = httpx.Response(status, json=json_body)
        else:
            self.routes[(method, url)] = httpx.Response(status, text=text or "")

    def add_handler(self, method: str, url: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[(method, url)] = handler

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        key = (request.method, f"{request.url.scheme}://{request.url.host}{request.url.path}")
        route = self.routes.get(key)
        if route is None:
            return httpx.Response(404, text=f"no stub for {key}")
        if callable(route):
            return route(request)
        return route

    def calls_to(self, url: str) -> List[httpx.Request]:
        return [
            r for r in self.calls
            if f"{r.url.scheme}://{r.url.host}{r.url.path}" == url
        ]


def form_of(request: httpx.Request) -> Dict[str, str]:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


def json_of(request: httpx.Request) -> Dict[str, Any]:
    return json.loads(request.content.decode())


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def stub() -> ProviderStub:
    return ProviderStub()


@pytest_asyncio.fixture
async def http_client(stub):
    async with httpx.AsyncClient(transport=httpx.MockTransport(stub.handler)) as client:
        yield client


@pytest_asyncio.fixture
async def engine(tmp_path):
    eng = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'credentials.db'}")
    await init_models(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def store(engine) -> CredentialStore:
    return CredentialStore(engine, TokenCipher(None))


@pytest.fixture
def registry(settings, http_client) -> ConnectorRegistry:
    return ConnectorRegistry(settings, http_client)


@pytest.fixture
def token_manager(store, registry) -> TokenManager:
    return TokenManager(store, registry)

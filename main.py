"""
Scheduling integration backend — application entry point.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncEngine

from api.middleware import register_middleware
from api.routes import router as api_router
from config.settings import Settings, config
from connectors.encryption import TokenCipher
from connectors.notifier import LegacyTokenNotifier
from connectors.oauth_flow import OAuthFlow
from connectors.registry import ConnectorRegistry
from connectors.routes import router as oauth_router
from connectors.token_manager import TokenManager
from connectors.token_store import CredentialStore
from database.session import build_engine, init_models
from integrations.google_calendar import GoogleCalendarClient
from integrations.zoom_meetings import ZoomMeetingClient

logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
    stream=sys.stdout,
)
for _noisy in ("httpcore", "httpx", "aiosqlite", "asyncio"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    engine: Optional[AsyncEngine] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Build the app and wire every service from one resolved ``Settings``.

    ``engine`` / ``http_client`` are injectable so tests can run against a
    local database and stubbed providers.
    """
    settings = settings or config
    engine = engine or build_engine(settings.database_url, echo=settings.debug)

    app = FastAPI(
        title="Scheduling Integration Backend",
        version="1.0.0",
        description="Google / Zoom OAuth connections and calendar plumbing for the host app.",
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middleware(app)

    registry = ConnectorRegistry(settings, http_client)
    store = CredentialStore(engine, TokenCipher(settings.token_encryption_key))
    token_manager = TokenManager(store, registry)
    notifier = LegacyTokenNotifier(
        settings.legacy_token_webhook_url,
        settings.scheduler_api_key,
        timeout=settings.http_timeout_seconds,
        http_client=http_client,
    )

    app.state.settings = settings
    app.state.engine = engine
    app.state.connector_registry = registry
    app.state.credential_store = store
    app.state.token_manager = token_manager
    app.state.oauth_flow = OAuthFlow(settings, registry, store, notifier)
    app.state.calendar_client = GoogleCalendarClient(
        token_manager, timeout=settings.http_timeout_seconds, http_client=http_client,
    )
    app.state.zoom_client = ZoomMeetingClient(
        token_manager, timeout=settings.http_timeout_seconds, http_client=http_client,
    )

    # Routes
    app.include_router(oauth_router, prefix="/api/auth")
    app.include_router(api_router, prefix="/api")

    @app.get("/api/providers")
    async def list_providers() -> list[dict]:
        return registry.list_providers()

    @app.on_event("startup")
    async def on_startup():
        logger.info("Ensuring credential store schema…")
        await init_models(engine)
        missing = {p: settings.missing_for(p) for p in ("google", "zoom")}
        for provider, names in missing.items():
            if names:
                logger.warning("%s OAuth disabled until configured: %s", provider, ", ".join(names))
        logger.info("Application ready to accept requests.")

    @app.on_event("shutdown")
    async def on_shutdown():
        await engine.dispose()

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level="debug" if config.debug else "info",
    )

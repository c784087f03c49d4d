"""
OAuth API routes — start (redirect to provider) and callback.

Route prefix: /api/auth
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse

from api.dependencies import get_oauth_flow
from connectors.errors import IntegrationError
from connectors.oauth_flow import OAuthFlow

logger = logging.getLogger(__name__)

router = APIRouter(tags=["oauth"])


@router.get("/{provider}/start")
async def oauth_start(
    provider: str,
    employee_id: Optional[str] = Query(None),
    return_to: Optional[str] = Query(None),
    flow: OAuthFlow = Depends(get_oauth_flow),
) -> RedirectResponse:
    """Redirect the employee to the provider's consent screen."""
    auth_url = flow.start(provider, employee_id, return_to)
    return RedirectResponse(auth_url)


@router.get("/{provider}/callback")
async def oauth_callback(
    request: Request,
    provider: str,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    flow: OAuthFlow = Depends(get_oauth_flow),
):
    """
    Provider redirects here after consent.

    Exchanges the code, stores the tokens and sends the user back to the
    host app.  Every failure becomes a JSON error body; nothing escapes.
    """
    try:
        redirect_url = await flow.complete(provider, code, state, str(request.url))
    except IntegrationError as exc:
        return JSONResponse(exc.to_dict(), status_code=exc.status_code)
    except Exception as exc:
        logger.exception("OAuth %s callback crashed", provider)
        return JSONResponse(
            {"error": "oauth callback failed", "provider": provider, "detail": str(exc)},
            status_code=500,
        )
    return RedirectResponse(redirect_url)

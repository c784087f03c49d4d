"""
OAuth state codec — sign / verify the token carried through the provider
redirect.

Wire format::

    base64url(payload-json) + "." + base64url(HMAC-SHA256(encoded-payload, secret))

Both segments are unpadded URL-safe base64.  The payload always carries
``employee_id`` and ``return_to`` in snake_case; older issuers used
``employeeId`` / ``returnTo`` and those spellings are still accepted on
decode.  Verification never raises: any failure returns ``None``.
"""

from __future__ import annotations

import binascii
import hashlib
import hmac
import json
import logging
import math
import secrets
import time
from base64 import urlsafe_b64decode, urlsafe_b64encode
from typing import Any, Dict, Optional

from connectors.schemas import StatePayload

logger = logging.getLogger(__name__)

STATE_MAX_AGE_MS = 30 * 60 * 1000


def _b64url_encode(raw: bytes) -> str:
    return urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64url_decode(text: str) -> bytes:
    padding = "=" * (-len(text) % 4)
    return urlsafe_b64decode(text + padding)


def _signature(encoded_payload: str, secret: str) -> str:
    digest = hmac.new(secret.encode(), encoded_payload.encode("ascii"), hashlib.sha256).digest()
    return _b64url_encode(digest)


def _now_ms() -> int:
    return int(time.time() * 1000)


def sign_state(payload: StatePayload, secret: str) -> str:
    """Serialize ``payload`` canonically and append its HMAC signature."""
    raw = json.dumps(payload.to_wire(), separators=(",", ":"), sort_keys=True).encode()
    encoded = _b64url_encode(raw)
    return f"{encoded}.{_signature(encoded, secret)}"


def mint_state(employee_id: str, return_to: str, secret: str) -> str:
    """Create a fresh signed state for a new authorization request."""
    payload = StatePayload(
        employee_id=employee_id,
        return_to=return_to,
        issued_at=_now_ms(),
        nonce=secrets.token_urlsafe(16),
    )
    return sign_state(payload, secret)


def _normalize(parsed: Dict[str, Any]) -> Optional[StatePayload]:
    """Collapse historical field spellings into a canonical payload."""
    employee_id = parsed.get("employee_id") or parsed.get("employeeId") or ""
    return_to = parsed.get("return_to") or parsed.get("returnTo") or ""
    if not isinstance(employee_id, str) or not isinstance(return_to, str):
        return None

    employee_id = employee_id.strip()
    if not employee_id:
        return None

    ts = parsed.get("ts")
    issued_at = None
    if ts is not None:
        # a ts that cannot be checked must not bypass the freshness window
        if not isinstance(ts, (int, float)) or isinstance(ts, bool) or not math.isfinite(ts):
            return None
        issued_at = int(ts)
    nonce = parsed.get("nonce")

    return StatePayload(
        employee_id=employee_id,
        return_to=return_to.strip(),
        issued_at=issued_at,
        nonce=nonce if isinstance(nonce, str) else None,
    )


def verify_state(
    token: str,
    secret: str,
    *,
    now_ms: Optional[int] = None,
    max_age_ms: int = STATE_MAX_AGE_MS,
) -> Optional[StatePayload]:
    """
    Verify ``token`` and return its normalized payload, or ``None``.

    The signature is checked (constant time) before the payload is decoded.
    A payload with a ``ts`` older (or further in the future) than
    ``max_age_ms`` is rejected.
    """
    if not token or not secret:
        return None

    parts = token.split(".")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return None
    encoded, supplied_sig = parts

    try:
        expected_sig = _signature(encoded, secret)
    except UnicodeEncodeError:
        return None
    if not hmac.compare_digest(expected_sig.encode(), supplied_sig.encode("utf-8", "replace")):
        logger.debug("State signature mismatch")
        return None

    try:
        parsed = json.loads(_b64url_decode(encoded).decode("utf-8"))
    except (binascii.Error, ValueError):
        # json.JSONDecodeError and UnicodeDecodeError are both ValueError
        return None
    if not isinstance(parsed, dict):
        return None

    payload = _normalize(parsed)
    if payload is None:
        return None

    if payload.issued_at is not None:
        now = _now_ms() if now_ms is None else now_ms
        if abs(now - payload.issued_at) > max_age_ms:
            logger.debug("State for employee %s expired", payload.employee_id)
            return None

    return payload

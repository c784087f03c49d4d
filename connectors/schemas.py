"""
Pydantic schemas shared by the connector framework.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class Provider(str, Enum):
    GOOGLE = "google"
    ZOOM = "zoom"


# ═══════════════════════════════════════════════════════════════════════════════
# OAuth state
# ═══════════════════════════════════════════════════════════════════════════════


class StatePayload(BaseModel):
    """
    Identity + return path carried through the provider redirect.

    Only ever exists inside a signed state token; never persisted.
    """

    employee_id: str
    return_to: str = ""
    issued_at: Optional[int] = None  # epoch ms, serialized as ``ts``
    nonce: Optional[str] = None

    def to_wire(self) -> dict:
        wire = {"employee_id": self.employee_id, "return_to": self.return_to}
        if self.issued_at is not None:
            wire["ts"] = self.issued_at
        if self.nonce is not None:
            wire["nonce"] = self.nonce
        return wire


# ═══════════════════════════════════════════════════════════════════════════════
# Provider responses
# ═══════════════════════════════════════════════════════════════════════════════


class TokenGrant(BaseModel):
    """Normalized token-endpoint response (code exchange or refresh)."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: int = 3600
    scope: Optional[str] = None
    token_type: Optional[str] = None


class AccountIdentity(BaseModel):
    email: Optional[str] = None
    account_id: Optional[str] = None


# ═══════════════════════════════════════════════════════════════════════════════
# Credential store
# ═══════════════════════════════════════════════════════════════════════════════


class IntegrationPatch(BaseModel):
    """
    Partial update for one ``(employee_id, provider)`` record.

    Only fields that were explicitly set are written.  ``refresh_token=None``
    is never written: an absent refresh token keeps the stored one.
    """

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expiry: Optional[datetime] = None
    provider_account_email: Optional[str] = None
    provider_account_id: Optional[str] = None
    scopes: Optional[str] = None

    def changes(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        if data.get("refresh_token") is None:
            data.pop("refresh_token", None)
        return data


class IntegrationRecord(BaseModel):
    employee_id: str
    provider: Provider
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expiry: Optional[datetime] = None
    provider_account_email: Optional[str] = None
    provider_account_id: Optional[str] = None
    scopes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ConnectionSummary(BaseModel):
    """Token-free view of a record, safe to hand to the host app."""

    provider: Provider
    connected: bool
    provider_account_email: Optional[str] = None
    expiry: Optional[datetime] = None
    scopes: list[str] = Field(default_factory=list)
    updated_at: Optional[datetime] = None

"""
Error taxonomy for the OAuth / credential subsystem.

Every error knows the HTTP status it maps to and renders a JSON body with
an ``error`` field plus diagnostic fields.  Nothing here ever includes a
secret value; configuration errors only name the missing variables.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class IntegrationError(Exception):
    """Base class; a server-side failure unless a subclass says otherwise."""

    status_code: int = 500

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        body.update({k: v for k, v in self.details.items() if v is not None})
        return body


class ConfigurationError(IntegrationError):
    """Required client credentials / secrets are not configured."""

    status_code = 500

    def __init__(self, missing: List[str], provider: Optional[str] = None) -> None:
        label = f"Missing env ({provider})" if provider else "Missing env"
        super().__init__(label, missing=list(missing))
        self.missing = list(missing)


class InvalidRequestError(IntegrationError):
    """Caller omitted a required parameter (code, state, employee_id, …)."""

    status_code = 400


class InvalidStateError(IntegrationError):
    """State token failed signature, parsing or freshness checks."""

    status_code = 400

    def __init__(self) -> None:
        super().__init__("invalid state")


class UnknownProviderError(IntegrationError):
    status_code = 404

    def __init__(self, provider: str) -> None:
        super().__init__("unknown provider", provider=provider)


class ProviderError(IntegrationError):
    """
    The provider answered non-2xx, timed out, or could not be reached.

    ``raw`` is the provider's response body, kept for operator diagnosis.
    """

    status_code = 500

    def __init__(
        self,
        provider: str,
        step: str,
        *,
        status: Optional[int] = None,
        raw: Optional[str] = None,
    ) -> None:
        super().__init__(
            f"{step} failed",
            provider=provider,
            provider_status=status,
            raw=raw,
        )
        self.provider = provider
        self.step = step
        self.status = status
        self.raw = raw


class StoreError(IntegrationError):
    status_code = 500

    def __init__(self, employee_id: str, provider: str, detail: str, *, action: str = "save") -> None:
        super().__init__(
            f"failed to {action} integration",
            employee_id=employee_id,
            provider=provider,
            detail=detail,
        )
        self.employee_id = employee_id
        self.provider = provider


class NotConnectedError(IntegrationError):
    """No refresh token stored, so the employee has to (re)connect the provider."""

    status_code = 409

    def __init__(self, employee_id: str, provider: str) -> None:
        super().__init__(
            f"{provider} not connected for this employee",
            employee_id=employee_id,
            provider=provider,
        )
        self.employee_id = employee_id
        self.provider = provider

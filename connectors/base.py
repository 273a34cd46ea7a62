"""
Shared building blocks for the CRM connector.

- Exception hierarchy for upstream failures
- Authentication headers (Basic auth + tenant schema)
- Envelope decoding for list responses

The CRM wraps collections inconsistently: some endpoints return a bare JSON
array, others ``{"items": [...]}`` or ``{"data": [...]}``. Every fetcher goes
through :func:`decode_envelope` so the three-way check lives in one place.
"""

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from models.credentials import ApiCredentials


class CrmApiError(Exception):
    """Base exception for CRM API errors."""


class CredentialsMissingError(CrmApiError):
    """Raised before any network call when credentials are absent or incomplete."""

    def __init__(self, message: str = "API credentials not set") -> None:
        super().__init__(message)


class CrmRequestError(CrmApiError):
    """Raised when the CRM answers a request with a non-2xx status."""

    def __init__(self, resource: str, status_code: int, body: str = "") -> None:
        self.resource = resource
        self.status_code = status_code
        self.body = body
        super().__init__(
            f"API request for {resource} failed with status {status_code}: {body[:200]}"
        )


class EnvelopeKind(str, Enum):
    """Shapes a CRM list response can take."""

    ARRAY = "array"
    ITEMS = "items"
    DATA = "data"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Envelope:
    """A decoded list response."""

    kind: EnvelopeKind
    items: list[Any] = field(default_factory=list)

    @property
    def recognized(self) -> bool:
        return self.kind is not EnvelopeKind.UNKNOWN


def decode_envelope(payload: Any) -> Envelope:
    """Normalize any supported response body to an :class:`Envelope`.

    Anything other than a list, ``{"items": [...]}`` or ``{"data": [...]}``
    decodes to an empty ``UNKNOWN`` envelope.
    """
    if isinstance(payload, list):
        return Envelope(EnvelopeKind.ARRAY, list(payload))
    if isinstance(payload, dict):
        items = payload.get("items")
        if isinstance(items, list):
            return Envelope(EnvelopeKind.ITEMS, list(items))
        data = payload.get("data")
        if isinstance(data, list):
            return Envelope(EnvelopeKind.DATA, list(data))
    return Envelope(EnvelopeKind.UNKNOWN)


def build_auth_headers(credentials: Optional[ApiCredentials]) -> dict[str, str]:
    """Basic-Auth plus tenant schema headers for one authenticated request."""
    if credentials is None or not credentials.is_complete:
        raise CredentialsMissingError()

    raw = f"{credentials.username}:{credentials.password}".encode("utf-8")
    return {
        "Authorization": f"Basic {base64.b64encode(raw).decode('ascii')}",
        "schema": credentials.schema_id,
        "Accept": "application/json",
    }

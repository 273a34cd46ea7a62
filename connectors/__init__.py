"""CRM connector package."""
from connectors.base import (
    CredentialsMissingError,
    CrmApiError,
    CrmRequestError,
    Envelope,
    EnvelopeKind,
    decode_envelope,
)
from connectors.crm_api import CrmApiConnector

__all__ = [
    "CredentialsMissingError",
    "CrmApiConnector",
    "CrmApiError",
    "CrmRequestError",
    "Envelope",
    "EnvelopeKind",
    "decode_envelope",
]

"""
Connectivity probe for the CRM settings form.

Issues one lightweight authenticated read (first page of notes) and turns
the outcome into a human-readable result. Never raises.
"""

import logging
from typing import Optional

import httpx

from config import settings
from connectors.base import build_auth_headers, decode_envelope
from connectors.crm_api import NOTES_PATH
from models.credentials import ApiCredentials, ConnectionTestResult

logger = logging.getLogger(__name__)

STATUS_MESSAGES: dict[int, str] = {
    401: "Obehörig åtkomst. Kontrollera användarnamn och lösenord.",
    400: "Felaktig förfrågan. Kontrollera schema och andra parametrar.",
    404: "API endpoint hittades inte. Kontrollera API URL.",
}


async def probe_connection(
    credentials: Optional[ApiCredentials],
    transport: Optional[httpx.AsyncBaseTransport] = None,
    timeout: Optional[float] = None,
) -> ConnectionTestResult:
    """Probe the CRM with the given credentials and classify the outcome.

    Args:
        credentials: Connection parameters to test
        transport: Optional httpx transport (tests inject a MockTransport)
        timeout: Client-side timeout, defaults to the short probe timeout

    Returns:
        A ``ConnectionTestResult``; failures are reported, not raised.
    """
    if credentials is None or not credentials.is_complete:
        return ConnectionTestResult(
            success=False,
            message="Inga API-inloggningsuppgifter är inställda",
        )

    logger.info(
        "Testing API connection",
        extra={
            "api_url": credentials.base_url,
            "username": credentials.username,
            "schema": credentials.schema_id,
        },
    )

    if timeout is None:
        timeout = settings.CONNECTION_TEST_TIMEOUT_SECONDS

    # Malformed URLs and non-ASCII header values fail while the request is built
    try:
        async with httpx.AsyncClient(transport=transport, timeout=timeout) as client:
            response = await client.get(
                f"{credentials.base_url}{NOTES_PATH}",
                headers=build_auth_headers(credentials),
                params={"viewPage": 1},
            )
    except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
        error_text = str(exc) or exc.__class__.__name__
        logger.error("API connection test failed: %s", error_text)
        return ConnectionTestResult(
            success=False,
            message=f"Anslutningsfel: {error_text}",
            details={"error": error_text, "type": exc.__class__.__name__},
        )

    logger.info("API test response status: %s", response.status_code)

    if not response.is_success:
        message = STATUS_MESSAGES.get(
            response.status_code,
            f"API svarade med status {response.status_code}",
        )
        return ConnectionTestResult(
            success=False,
            message=message,
            details={"status": response.status_code, "text": response.text},
        )

    try:
        payload = response.json()
    except ValueError:
        payload = response.text

    envelope = decode_envelope(payload)
    if envelope.recognized:
        return ConnectionTestResult(
            success=True,
            message=f"Anslutning lyckades! Hittade {len(envelope.items)} anteckningar.",
            details=payload,
        )
    return ConnectionTestResult(
        success=True,
        message="Anslutningen fungerar men svarsformatet var oväntat.",
        details=payload,
    )

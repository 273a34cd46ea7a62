"""
CRM REST connector.

Responsibilities:
- Authenticate every request with Basic auth and the tenant schema header
- Fetch notes, todos, orders, customers, users, salespersons and order rows
- Decode the varying list envelopes into plain lists
- Decide which failures abort a fetch cycle and which degrade to empty

Notes and todos are the primary feed; their failures raise so the
aggregator can fall back. Everything else only enriches the feed, so those
fetchers log and return an empty list instead.
"""

import asyncio
import logging
from typing import Any, Optional

import httpx

from config import settings
from connectors.base import (
    CrmRequestError,
    build_auth_headers,
    decode_envelope,
)
from models.credentials import ApiCredentials

logger = logging.getLogger(__name__)

NOTES_PATH = "/notes"
TODOS_PATH = "/todos"
ORDERS_PATH = "/orders"
CUSTOMERS_PATH = "/customers"
USERS_PATH = "/api_users_view"
SALESPERSONS_PATH = "/dashboard/salesperson"
ORDER_ROWS_PATH = "/orderrows"


class CrmApiConnector:
    """Connector for the CRM REST API."""

    source_system = "crm"

    def __init__(
        self,
        credentials: Optional[ApiCredentials],
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
        max_concurrent: Optional[int] = None,
    ) -> None:
        """
        Initialize the connector.

        Args:
            credentials: Connection parameters; validated lazily per request
            transport: Optional httpx transport (tests inject a MockTransport)
            timeout: Per-request timeout in seconds, defaults to settings
            max_concurrent: Limit on simultaneous order-row requests
        """
        self.credentials = credentials
        self._transport = transport
        self._timeout = (
            timeout if timeout is not None else settings.CRM_REQUEST_TIMEOUT_SECONDS
        )
        self._max_concurrent = (
            max_concurrent
            if max_concurrent is not None
            else settings.CRM_MAX_CONCURRENT_REQUESTS
        )

    def _get_headers(self) -> dict[str, str]:
        """Get authorization headers for the CRM API."""
        return build_auth_headers(self.credentials)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=self._timeout)

    async def _make_request(
        self,
        resource: str,
        endpoint: str,
        params: Optional[dict[str, Any]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> Any:
        """Make an authenticated GET and return the decoded JSON body.

        Args:
            client: Shared client for batched requests; a fresh one is
                opened when omitted

        Raises:
            CredentialsMissingError: credentials absent, before any I/O
            CrmRequestError: the CRM answered with a non-2xx status
            httpx.TransportError: network-level failure
        """
        headers = self._get_headers()
        url = f"{self.credentials.base_url}{endpoint}"

        if client is None:
            async with self._client() as own_client:
                response = await own_client.get(url, headers=headers, params=params)
        else:
            response = await client.get(url, headers=headers, params=params)

        if not response.is_success:
            logger.error(
                "CRM %s request failed",
                resource,
                extra={"status_code": response.status_code, "url": url},
            )
            raise CrmRequestError(resource, response.status_code, response.text)

        return response.json()

    async def _fetch_collection(
        self,
        resource: str,
        endpoint: str,
        params: Optional[dict[str, Any]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> list[dict[str, Any]]:
        """Fetch a list endpoint and unwrap whatever envelope it uses."""
        if params is None:
            params = {"viewPage": settings.CRM_VIEW_PAGE}
        payload = await self._make_request(resource, endpoint, params=params, client=client)
        envelope = decode_envelope(payload)
        if not envelope.recognized:
            logger.warning("Unexpected %s response shape, treating as empty", resource)
        records = [item for item in envelope.items if isinstance(item, dict)]
        logger.debug(
            "Fetched %d %s",
            len(records),
            resource,
            extra={"envelope": envelope.kind.value},
        )
        return records

    async def _fetch_optional(
        self,
        resource: str,
        endpoint: str,
        params: Optional[dict[str, Any]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> list[dict[str, Any]]:
        """Like ``_fetch_collection`` but any failure degrades to ``[]``."""
        try:
            return await self._fetch_collection(resource, endpoint, params=params, client=client)
        except (CrmRequestError, httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            logger.warning(
                "Using empty %s list due to error: %s",
                resource,
                exc,
            )
            return []

    # ------------------------------------------------------------------
    # Primary resources - failures propagate
    # ------------------------------------------------------------------

    async def fetch_notes(self) -> list[dict[str, Any]]:
        return await self._fetch_collection("notes", NOTES_PATH)

    async def fetch_todos(self) -> list[dict[str, Any]]:
        return await self._fetch_collection("todos", TODOS_PATH)

    # ------------------------------------------------------------------
    # Auxiliary resources - failures degrade to empty lists
    # ------------------------------------------------------------------

    async def fetch_orders(self) -> list[dict[str, Any]]:
        return await self._fetch_optional("orders", ORDERS_PATH)

    async def fetch_customers(self) -> list[dict[str, Any]]:
        return await self._fetch_optional("customers", CUSTOMERS_PATH)

    async def fetch_users(self) -> list[dict[str, Any]]:
        return await self._fetch_optional("users", USERS_PATH)

    async def fetch_salespersons(self) -> list[dict[str, Any]]:
        salespersons = await self._fetch_optional("salespersons", SALESPERSONS_PATH)
        logger.info("Fetched %d salespersons", len(salespersons))
        return salespersons

    async def fetch_order_rows(
        self,
        order_id: str,
        client: Optional[httpx.AsyncClient] = None,
    ) -> list[dict[str, Any]]:
        """Fetch the rows of a single order."""
        return await self._fetch_optional(
            "order rows",
            ORDER_ROWS_PATH,
            params={"orderId": order_id},
            client=client,
        )

    async def fetch_order_rows_for_orders(
        self, order_ids: list[str]
    ) -> dict[str, list[dict[str, Any]]]:
        """Fetch rows for many orders over one client, one request per order.

        At most ``max_concurrent`` requests are in flight at once. A failing
        order contributes an empty list without affecting the others.
        """
        unique_ids: list[str] = list(dict.fromkeys(oid for oid in order_ids if oid))
        if not unique_ids:
            return {}

        # Fail on missing credentials before opening the client
        self._get_headers()
        semaphore = asyncio.Semaphore(self._max_concurrent)

        async with self._client() as client:

            async def fetch_one(order_id: str) -> list[dict[str, Any]]:
                async with semaphore:
                    return await self.fetch_order_rows(order_id, client=client)

            results = await asyncio.gather(*(fetch_one(order_id) for order_id in unique_ids))

        logger.debug(
            "Fetched order rows",
            extra={"orders": len(unique_ids), "max_concurrent": self._max_concurrent},
        )
        return dict(zip(unique_ids, results))

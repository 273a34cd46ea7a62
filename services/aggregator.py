"""
Activity aggregator.

One fetch cycle:
  1. No credentials -> mock feed, no network
  2. Fetch customers, users, salespersons, notes, todos and orders
     concurrently, then the rows of every order
  3. Build fresh lookup maps, normalize, concatenate
  4. Sort newest first by epoch milliseconds
  5. Empty result -> mock feed

Any failure that escapes the fetchers (a primary resource erroring, a
transport failure, a malformed body) ends the cycle with the mock feed and
a warning notification. ``fetch_activities`` never raises.
"""

import asyncio
import logging
from typing import Callable, Optional

import httpx

from connectors.crm_api import CrmApiConnector
from models.activity import Activity
from models.credentials import ApiCredentials
from services.mock_data import get_mock_activities
from services.name_resolution import NameResolver
from services.normalizer import ORDER_ID_FIELDS, ActivityNormalizer, epoch_millis
from services.notifications import NotificationCenter
from services.record_fields import first_text

logger = logging.getLogger(__name__)

FALLBACK_WARNING = "Kunde inte hämta aktiviteter. Använder testdata istället."

CredentialsProvider = Callable[[], Optional[ApiCredentials]]


def sort_newest_first(activities: list[Activity]) -> list[Activity]:
    """Sort by parsed timestamp, descending. Numeric comparison, not string."""
    return sorted(activities, key=lambda activity: epoch_millis(activity.timestamp), reverse=True)


class ActivityAggregator:
    """Fetches, normalizes and merges the three upstream record types."""

    def __init__(
        self,
        credentials_provider: CredentialsProvider,
        notifications: Optional[NotificationCenter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Args:
            credentials_provider: Returns the current credentials (read per cycle)
            notifications: Where fallback warnings are surfaced
            transport: Optional httpx transport passed to the connector
        """
        self._credentials_provider = credentials_provider
        self._notifications = notifications
        self._transport = transport

    def _connector(self, credentials: ApiCredentials) -> CrmApiConnector:
        return CrmApiConnector(credentials, transport=self._transport)

    async def fetch_activities(self) -> list[Activity]:
        """Run one full fetch cycle. Always returns a non-empty list."""
        credentials = self._credentials_provider()
        if credentials is None or not credentials.is_complete:
            logger.info("No API credentials configured, serving mock activities")
            return get_mock_activities()

        try:
            activities = await self._fetch_from_crm(credentials)
        except Exception as exc:
            logger.error("Error fetching activities: %s", exc, exc_info=True)
            if self._notifications is not None:
                self._notifications.warning(FALLBACK_WARNING)
            return get_mock_activities()

        if not activities:
            logger.info("CRM returned no activities, serving mock activities")
            return get_mock_activities()
        return activities

    async def _fetch_from_crm(self, credentials: ApiCredentials) -> list[Activity]:
        connector = self._connector(credentials)
        logger.info("Fetching activities", extra={"api_url": credentials.base_url})

        customers, users, salespersons, notes, todos, orders = await asyncio.gather(
            connector.fetch_customers(),
            connector.fetch_users(),
            connector.fetch_salespersons(),
            connector.fetch_notes(),
            connector.fetch_todos(),
            connector.fetch_orders(),
        )

        order_ids = [first_text(order, ORDER_ID_FIELDS) or "" for order in orders]
        order_rows = await connector.fetch_order_rows_for_orders(order_ids)

        # New maps every cycle; nothing carries over from the previous one
        resolver = NameResolver.from_records(
            customers=customers,
            users=users,
            salespersons=salespersons,
        )
        normalizer = ActivityNormalizer(resolver, order_rows=order_rows)
        activities = sort_newest_first(normalizer.convert_all(notes, todos, orders))

        logger.info(
            "Fetched %d notes, %d todos, %d orders",
            len(notes),
            len(todos),
            len(orders),
            extra={
                "customers": len(resolver.customer_map),
                "users": len(resolver.user_map),
                "salespersons": len(resolver.salesperson_map),
                "total": len(activities),
            },
        )
        return activities

"""
Activity normalizer.

Turns raw CRM notes, todos and orders into :class:`Activity` records.
Each output field is read through an ordered tuple of candidate paths
(first non-empty wins), so the variations of the upstream schema are
listed once per entity here instead of being scattered through the code.

Missing or oddly typed fields never raise; they degrade to an empty value
or to one of the placeholder texts below.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from config import to_iso8601
from models.activity import (
    Activity,
    ActivityUser,
    OrderDetails,
    OrderItem,
    RelatedEntity,
)
from services.name_resolution import NameResolver
from services.record_fields import (
    FieldPaths,
    as_number,
    first_present,
    first_text,
    get_path,
)

NO_TEXT = "Ingen text"
NO_ORDER_NUMBER = "utan nummer"
UNKNOWN_STATUS = "okänd"
UNSPECIFIED_PRODUCT = "Ospecificerad produkt"

UNKNOWN_USER_ID = "unknown"
EPOCH = datetime(1970, 1, 1)

# -- Shared fields ------------------------------------------------------------
CREATOR_ID_FIELDS: FieldPaths = ("createdBy", "user.id", "user.email", "signature", "userId")
CREATOR_NAME_FIELDS: FieldPaths = ("user.name", "createdByName")
CREATOR_AVATAR_FIELDS: FieldPaths = ("user.avatar", "user.avatarUrl")
CUSTOMER_NAME_FIELDS: FieldPaths = ("customer.name", "companyName", "customerName", "company.name")
CUSTOMER_ID_FIELDS: FieldPaths = ("customer.id", "customerId", "companyId", "company.id")

# -- Notes --------------------------------------------------------------------
NOTE_ID_FIELDS: FieldPaths = ("id", "noteId")
NOTE_CONTENT_FIELDS: FieldPaths = ("text", "note")
NOTE_TIMESTAMP_FIELDS: FieldPaths = ("created", "createdDate", "date")

# -- Todos --------------------------------------------------------------------
TODO_ID_FIELDS: FieldPaths = ("id", "todoId")
TODO_TITLE_FIELDS: FieldPaths = ("title", "subject")
TODO_DESCRIPTION_FIELDS: FieldPaths = ("description", "text")
TODO_TIMESTAMP_FIELDS: FieldPaths = ("triggerDate", "dueDate", "created")

# -- Orders -------------------------------------------------------------------
ORDER_ID_FIELDS: FieldPaths = ("id", "orderId")
ORDER_NUMBER_FIELDS: FieldPaths = ("orderNumber", "number")
ORDER_STATUS_FIELDS: FieldPaths = ("status", "orderStatus")
ORDER_TIMESTAMP_FIELDS: FieldPaths = ("orderDate", "created")
ORDER_TOTAL_FIELDS: FieldPaths = ("totalExVat", "totalExclVat")

# -- Order rows ---------------------------------------------------------------
ROW_ID_FIELDS: FieldPaths = ("id", "rowId")
ROW_PRODUCT_FIELDS: FieldPaths = ("productName", "product.name", "name")
ROW_ARTICLE_FIELDS: FieldPaths = ("articleNumber", "articleNo")
ROW_QUANTITY_FIELDS: FieldPaths = ("quantity", "qty")
ROW_PRICE_FIELDS: FieldPaths = ("price", "unitPrice")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an upstream date value into a naive UTC datetime.

    Accepts ISO-8601 strings (with or without 'Z'/offset, date-only too),
    ``YYYY-MM-DD HH:MM:SS``, compact ``YYYYMMDD`` and epoch numbers
    (seconds or milliseconds).
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.isdigit():
            # Compact YYYYMMDD dates before falling back to epoch numbers
            if len(text) == 8:
                try:
                    return datetime.strptime(text, "%Y%m%d")
                except ValueError:
                    pass
            return parse_timestamp(int(text))
        if text.endswith(("Z", "z")):
            text = f"{text[:-1]}+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        return parsed

    if isinstance(value, (int, float)):
        # Millisecond epochs are 13 digits for any date after 1973
        seconds = value / 1000 if abs(value) >= 1e11 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)
        except (OverflowError, OSError, ValueError):
            return None

    return None


def epoch_millis(timestamp: str) -> int:
    """Epoch milliseconds for an ISO timestamp; unparseable sorts last."""
    parsed = parse_timestamp(timestamp)
    if parsed is None:
        return 0
    return int(parsed.replace(tzinfo=timezone.utc).timestamp() * 1000)


def _timestamp(record: dict[str, Any], paths: FieldPaths) -> str:
    for path in paths:
        parsed = parse_timestamp(get_path(record, path))
        if parsed is not None:
            return to_iso8601(parsed)
    return to_iso8601(EPOCH)


class ActivityNormalizer:
    """Converts raw CRM records using the lookup maps of one cycle."""

    def __init__(
        self,
        resolver: Optional[NameResolver] = None,
        order_rows: Optional[dict[str, list[dict[str, Any]]]] = None,
    ) -> None:
        self.resolver = resolver or NameResolver()
        self.order_rows = order_rows or {}

    # ------------------------------------------------------------------
    # Shared resolution
    # ------------------------------------------------------------------

    def _user(self, record: dict[str, Any]) -> ActivityUser:
        raw_id = first_text(record, CREATOR_ID_FIELDS)
        crm_name = first_text(record, CREATOR_NAME_FIELDS)
        return ActivityUser(
            id=raw_id or UNKNOWN_USER_ID,
            name=self.resolver.resolve_user_name(raw_id, crm_name),
            avatar=first_text(record, CREATOR_AVATAR_FIELDS),
        )

    def _related_customer(self, record: dict[str, Any]) -> Optional[RelatedEntity]:
        customer_id = first_text(record, CUSTOMER_ID_FIELDS)
        name = first_text(record, CUSTOMER_NAME_FIELDS)
        if not name:
            name = self.resolver.resolve_customer_name(customer_id)
        if not name:
            return None
        return RelatedEntity(type="customer", id=customer_id or "", name=name)

    # ------------------------------------------------------------------
    # Entities
    # ------------------------------------------------------------------

    def convert_note(self, note: dict[str, Any]) -> Activity:
        """Transform a CRM note to an Activity."""
        return Activity(
            id=first_text(note, NOTE_ID_FIELDS) or "",
            type="note",
            content=first_text(note, NOTE_CONTENT_FIELDS) or NO_TEXT,
            timestamp=_timestamp(note, NOTE_TIMESTAMP_FIELDS),
            user=self._user(note),
            related_to=self._related_customer(note),
        )

    def convert_todo(self, todo: dict[str, Any]) -> Activity:
        """Transform a CRM todo to an Activity."""
        title = first_text(todo, TODO_TITLE_FIELDS)
        description = first_text(todo, TODO_DESCRIPTION_FIELDS)
        if title and description:
            content = f"{title}: {description}"
        else:
            content = title or description or NO_TEXT

        return Activity(
            id=first_text(todo, TODO_ID_FIELDS) or "",
            type="task",
            content=content,
            timestamp=_timestamp(todo, TODO_TIMESTAMP_FIELDS),
            user=self._user(todo),
            related_to=self._related_customer(todo),
        )

    def convert_order(self, order: dict[str, Any]) -> Activity:
        """Transform a CRM order to an Activity.

        Orders are surfaced with the "call" tag and an ``order-`` id prefix
        so they cannot collide with note or todo ids.
        """
        raw_id = first_text(order, ORDER_ID_FIELDS) or ""
        number = first_text(order, ORDER_NUMBER_FIELDS) or NO_ORDER_NUMBER
        status = first_text(order, ORDER_STATUS_FIELDS) or UNKNOWN_STATUS

        return Activity(
            id=f"order-{raw_id}",
            type="call",
            content=f"Order {number} skapad med status: {status}",
            timestamp=_timestamp(order, ORDER_TIMESTAMP_FIELDS),
            user=self._user(order),
            related_to=self._related_customer(order),
            order_details=self._order_details(order, raw_id),
        )

    def _order_details(self, order: dict[str, Any], raw_id: str) -> Optional[OrderDetails]:
        total_value = first_text(order, ORDER_TOTAL_FIELDS)
        rows = self.order_rows.get(raw_id, []) if raw_id else []
        items = [self._order_item(row) for row in rows if isinstance(row, dict)]

        if total_value is None and not items:
            return None
        return OrderDetails(total_value=total_value, items=items or None)

    @staticmethod
    def _order_item(row: dict[str, Any]) -> OrderItem:
        name = (
            first_text(row, ROW_PRODUCT_FIELDS)
            or first_text(row, ROW_ARTICLE_FIELDS)
            or UNSPECIFIED_PRODUCT
        )
        return OrderItem(
            id=first_text(row, ROW_ID_FIELDS),
            name=name,
            quantity=as_number(first_present(row, ROW_QUANTITY_FIELDS)),
            price=as_number(first_present(row, ROW_PRICE_FIELDS)),
        )

    def convert_all(
        self,
        notes: list[dict[str, Any]],
        todos: list[dict[str, Any]],
        orders: list[dict[str, Any]],
    ) -> list[Activity]:
        """Convert all three record lists, in note, todo, order order."""
        activities: list[Activity] = []
        activities.extend(self.convert_note(note) for note in notes)
        activities.extend(self.convert_todo(todo) for todo in todos)
        activities.extend(self.convert_order(order) for order in orders)
        return activities

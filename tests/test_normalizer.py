from services.name_resolution import NameResolver
from services.normalizer import (
    NO_ORDER_NUMBER,
    NO_TEXT,
    UNKNOWN_STATUS,
    UNSPECIFIED_PRODUCT,
    ActivityNormalizer,
    epoch_millis,
    parse_timestamp,
)


def _resolver() -> NameResolver:
    return NameResolver.from_records(
        customers=[{"id": "c1", "name": "Acme AB"}],
        users=[{"id": "u9", "name": "Ulla Användare"}],
        salespersons=[{"id": "ANNA", "name": "Anna Svensson"}],
    )


def test_note_is_normalized_with_resolved_names() -> None:
    normalizer = ActivityNormalizer(_resolver())

    activity = normalizer.convert_note({
        "id": 7,
        "text": "Kunden vill ha en demo",
        "created": "2024-05-02T11:00:00+02:00",
        "createdBy": "anna@001",
        "customerId": "c1",
    })

    assert activity.id == "7"
    assert activity.type == "note"
    assert activity.content == "Kunden vill ha en demo"
    assert activity.timestamp == "2024-05-02T09:00:00.000Z"
    assert activity.user.id == "anna@001"
    assert activity.user.name == "Anna Svensson"
    assert activity.related_to is not None
    assert activity.related_to.model_dump() == {"type": "customer", "id": "c1", "name": "Acme AB"}


def test_note_without_text_gets_placeholder() -> None:
    activity = ActivityNormalizer().convert_note({"id": "n1", "text": "   "})

    assert activity.content == NO_TEXT
    assert activity.user.name == "Okänd användare"
    assert activity.related_to is None


def test_note_without_timestamp_falls_back_to_epoch() -> None:
    activity = ActivityNormalizer().convert_note({"id": "n1", "text": "x"})

    assert activity.timestamp == "1970-01-01T00:00:00.000Z"


def test_inline_customer_name_wins_over_lookup() -> None:
    activity = ActivityNormalizer(_resolver()).convert_note({
        "id": "n1",
        "text": "x",
        "customer": {"id": "c1", "name": "Acme Sverige AB"},
    })

    assert activity.related_to is not None
    assert activity.related_to.name == "Acme Sverige AB"


def test_unknown_customer_id_leaves_related_empty() -> None:
    activity = ActivityNormalizer(_resolver()).convert_note({"id": "n1", "text": "x", "customerId": "c404"})

    assert activity.related_to is None


def test_todo_content_combines_title_and_description() -> None:
    normalizer = ActivityNormalizer()

    both = normalizer.convert_todo({"id": "t1", "title": "Ring kunden", "description": "Fråga om budget"})
    title_only = normalizer.convert_todo({"id": "t2", "title": "Ring kunden"})
    description_only = normalizer.convert_todo({"id": "t3", "description": "Fråga om budget"})
    neither = normalizer.convert_todo({"id": "t4"})

    assert both.type == "task"
    assert both.content == "Ring kunden: Fråga om budget"
    assert title_only.content == "Ring kunden"
    assert description_only.content == "Fråga om budget"
    assert neither.content == NO_TEXT


def test_todo_prefers_trigger_date() -> None:
    activity = ActivityNormalizer().convert_todo({
        "id": "t1",
        "title": "x",
        "triggerDate": "2024-05-03",
        "created": "2024-01-01T00:00:00Z",
    })

    assert activity.timestamp == "2024-05-03T00:00:00.000Z"


def test_order_is_prefixed_tagged_and_detailed() -> None:
    normalizer = ActivityNormalizer(
        _resolver(),
        order_rows={
            "42": [
                {"id": "r1", "productName": "Server X", "quantity": 2, "price": "500,25"},
                {"id": "r2", "articleNumber": "ART-9", "quantity": "1", "price": 250},
                {"id": "r3"},
            ]
        },
    )

    activity = normalizer.convert_order({
        "id": 42,
        "orderNumber": 1001,
        "status": "Bekräftad",
        "orderDate": "2024-05-02T10:30:00Z",
        "createdBy": "anna",
        "customerId": "c1",
        "totalExVat": 1250.5,
    })

    assert activity.id == "order-42"
    assert activity.type == "call"
    assert activity.content == "Order 1001 skapad med status: Bekräftad"
    assert activity.user.name == "Anna Svensson"
    assert activity.order_details is not None
    assert activity.order_details.total_value == "1250.5"
    items = activity.order_details.items
    assert [item.name for item in items] == ["Server X", "ART-9", UNSPECIFIED_PRODUCT]
    assert items[0].quantity == 2.0
    assert items[0].price == 500.25
    assert items[2].quantity is None


def test_order_placeholders_and_no_details() -> None:
    activity = ActivityNormalizer().convert_order({"id": "9"})

    assert activity.content == f"Order {NO_ORDER_NUMBER} skapad med status: {UNKNOWN_STATUS}"
    assert activity.order_details is None
    assert "orderDetails" not in activity.to_dict()


def test_serialized_activity_uses_camel_case() -> None:
    activity = ActivityNormalizer(_resolver()).convert_order({
        "id": "1",
        "customerId": "c1",
        "totalExVat": "99",
    })

    payload = activity.to_dict()

    assert payload["relatedTo"]["name"] == "Acme AB"
    assert payload["orderDetails"] == {"totalValue": "99"}


def test_normalization_is_pure_and_repeatable() -> None:
    order = {"id": "42", "orderNumber": "1001", "customer": {"name": "Acme AB"}}
    snapshot = {"id": "42", "orderNumber": "1001", "customer": {"name": "Acme AB"}}
    normalizer = ActivityNormalizer(_resolver())

    first = normalizer.convert_all([], [], [order])
    second = normalizer.convert_all([], [], [order])

    assert first == second
    assert order == snapshot


def test_convert_all_keeps_source_order() -> None:
    activities = ActivityNormalizer().convert_all(
        notes=[{"id": "n1"}],
        todos=[{"id": "t1"}],
        orders=[{"id": "o1"}],
    )

    assert [a.id for a in activities] == ["n1", "t1", "order-o1"]


def test_parse_timestamp_variants() -> None:
    assert parse_timestamp("2024-05-02T09:00:00Z").isoformat() == "2024-05-02T09:00:00"
    assert parse_timestamp("2024-05-02 09:00:00").isoformat() == "2024-05-02T09:00:00"
    assert parse_timestamp(1714640400).isoformat() == "2024-05-02T09:00:00"
    assert parse_timestamp(1714640400000).isoformat() == "2024-05-02T09:00:00"
    assert parse_timestamp("1714640400000").isoformat() == "2024-05-02T09:00:00"
    assert parse_timestamp("not a date") is None
    assert parse_timestamp(None) is None


def test_epoch_millis_sorts_unparseable_last() -> None:
    assert epoch_millis("2024-05-02T09:00:00.000Z") == 1714640400000
    assert epoch_millis("garbage") == 0


def test_compact_dates_are_not_read_as_epoch_seconds() -> None:
    assert parse_timestamp("20240115").isoformat() == "2024-01-15T00:00:00"
    # Not a calendar date: still an epoch number
    assert parse_timestamp("99999999").year == 1973

    activity = ActivityNormalizer().convert_todo({"id": "t1", "title": "x", "dueDate": "20240115"})

    assert activity.timestamp == "2024-01-15T00:00:00.000Z"

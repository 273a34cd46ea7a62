import asyncio

import httpx
import pytest

from connectors.base import CredentialsMissingError, CrmRequestError
from connectors.crm_api import CrmApiConnector


def test_fetch_notes_sends_auth_headers_and_unwraps_items(fake_crm, credentials) -> None:
    fake_crm.set("/notes", {"items": [{"id": "n1"}, {"id": "n2"}]})
    connector = CrmApiConnector(credentials, transport=fake_crm.transport)

    notes = asyncio.run(connector.fetch_notes())

    assert [note["id"] for note in notes] == ["n1", "n2"]
    request = fake_crm.requests[0]
    assert request.headers["schema"] == "tenant42"
    assert request.headers["authorization"].startswith("Basic ")
    assert request.url.params["viewPage"] == "1"


def test_trailing_slash_in_api_url_is_ignored(fake_crm, credentials) -> None:
    fake_crm.set("/todos", [{"id": "t1"}])
    slashed = credentials.model_copy(update={"api_url": "https://crm.example.com/"})
    connector = CrmApiConnector(slashed, transport=fake_crm.transport)

    todos = asyncio.run(connector.fetch_todos())

    assert todos == [{"id": "t1"}]
    assert fake_crm.paths() == ["/todos"]


def test_primary_resource_error_propagates(fake_crm, credentials) -> None:
    fake_crm.fail("/notes", 401, "Unauthorized")
    connector = CrmApiConnector(credentials, transport=fake_crm.transport)

    with pytest.raises(CrmRequestError) as exc_info:
        asyncio.run(connector.fetch_notes())

    assert exc_info.value.status_code == 401
    assert exc_info.value.resource == "notes"


def test_missing_credentials_fail_before_any_request(fake_crm) -> None:
    connector = CrmApiConnector(None, transport=fake_crm.transport)

    with pytest.raises(CredentialsMissingError):
        asyncio.run(connector.fetch_todos())

    assert fake_crm.requests == []


@pytest.mark.parametrize(
    "path, fetch",
    [
        ("/orders", "fetch_orders"),
        ("/customers", "fetch_customers"),
        ("/api_users_view", "fetch_users"),
        ("/dashboard/salesperson", "fetch_salespersons"),
    ],
)
def test_auxiliary_http_errors_degrade_to_empty(fake_crm, credentials, path, fetch) -> None:
    fake_crm.fail(path, 500, "Internal error")
    connector = CrmApiConnector(credentials, transport=fake_crm.transport)

    assert asyncio.run(getattr(connector, fetch)()) == []


def test_auxiliary_transport_errors_degrade_to_empty(fake_crm, credentials) -> None:
    fake_crm.raise_error(
        "/customers",
        lambda request: httpx.ConnectError("connection refused", request=request),
    )
    connector = CrmApiConnector(credentials, transport=fake_crm.transport)

    assert asyncio.run(connector.fetch_customers()) == []


def test_unexpected_body_is_treated_as_empty(fake_crm, credentials) -> None:
    fake_crm.set("/notes", {"message": "no notes here"})
    connector = CrmApiConnector(credentials, transport=fake_crm.transport)

    assert asyncio.run(connector.fetch_notes()) == []


def test_order_rows_are_fetched_per_order_and_failures_stay_local(fake_crm, credentials) -> None:
    fake_crm.set("/orderrows?orderId=1", [{"id": "r1"}])
    fake_crm.fail("/orderrows?orderId=2", 500, "boom")
    fake_crm.set("/orderrows?orderId=3", {"data": [{"id": "r3"}, {"id": "r4"}]})
    connector = CrmApiConnector(credentials, transport=fake_crm.transport)

    rows = asyncio.run(connector.fetch_order_rows_for_orders(["1", "2", "3", "1", ""]))

    assert rows == {
        "1": [{"id": "r1"}],
        "2": [],
        "3": [{"id": "r3"}, {"id": "r4"}],
    }
    requested = sorted(request.url.params["orderId"] for request in fake_crm.requests)
    assert requested == ["1", "2", "3"]


def test_order_rows_without_orders_make_no_requests(fake_crm, credentials) -> None:
    connector = CrmApiConnector(credentials, transport=fake_crm.transport)

    assert asyncio.run(connector.fetch_order_rows_for_orders([])) == {}
    assert fake_crm.requests == []


def test_order_rows_share_one_client_and_respect_the_concurrency_limit(credentials, monkeypatch) -> None:
    in_flight = 0
    peak = 0
    seen: list[str] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        seen.append(request.url.params["orderId"])
        return httpx.Response(200, json=[{"id": f"row-{request.url.params['orderId']}"}])

    connector = CrmApiConnector(
        credentials,
        transport=httpx.MockTransport(handler),
        max_concurrent=2,
    )
    clients: list[httpx.AsyncClient] = []
    original_client = connector._client

    def counting_client() -> httpx.AsyncClient:
        client = original_client()
        clients.append(client)
        return client

    monkeypatch.setattr(connector, "_client", counting_client)
    order_ids = [str(i) for i in range(8)]

    rows = asyncio.run(connector.fetch_order_rows_for_orders(order_ids))

    assert list(rows) == order_ids
    assert rows["5"] == [{"id": "row-5"}]
    assert sorted(seen) == sorted(order_ids)
    assert peak == 2
    assert len(clients) == 1


def test_malformed_api_url_degrades_auxiliary_fetches(fake_crm, credentials) -> None:
    broken = credentials.model_copy(update={"api_url": "http://crm.example.com:abc"})
    connector = CrmApiConnector(broken, transport=fake_crm.transport)

    assert asyncio.run(connector.fetch_customers()) == []
    assert asyncio.run(connector.fetch_order_rows_for_orders(["1"])) == {"1": []}

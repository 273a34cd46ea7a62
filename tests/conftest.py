"""Shared fixtures: an in-memory fake of the CRM REST API and sample records."""
from __future__ import annotations

from typing import Any, Callable

import httpx
import pytest

from models.credentials import ApiCredentials

CRM_BASE_URL = "https://crm.example.com"


class FakeCrm:
    """Serves canned responses per path through an ``httpx.MockTransport``.

    A response may be JSON-serializable data (served with 200), an
    ``httpx.Response``, or a callable taking the request. Order rows are
    looked up under ``"/orderrows?orderId=<id>"`` first.
    """

    def __init__(self) -> None:
        self.responses: dict[str, Any] = {}
        self.requests: list[httpx.Request] = []

    def set(self, path: str, response: Any) -> None:
        self.responses[path] = response

    def fail(self, path: str, status_code: int, text: str = "error") -> None:
        self.responses[path] = lambda request: httpx.Response(status_code, text=text)

    def raise_error(self, path: str, error: Callable[[httpx.Request], Exception]) -> None:
        def _raise(request: httpx.Request) -> httpx.Response:
            raise error(request)

        self.responses[path] = _raise

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        key = path
        if path == "/orderrows":
            specific = f"/orderrows?orderId={request.url.params.get('orderId')}"
            if specific in self.responses:
                key = specific

        response = self.responses.get(key)
        if response is None:
            return httpx.Response(200, json=[])
        if isinstance(response, httpx.Response):
            return response
        if callable(response):
            return response(request)
        return httpx.Response(200, json=response)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)


@pytest.fixture
def fake_crm() -> FakeCrm:
    return FakeCrm()


@pytest.fixture
def credentials() -> ApiCredentials:
    return ApiCredentials(
        api_url=CRM_BASE_URL,
        username="anna",
        password="s3cret",
        schema_id="tenant42",
    )


@pytest.fixture
def crm_records() -> dict[str, Any]:
    """A small, consistent upstream dataset."""
    return {
        "/notes": {
            "items": [
                {
                    "id": "n1",
                    "text": "Kunden vill ha en demo",
                    "created": "2024-05-02T09:00:00Z",
                    "createdBy": "ANNA@001",
                    "customerId": "c1",
                },
                {
                    "id": "n2",
                    "note": "Uppföljning skickad",
                    "created": "2024-05-01T08:00:00Z",
                    "user": {"id": "u2", "name": "Bo Ek"},
                    "customer": {"id": "c2", "name": "Beta AB"},
                },
            ]
        },
        "/todos": {
            "data": [
                {
                    "id": "t1",
                    "title": "Ring kunden",
                    "description": "Fråga om budget",
                    "triggerDate": "2024-05-03T12:00:00Z",
                    "signature": "bo.ek",
                },
            ]
        },
        "/orders": [
            {
                "id": "42",
                "orderNumber": "1001",
                "status": "Bekräftad",
                "orderDate": "2024-05-02T10:30:00Z",
                "createdBy": "anna",
                "customerId": "c1",
                "totalExVat": 1250.5,
            },
        ],
        "/orderrows?orderId=42": [
            {"id": "r1", "productName": "Server X", "quantity": 2, "price": "500,25"},
            {"id": "r2", "articleNumber": "ART-9", "quantity": 1, "price": 250},
        ],
        "/customers": [
            {"id": "c1", "name": "Acme AB"},
            {"id": "c3"},
        ],
        "/api_users_view": [
            {"id": "u2", "email": "bo@example.com", "name": "Bo Ek (user)"},
            {"userId": "anna", "name": "Anna User"},
        ],
        "/dashboard/salesperson": [
            {"id": "ANNA", "email": "anna@example.com", "name": "Anna Svensson"},
            {"signature": "bo.ek", "firstName": "Bo", "lastName": "Ek"},
        ],
    }


@pytest.fixture
def populated_crm(fake_crm: FakeCrm, crm_records: dict[str, Any]) -> FakeCrm:
    for path, response in crm_records.items():
        fake_crm.set(path, response)
    return fake_crm

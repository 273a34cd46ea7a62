import base64

import pytest

from connectors.base import (
    CredentialsMissingError,
    EnvelopeKind,
    build_auth_headers,
    decode_envelope,
)
from models.credentials import ApiCredentials


def test_decode_bare_array() -> None:
    envelope = decode_envelope([{"id": 1}, {"id": 2}])

    assert envelope.kind is EnvelopeKind.ARRAY
    assert envelope.items == [{"id": 1}, {"id": 2}]


def test_decode_items_envelope() -> None:
    envelope = decode_envelope({"items": [{"id": 1}], "pagination": {"currentPage": 1}})

    assert envelope.kind is EnvelopeKind.ITEMS
    assert envelope.items == [{"id": 1}]


def test_decode_data_envelope() -> None:
    envelope = decode_envelope({"data": [{"id": 1}], "success": True})

    assert envelope.kind is EnvelopeKind.DATA
    assert envelope.items == [{"id": 1}]


@pytest.mark.parametrize(
    "payload",
    [None, "text", 42, {}, {"message": "ok"}, {"items": "not a list"}, {"data": {"id": 1}}],
)
def test_unrecognized_shapes_decode_to_empty(payload: object) -> None:
    envelope = decode_envelope(payload)

    assert envelope.kind is EnvelopeKind.UNKNOWN
    assert envelope.items == []
    assert not envelope.recognized


def test_auth_headers_carry_basic_auth_and_schema(credentials: ApiCredentials) -> None:
    headers = build_auth_headers(credentials)

    expected = base64.b64encode(b"anna:s3cret").decode("ascii")
    assert headers["Authorization"] == f"Basic {expected}"
    assert headers["schema"] == "tenant42"


def test_auth_headers_require_credentials() -> None:
    with pytest.raises(CredentialsMissingError):
        build_auth_headers(None)


def test_auth_headers_require_every_field(credentials: ApiCredentials) -> None:
    incomplete = credentials.model_copy(update={"schema_id": "  "})

    with pytest.raises(CredentialsMissingError):
        build_auth_headers(incomplete)

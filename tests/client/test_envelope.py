import base64
import json

import pytest

from trinoduck.client import Column, Envelope, QueryRequest
from trinoduck.errors import ProtocolError


def test_parse_full_envelope():
    raw = json.dumps(
        {
            "id": "20240101_000000_00001_abcde",
            "infoUri": "http://coordinator/ui/query.html?20240101_000000_00001_abcde",
            "nextUri": "http://coordinator/v1/statement/executing/q/2",
            "columns": [
                {"name": "id", "type": "integer", "typeSignature": {"rawType": "integer"}},
                {"name": "name", "type": "varchar(10)"},
            ],
            "data": [[1, "a"], [2, None]],
            "stats": {"state": "RUNNING", "processedRows": 2},
        }
    ).encode()

    envelope = Envelope.parse(raw)

    assert envelope.query_id == "20240101_000000_00001_abcde"
    assert envelope.next_uri == "http://coordinator/v1/statement/executing/q/2"
    assert envelope.columns == [
        Column("id", "integer", {"rawType": "integer"}),
        Column("name", "varchar(10)"),
    ]
    assert envelope.data == [[1, "a"], [2, None]]
    assert envelope.error is None
    assert envelope.state == "RUNNING"


def test_parse_minimal_envelope_defaults():
    envelope = Envelope.parse(b'{"id": "q"}')

    assert envelope.next_uri is None
    assert envelope.columns is None
    assert envelope.data == []
    assert envelope.stats is None
    assert envelope.state is None


def test_parse_error_and_update_fields():
    envelope = Envelope.parse(
        json.dumps(
            {
                "id": "q",
                "error": {"errorType": "USER_ERROR", "message": "boom"},
                "updateType": "INSERT",
                "updateCount": 3,
            }
        )
    )

    assert envelope.error == {"errorType": "USER_ERROR", "message": "boom"}
    assert envelope.update_type == "INSERT"
    assert envelope.update_count == 3


@pytest.mark.parametrize(
    "raw",
    [
        b"not json",
        b"[1, 2]",
        b'{"nextUri": 5}',
        b'{"columns": {"name": "a"}}',
        b'{"columns": [{"name": "a"}]}',
        b'{"data": [1, 2]}',
        b'{"updateCount": true}',
    ],
)
def test_parse_rejects_malformed_bodies(raw):
    with pytest.raises(ProtocolError):
        Envelope.parse(raw)


def test_query_request_headers_without_password():
    request = QueryRequest("SELECT 1", user="alice", catalog="tpch", schema="tiny")

    headers = request.http_headers()

    assert headers["X-Trino-User"] == "alice"
    assert headers["X-Trino-Source"] == "trinoduck"
    assert headers["X-Trino-Catalog"] == "tpch"
    assert headers["X-Trino-Schema"] == "tiny"
    assert "Authorization" not in headers


def test_query_request_headers_with_password():
    request = QueryRequest("SELECT 1", user="alice", password="secret")

    headers = request.http_headers()

    token = base64.b64encode(b"alice:secret").decode()
    assert headers["Authorization"] == f"Basic {token}"
    assert "X-Trino-Catalog" not in headers
    assert "X-Trino-Schema" not in headers


def test_empty_password_sends_no_credentials():
    assert "Authorization" not in QueryRequest("SELECT 1", password="").http_headers()

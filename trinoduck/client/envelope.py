"""Value types exchanged with the coordinator's statement endpoint."""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field
from typing import Any

from ..errors import ProtocolError

HEADER_USER = "X-Trino-User"
HEADER_SOURCE = "X-Trino-Source"
HEADER_CATALOG = "X-Trino-Catalog"
HEADER_SCHEMA = "X-Trino-Schema"


@dataclass(frozen=True)
class QueryRequest:
    """Everything needed to submit one statement.

    Parameters are already substituted into ``sql`` at this point.
    """

    sql: str
    user: str = "anonymous"
    catalog: str | None = None
    schema: str | None = None
    password: str | None = None
    timeout: float = 30.0
    source: str = "trinoduck"

    def http_headers(self) -> dict[str, str]:
        headers = {
            HEADER_USER: self.user,
            HEADER_SOURCE: self.source,
        }
        # Basic auth only when a password is actually set.
        if self.password:
            token = base64.b64encode(f"{self.user}:{self.password}".encode()).decode("ascii")
            headers["Authorization"] = f"Basic {token}"
        if self.catalog:
            headers[HEADER_CATALOG] = self.catalog
        if self.schema:
            headers[HEADER_SCHEMA] = self.schema
        return headers


@dataclass(frozen=True)
class Column:
    name: str
    type: str
    type_signature: dict[str, Any] | None = None


@dataclass(frozen=True)
class Envelope:
    """One decoded reply from the statement endpoint.

    Attributes:
        query_id: Query identifier assigned by the coordinator
        next_uri: Continuation link, None at end of results
        columns: Column descriptors, None when this reply carries none
        data: Row batch, empty when the reply carries no rows
        error: Raw error descriptor, None on success
        stats: Opaque progress statistics
        update_type: Statement kind for DDL/DML (e.g. "INSERT")
        update_count: Affected rows for DML
    """

    query_id: str | None = None
    next_uri: str | None = None
    columns: list[Column] | None = None
    data: list[list[Any]] = field(default_factory=list)
    error: dict[str, Any] | None = None
    stats: dict[str, Any] | None = None
    update_type: str | None = None
    update_count: int | None = None

    @property
    def state(self) -> str | None:
        if self.stats:
            return self.stats.get("state")
        return None

    @classmethod
    def parse(cls, raw: bytes | str) -> Envelope:
        """Decode a response body.

        Raises:
            ProtocolError: If the body is not JSON or has an unexpected shape.
        """
        try:
            doc = json.loads(raw)
        except (ValueError, UnicodeDecodeError) as e:
            raise ProtocolError(f"Response is not valid JSON: {e}") from None

        if not isinstance(doc, dict):
            raise ProtocolError(f"Expected a JSON object, got {type(doc).__name__}")

        return cls(
            query_id=_optional(doc, "id", str),
            next_uri=_optional(doc, "nextUri", str),
            columns=_parse_columns(doc.get("columns")),
            data=_parse_data(doc.get("data")),
            error=_optional(doc, "error", dict),
            stats=_optional(doc, "stats", dict),
            update_type=_optional(doc, "updateType", str),
            update_count=_optional(doc, "updateCount", int),
        )


def _optional(doc: dict[str, Any], key: str, expected: type) -> Any:
    value = doc.get(key)
    if value is None:
        return None
    if not isinstance(value, expected) or (isinstance(value, bool) and expected is int):
        raise ProtocolError(
            f"Field {key!r} should be {expected.__name__}, got {type(value).__name__}"
        )
    return value


def _parse_columns(raw: Any) -> list[Column] | None:
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise ProtocolError("Field 'columns' should be an array")

    columns = []
    for item in raw:
        if not isinstance(item, dict):
            raise ProtocolError("Column descriptor should be an object")
        name = item.get("name")
        type_name = item.get("type")
        if not isinstance(name, str) or not isinstance(type_name, str):
            raise ProtocolError(f"Column descriptor needs string name and type: {item!r}")
        signature = item.get("typeSignature")
        columns.append(
            Column(
                name=name,
                type=type_name,
                type_signature=signature if isinstance(signature, dict) else None,
            )
        )
    return columns


def _parse_data(raw: Any) -> list[list[Any]]:
    if raw is None:
        return []
    if not isinstance(raw, list) or not all(isinstance(row, list) for row in raw):
        raise ProtocolError("Field 'data' should be an array of row arrays")
    return raw

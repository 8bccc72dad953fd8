"""Connection configuration and connection-string parsing."""

from __future__ import annotations

import re
from dataclasses import dataclass, fields, replace
from typing import Any
from urllib.parse import urlsplit

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 8080
DEFAULT_USER = "anonymous"
DEFAULT_TIMEOUT = 30

# Key=Value pairs separated by ';'. Values may be quoted to contain ';'.
_PAIR_RE = re.compile(
    r"""\s*([^=;]+?)\s*=\s*("(?:[^"]|"")*"|'(?:[^']|'')*'|[^;]*?)\s*(?:;|$)"""
)

_KEY_ALIASES = {
    "host": "host",
    "port": "port",
    "usessl": "use_ssl",
    "ssl": "use_ssl",
    "catalog": "catalog",
    "schema": "schema",
    "user": "user",
    "username": "user",
    "password": "password",
    "timeout": "timeout",
}


@dataclass(frozen=True)
class ConnectionConfig:
    """Immutable connection settings shared by every query of a connection."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    use_ssl: bool = False
    catalog: str = ""
    schema: str = ""
    user: str = DEFAULT_USER
    password: str = ""
    timeout: int = DEFAULT_TIMEOUT

    @property
    def scheme(self) -> str:
        return "https" if self.use_ssl else "http"

    @property
    def server_url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"

    def with_server(self, server: str) -> ConnectionConfig:
        """Return a copy with host, port and TLS flag taken from a URL.

        A value that does not parse as ``scheme://host[:port]`` is used as the
        host name as-is.
        """
        if not server:
            return self
        parts = urlsplit(server)
        if parts.scheme not in ("http", "https") or not parts.hostname:
            return replace(self, host=server)
        try:
            port = parts.port
        except ValueError:
            port = None
        use_ssl = parts.scheme == "https"
        if port is None:
            port = 443 if use_ssl else 80
        return replace(self, host=parts.hostname, port=port, use_ssl=use_ssl)

    def replace(self, **changes: Any) -> ConnectionConfig:
        return replace(self, **changes)

    def to_connection_string(self) -> str:
        parts = [
            f"Host={self.host}",
            f"Port={self.port}",
            f"UseSSL={'true' if self.use_ssl else 'false'}",
            f"Catalog={self.catalog}",
            f"Schema={self.schema}",
            f"User={self.user}",
            f"Password={self.password}",
            f"Timeout={self.timeout}",
        ]
        return ";".join(parts) + ";"

    def __repr__(self) -> str:
        masked = "***" if self.password else ""
        values = ", ".join(
            f"{f.name}={masked if f.name == 'password' else getattr(self, f.name)!r}"
            for f in fields(self)
        )
        return f"ConnectionConfig({values})"

    @classmethod
    def parse(cls, connection_string: str) -> ConnectionConfig:
        """Parse ``Host=...;Port=...;`` style settings.

        Keys are case-insensitive and unknown keys are ignored. A ``Server``
        URL is applied first so that explicit Host/Port/UseSSL keys win.
        """
        values = parse_pairs(connection_string)
        config = cls()
        server = values.pop("server", "")
        if server:
            config = config.with_server(server)
        return config.with_values(values)

    def with_values(self, values: dict[str, Any]) -> ConnectionConfig:
        """Apply loosely typed settings, falling back to defaults on bad input."""
        changes: dict[str, Any] = {}
        for key, raw in values.items():
            name = _KEY_ALIASES.get(key.replace("_", "").lower())
            if name is None:
                continue
            if name == "port":
                changes[name] = _to_int(raw, DEFAULT_PORT)
            elif name == "timeout":
                changes[name] = _to_int(raw, DEFAULT_TIMEOUT)
            elif name == "use_ssl":
                changes[name] = _to_bool(raw)
            elif name == "host":
                changes[name] = str(raw) if raw not in (None, "") else DEFAULT_HOST
            elif name == "user":
                changes[name] = str(raw) if raw not in (None, "") else DEFAULT_USER
            else:
                changes[name] = "" if raw is None else str(raw)
        return replace(self, **changes)


def parse_pairs(connection_string: str) -> dict[str, str]:
    """Split a connection string into a dict keyed by lower-cased names."""
    values: dict[str, str] = {}
    for match in _PAIR_RE.finditer(connection_string or ""):
        key, value = match.group(1), match.group(2)
        if not key.strip():
            continue
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
            quote = value[0]
            value = value[1:-1].replace(quote * 2, quote)
        values[key.strip().lower()] = value
    return values


def _to_int(raw: Any, default: int) -> int:
    if isinstance(raw, bool):
        return default
    try:
        return int(str(raw).strip())
    except ValueError:
        return default


def _to_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() == "true"

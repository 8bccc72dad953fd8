"""Client-side substitution of named placeholders.

The engine protocol has no bound parameters at this level, so ``@name`` and
``:name`` placeholders are replaced by SQL literals before submission. The
scan skips quoted literals, quoted identifiers, comments and ``::`` casts,
and only matches whole names, so ``:id`` never rewrites part of ``:identifier``.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

from ..codec import literalize

_TOKEN_RE = re.compile(
    r"""
    '(?:[^']|'')*'              # string literal
    | "(?:[^"]|"")*"            # quoted identifier
    | --[^\n]*                  # line comment
    | /\*[\s\S]*?(?:\*/|\Z)     # block comment, possibly unterminated
    | ::                        # cast operator
    | (?<![\w@:])[@:]([A-Za-z_][A-Za-z0-9_]*)(?![\w])
    """,
    re.VERBOSE,
)


def normalize_parameter_name(name: str) -> str:
    return name.lstrip("@:")


def substitute_parameters(sql: str, params: Mapping[str, Any] | None) -> str:
    """Replace ``@name`` / ``:name`` placeholders with literals from ``params``.

    Parameter names may be given with or without their prefix. Placeholders
    without a matching parameter are left untouched.
    """
    if not params:
        return sql

    values = {normalize_parameter_name(k): v for k, v in params.items()}

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name is None or name not in values:
            return match.group(0)
        return literalize(values[name])

    return _TOKEN_RE.sub(_replace, sql)


def find_placeholders(sql: str) -> list[str]:
    """Return placeholder names in order of appearance, without duplicates."""
    seen: dict[str, None] = {}
    for match in _TOKEN_RE.finditer(sql):
        if match.group(1) is not None:
            seen.setdefault(match.group(1), None)
    return list(seen)

# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Header helpers.

HTTP header field names are case-insensitive (RFC 9110). Requests keep headers as
ordered name/value pairs so duplicates and caller ordering survive, which means
lookups scan the pairs instead of relying on a dict.
"""

from __future__ import annotations

from collections.abc import Iterable

HeaderPairs = Iterable[tuple[str | bytes, str | bytes]]
RawHeaders = list[tuple[bytes, bytes]]


def _as_text(value: str | bytes) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("latin-1")
    return str(value)


def header_value(headers: HeaderPairs | None, name: str, default: str = "") -> str:
    """Return the last value of ``name`` using case-insensitive matching."""
    if not headers or not name:
        return default
    lower = name.lower()
    found = default
    for key, value in headers:
        if _as_text(key).strip().lower() == lower:
            found = _as_text(value).strip()
    return found


def has_header(headers: HeaderPairs | None, name: str) -> bool:
    if not headers or not name:
        return False
    lower = name.lower()
    return any(_as_text(key).strip().lower() == lower for key, _ in headers)


__all__ = ["HeaderPairs", "RawHeaders", "has_header", "header_value"]

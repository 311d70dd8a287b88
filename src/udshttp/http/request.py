# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Request construction and response body collection."""

from __future__ import annotations

import h11
import httpx

from ..config import ClientSettings, load_client_settings
from ..errors import RequestBuild, ResponseCollect
from .headers import HeaderPairs, has_header, header_value
from .models import PreparedRequest, Response


def build_request(
    endpoint: str,
    method: str,
    headers: HeaderPairs = (),
    body: bytes | None = None,
    *,
    settings: ClientSettings | None = None,
) -> PreparedRequest:
    """
    Build a request addressed to the synthetic authority.

    ``endpoint`` is appended verbatim to ``http://<authority>``. Headers keep
    their order and duplicates. A missing body is sent as an empty one.
    Anything httpx or h11 rejects is raised as RequestBuild.
    """
    settings = settings or load_client_settings()
    content = b"" if body is None else bytes(body)
    pairs = list(headers)
    if settings.user_agent and not has_header(pairs, "user-agent"):
        pairs.append(("User-Agent", settings.user_agent))

    declared_length = header_value(pairs, "content-length")
    if declared_length and declared_length != str(len(content)):
        raise RequestBuild(message=f"Content-Length {declared_length} does not match body of {len(content)} bytes")

    try:
        request = httpx.Request(
            str(method),
            f"http://{settings.authority}{endpoint}",
            headers=pairs,
            content=content,
        )
        head = h11.Request(
            method=request.method,
            target=request.url.raw_path,
            headers=request.headers.raw,
        )
    except (httpx.InvalidURL, h11.LocalProtocolError, UnicodeEncodeError, TypeError, ValueError) as exc:
        raise RequestBuild(exc) from exc
    return PreparedRequest(head=head, body=content)


async def collect_body(response: Response, *, max_bytes: int = 0) -> bytes:
    """Buffer the whole response body. ``max_bytes <= 0`` means no limit."""
    content = bytearray()
    try:
        async for chunk in response.aiter_bytes():
            content.extend(chunk)
            if max_bytes > 0 and len(content) > max_bytes:
                raise ResponseCollect(message=f"response body exceeds {max_bytes} bytes")
    except BaseException:
        # The driver discards the rest of the body instead of queueing it.
        response.exchange.abandon()
        raise
    return bytes(content)


__all__ = ["build_request", "collect_body"]

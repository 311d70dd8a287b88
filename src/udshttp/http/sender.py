# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Foreground handle used to submit requests on a live connection."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from ..errors import RequestSend
from .models import Exchange, PreparedRequest, Response

if TYPE_CHECKING:
    from .connection import Connection


class SendRequest:
    """
    Request sender bound to one connection.

    Usage is serialized: one exchange at a time. Overlapping use is rejected with
    a (non-canceled) RequestSend instead of being queued. Callers sharing one
    handle across tasks must hold their own lock around it.

    An exchange the caller walked away from (body limit hit, cancelled while
    waiting) is not overlapping use: the next send waits until the driver has
    drained it.

    Once the connection driver stops, the handle is closed for good and every
    further send fails with a canceled RequestSend.
    """

    def __init__(self, connection: Connection):
        self._connection = connection
        self._closed = False
        self._current: Exchange | None = None

    def is_closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    async def send_request(self, request: PreparedRequest) -> Response:
        """Submit ``request`` and wait for the response head."""
        current = self._current
        if not self._closed and current is not None and not current.finished:
            if not current.abandoned:
                raise RequestSend(message="a request is already in flight on this connection")
            await current.wait_finished()
        if self._closed:
            raise RequestSend(message="connection closed", canceled=True)

        exchange = Exchange(request)
        self._current = exchange
        self._connection.submit(exchange)
        try:
            # Shielded so a cancelled caller does not cancel the future the driver resolves.
            head = await asyncio.shield(exchange.head)
        except asyncio.CancelledError:
            exchange.abandon()
            raise
        return Response(head=head, exchange=exchange)


__all__ = ["SendRequest"]

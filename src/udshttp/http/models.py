# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Request/response data models shared by the sender handle and the connection driver."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

import h11

from ..errors import Error, RequestSend, ResponseCollect
from .headers import RawHeaders, header_value

_END_OF_BODY = object()


@dataclass
class PreparedRequest:
    """A request validated by the protocol engine, ready to be written."""

    head: h11.Request
    body: bytes = b""

    @property
    def method(self) -> str:
        return self.head.method.decode("ascii")

    @property
    def target(self) -> str:
        return self.head.target.decode("ascii")


@dataclass
class ResponseHead:
    """Status line and headers of a response."""

    status_code: int
    headers: RawHeaders = field(default_factory=list)
    reason: str = ""
    http_version: str = "1.1"

    @classmethod
    def from_h11(cls, event: h11.Response) -> ResponseHead:
        return cls(
            status_code=event.status_code,
            headers=[(bytes(name), bytes(value)) for name, value in event.headers.raw_items()],
            reason=bytes(event.reason).decode("latin-1"),
            http_version=bytes(event.http_version).decode("ascii"),
        )

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    def header(self, name: str, default: str = "") -> str:
        return header_value(self.headers, name, default)


class Exchange:
    """
    One request/response cycle handed from the sender handle to the driver.

    The driver resolves ``head`` once the status line arrives, then streams body
    chunks through an internal queue. A failure before the head becomes a
    RequestSend, a failure after it a ResponseCollect.

    A consumer that stops reading early (body limit, cancellation) abandons the
    exchange: queued chunks are dropped and later ones are discarded while the
    driver finishes the response.
    """

    def __init__(self, request: PreparedRequest):
        self.request = request
        self.head: asyncio.Future[ResponseHead] = asyncio.get_running_loop().create_future()
        self.finished = False
        self.abandoned = False
        self._done = asyncio.Event()
        self._chunks: asyncio.Queue[object] = asyncio.Queue()

    @property
    def queued_chunks(self) -> int:
        return self._chunks.qsize()

    def set_head(self, head: ResponseHead) -> None:
        if not self.head.done():
            self.head.set_result(head)

    def feed_data(self, data: bytes) -> None:
        if data and not self.abandoned:
            self._chunks.put_nowait(data)

    def feed_eof(self) -> None:
        self._finish()
        if not self.abandoned:
            self._chunks.put_nowait(_END_OF_BODY)

    def fail(self, cause: BaseException | None, *, canceled: bool, message: str | None = None) -> None:
        if self.finished:
            return
        self._finish()
        if not self.head.done():
            self.head.set_exception(RequestSend(cause, message, canceled=canceled))
            # The caller may have gone away; nobody else reads this.
            self.head.exception()
        elif not self.abandoned:
            self._chunks.put_nowait(ResponseCollect(cause, message))

    def abandon(self) -> None:
        self.abandoned = True
        while not self._chunks.empty():
            self._chunks.get_nowait()

    async def wait_finished(self) -> None:
        await self._done.wait()

    def _finish(self) -> None:
        self.finished = True
        self._done.set()

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        completed = False
        try:
            while True:
                item = await self._chunks.get()
                if item is _END_OF_BODY:
                    completed = True
                    return
                if isinstance(item, Error):
                    completed = True
                    raise item
                yield item  # type: ignore[misc]
        finally:
            if not completed:
                self.abandon()


@dataclass
class Response:
    """Response head plus the body stream still owned by the exchange."""

    head: ResponseHead
    exchange: Exchange

    @property
    def status_code(self) -> int:
        return self.head.status_code

    def aiter_bytes(self) -> AsyncIterator[bytes]:
        return self.exchange.aiter_bytes()

# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
HTTP/1.1 connection driver.

``handshake`` binds an h11 client state machine to a dialed stream and returns
the pair (sender handle, connection). ``spawn_driver`` runs the connection on a
background task whose return value is the terminal outcome of the connection:
``SocketConnectionClosed(None)`` after a graceful close and
``SocketConnectionClosed(exc)`` after a transport or protocol failure. A
cancelled driver produces no outcome.
"""

from __future__ import annotations

import asyncio
import logging

import h11

from ..errors import Handshake, SocketConnectionClosed
from .models import Exchange, PreparedRequest, ResponseHead
from .sender import SendRequest

logger = logging.getLogger(__name__)

DEFAULT_READ_SIZE = 64 * 1024


class Connection:
    """Owns the socket and pumps the protocol engine for one connection."""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        protocol: h11.Connection,
        *,
        read_size: int = DEFAULT_READ_SIZE,
    ):
        self._reader = reader
        self._writer = writer
        self._protocol = protocol
        self._read_size = read_size
        self._sender: SendRequest | None = None
        self._pending: Exchange | None = None
        self._active: Exchange | None = None
        self._wakeup = asyncio.Event()
        self._peer_closed = False
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    def bind(self, sender: SendRequest) -> None:
        self._sender = sender

    def submit(self, exchange: Exchange) -> None:
        if self._closed:
            exchange.fail(None, canceled=True, message="connection closed")
            return
        self._pending = exchange
        self._wakeup.set()

    async def run(self) -> None:
        """Serve exchanges until the connection closes. Transport failures propagate."""
        try:
            while True:
                exchange = await self._next_exchange()
                if exchange is None:
                    logger.debug("Peer closed the idle connection")
                    return
                if not await self._serve(exchange):
                    return
        finally:
            self.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._sender is not None:
            self._sender.close()
        for exchange in (self._active, self._pending):
            if exchange is not None:
                exchange.fail(None, canceled=True, message="connection closed")
        self._active = self._pending = None
        self._writer.close()

    async def _next_exchange(self) -> Exchange | None:
        # While idle, watch the socket too so a peer close ends the driver right away.
        while self._pending is None:
            waiter = asyncio.ensure_future(self._wakeup.wait())
            reader = asyncio.ensure_future(self._reader.read(self._read_size))
            try:
                await asyncio.wait({waiter, reader}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                pending = {task for task in (waiter, reader) if not task.done()}
                for task in pending:
                    task.cancel()
                # The stream reader allows a single waiter; let the cancelled read unwind.
                if pending:
                    await asyncio.wait(pending)
            if not reader.cancelled():
                if not reader.result():
                    self._peer_closed = True
                    return None
                raise h11.RemoteProtocolError("unexpected data from server on an idle connection")
        self._wakeup.clear()
        exchange, self._pending = self._pending, None
        return exchange

    async def _serve(self, exchange: Exchange) -> bool:
        """Run one exchange. Returns whether the connection can be reused."""
        self._active = exchange
        try:
            await self._write_request(exchange.request)
            await self._read_response(exchange)
        except BaseException as exc:
            exchange.fail(exc, canceled=self._is_connection_loss(exc))
            raise
        finally:
            self._active = None

        protocol = self._protocol
        if protocol.our_state is h11.DONE and protocol.their_state is h11.DONE:
            protocol.start_next_cycle()
            return True
        logger.debug(
            "Connection is not reusable (client=%s, server=%s)",
            protocol.our_state,
            protocol.their_state,
        )
        return False

    async def _write_request(self, request: PreparedRequest) -> None:
        protocol = self._protocol
        data = protocol.send(request.head) or b""
        if request.body:
            data += protocol.send(h11.Data(data=request.body)) or b""
        data += protocol.send(h11.EndOfMessage()) or b""
        self._writer.write(data)
        await self._writer.drain()

    async def _read_response(self, exchange: Exchange) -> None:
        protocol = self._protocol
        while True:
            event = protocol.next_event()
            if event is h11.NEED_DATA:
                data = await self._reader.read(self._read_size)
                if not data:
                    self._peer_closed = True
                protocol.receive_data(data)
            elif isinstance(event, h11.InformationalResponse):
                continue
            elif isinstance(event, h11.Response):
                exchange.set_head(ResponseHead.from_h11(event))
            elif isinstance(event, h11.Data):
                exchange.feed_data(bytes(event.data))
            elif isinstance(event, h11.EndOfMessage):
                exchange.feed_eof()
                return
            else:
                raise h11.RemoteProtocolError(f"unexpected {event!r} before the end of the response")

    def _is_connection_loss(self, exc: BaseException) -> bool:
        if isinstance(exc, (ConnectionError, asyncio.CancelledError, asyncio.IncompleteReadError)):
            return True
        return isinstance(exc, h11.RemoteProtocolError) and self._peer_closed


async def handshake(
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    *,
    read_size: int = DEFAULT_READ_SIZE,
) -> tuple[SendRequest, Connection]:
    """Bind an HTTP/1.1 client state machine to a freshly dialed stream."""
    if writer.is_closing() or reader.at_eof() or reader.exception() is not None:
        cause = reader.exception()
        writer.close()
        raise Handshake(cause, "stream closed before the handshake" if cause is None else None)

    connection = Connection(reader, writer, h11.Connection(our_role=h11.CLIENT), read_size=read_size)
    sender = SendRequest(connection)
    connection.bind(sender)
    return sender, connection


async def _drive(connection: Connection) -> SocketConnectionClosed:
    try:
        await connection.run()
    except Exception as exc:  # noqa: BLE001 - captured as the terminal outcome
        logger.debug("Connection driver stopped on error: %s", exc)
        return SocketConnectionClosed(exc)
    logger.debug("Connection driver stopped, connection closed")
    return SocketConnectionClosed(None)


def spawn_driver(connection: Connection, *, name: str | None = None) -> asyncio.Task[SocketConnectionClosed]:
    """Run ``connection`` on a background task. The socket is released however the task ends."""
    task = asyncio.create_task(_drive(connection), name=name)
    task.add_done_callback(lambda _task: connection.close())
    return task


__all__ = ["Connection", "handshake", "spawn_driver"]

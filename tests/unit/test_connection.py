# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import asyncio

import h11
import pytest

from tests.helpers import make_socket_path_test, remove_socket_dir
from udshttp import (
    ClientSettings,
    Handshake,
    InternalError,
    RequestSend,
    ResponseCollect,
    SocketConnectionClosed,
    UnixSocketClient,
)
from udshttp.dialer import dial
from udshttp.http import build_request, collect_body, handshake, spawn_driver

SETTINGS = ClientSettings(user_agent="")


async def _read_request(reader: asyncio.StreamReader) -> bytes:
    return await reader.readuntil(b"\r\n\r\n")


async def _start_raw_server(name, handler):
    socket_path = make_socket_path_test("conn", name)
    server = await asyncio.start_unix_server(handler, path=str(socket_path))
    return socket_path, server


def _stop_raw_server(socket_path, server) -> None:
    server.close()
    remove_socket_dir(socket_path)


async def _wait_closed(client: UnixSocketClient) -> None:
    for _ in range(200):
        if client.is_closed():
            return
        await asyncio.sleep(0.01)


def test_peer_closing_before_response_is_a_canceled_send():
    async def handler(reader, writer):
        await _read_request(reader)
        writer.close()

    async def scenario():
        socket_path, server = await _start_raw_server("no_response", handler)
        try:
            client = await UnixSocketClient.try_new(socket_path, SETTINGS)
            with pytest.raises(InternalError) as excinfo:
                await client.send_request("/nolanv", "GET")
            outcome = await client.abort()
            return excinfo.value, outcome
        finally:
            _stop_raw_server(socket_path, server)

    error, outcome = asyncio.run(scenario())
    assert isinstance(error.error, RequestSend)
    assert error.error.is_canceled()
    assert isinstance(outcome, SocketConnectionClosed)
    assert not outcome.graceful


def test_malformed_response_is_a_send_error_not_canceled():
    async def handler(reader, writer):
        try:
            await _read_request(reader)
            writer.write(b"NOT HTTP AT ALL\r\n\r\n")
            await writer.drain()
            await reader.read()
        finally:
            writer.close()

    async def scenario():
        socket_path, server = await _start_raw_server("malformed", handler)
        try:
            client = await UnixSocketClient.try_new(socket_path, SETTINGS)
            with pytest.raises(InternalError) as excinfo:
                await client.send_request("/nolanv", "GET")
            assert client.is_closed()
            outcome = await client.abort()
            return excinfo.value, outcome
        finally:
            _stop_raw_server(socket_path, server)

    error, outcome = asyncio.run(scenario())
    assert isinstance(error.error, RequestSend)
    assert not error.error.is_canceled()
    assert isinstance(outcome.cause, h11.RemoteProtocolError)


def test_truncated_body_is_a_collect_error():
    async def handler(reader, writer):
        await _read_request(reader)
        writer.write(b"HTTP/1.1 200 OK\r\nContent-Length: 10\r\n\r\nabc")
        await writer.drain()
        writer.close()

    async def scenario():
        socket_path, server = await _start_raw_server("truncated", handler)
        try:
            client = await UnixSocketClient.try_new(socket_path, SETTINGS)
            with pytest.raises(InternalError) as excinfo:
                await client.send_request("/nolanv", "GET")
            await client.abort()
            return excinfo.value
        finally:
            _stop_raw_server(socket_path, server)

    error = asyncio.run(scenario())
    assert isinstance(error.error, ResponseCollect)


def test_unsolicited_data_ends_the_driver():
    async def handler(reader, writer):
        try:
            writer.write(b"HTTP/1.1 408 Request Timeout\r\nContent-Length: 0\r\n\r\n")
            await writer.drain()
            await reader.read()
        finally:
            writer.close()

    async def scenario():
        socket_path, server = await _start_raw_server("unsolicited", handler)
        try:
            client = await UnixSocketClient.try_new(socket_path, SETTINGS)
            await _wait_closed(client)
            with pytest.raises(InternalError) as excinfo:
                await client.send_request("/nolanv", "GET")
            outcome = await client.abort()
            return excinfo.value, outcome
        finally:
            _stop_raw_server(socket_path, server)

    error, outcome = asyncio.run(scenario())
    assert error.error.is_canceled()
    assert isinstance(outcome.cause, h11.RemoteProtocolError)


def test_driver_reports_graceful_close():
    async def handler(reader, writer):
        # Leave the client time to finish its handshake first.
        await asyncio.sleep(0.05)
        writer.close()

    async def scenario():
        socket_path, server = await _start_raw_server("graceful", handler)
        try:
            reader, writer = await dial(socket_path)
            sender, connection = await handshake(reader, writer)
            driver = spawn_driver(connection)
            outcome = await asyncio.wait_for(driver, timeout=5)
            return outcome, sender, connection
        finally:
            _stop_raw_server(socket_path, server)

    outcome, sender, connection = asyncio.run(scenario())
    assert isinstance(outcome, SocketConnectionClosed)
    assert outcome.graceful
    assert sender.is_closed()
    assert connection.is_closed


def test_low_level_exchange_over_sender_handle():
    async def handler(reader, writer):
        try:
            await _read_request(reader)
            writer.write(b"HTTP/1.1 200 OK\r\nTransfer-Encoding: chunked\r\n\r\n5\r\nHello\r\n6\r\n world\r\n0\r\n\r\n")
            await writer.drain()
            await reader.read()
        finally:
            writer.close()

    async def scenario():
        socket_path, server = await _start_raw_server("low_level", handler)
        try:
            reader, writer = await dial(socket_path)
            sender, connection = await handshake(reader, writer)
            driver = spawn_driver(connection)
            response = await sender.send_request(build_request("/hello", "GET", settings=SETTINGS))
            body = await collect_body(response)
            driver.cancel()
            with pytest.raises(asyncio.CancelledError):
                await driver
            return response, body, sender
        finally:
            _stop_raw_server(socket_path, server)

    response, body, sender = asyncio.run(scenario())
    assert response.status_code == 200
    assert response.head.header("transfer-encoding") == "chunked"
    assert response.head.reason == "OK"
    assert response.head.http_version == "1.1"
    assert body == b"Hello world"
    assert sender.is_closed()


def test_handshake_on_closed_stream_fails():
    async def handler(reader, writer):
        try:
            await reader.read()
        finally:
            writer.close()

    async def scenario():
        socket_path, server = await _start_raw_server("handshake", handler)
        try:
            reader, writer = await dial(socket_path)
            writer.close()
            with pytest.raises(Handshake):
                await handshake(reader, writer)
        finally:
            _stop_raw_server(socket_path, server)

    asyncio.run(scenario())


STREAM_CHUNKS = 50
STREAM_CHUNK_SIZE = 4096
LIMITED = ClientSettings(user_agent="", max_body_bytes=1000)


def _streaming_handler(delay_head: float = 0.0):
    """Stream a large body for /big in small steps, answer anything else with a short 200."""

    async def handler(reader, writer):
        try:
            while True:
                head = await _read_request(reader)
                if head.startswith(b"GET /big "):
                    await asyncio.sleep(delay_head)
                    writer.write(b"HTTP/1.1 200 OK\r\nContent-Length: %d\r\n\r\n" % (STREAM_CHUNKS * STREAM_CHUNK_SIZE))
                    for _ in range(STREAM_CHUNKS):
                        writer.write(b"x" * STREAM_CHUNK_SIZE)
                        await writer.drain()
                        await asyncio.sleep(0.01)
                else:
                    writer.write(b"HTTP/1.1 200 OK\r\nContent-Length: 2\r\n\r\nok")
                    await writer.drain()
        except (asyncio.IncompleteReadError, ConnectionError):
            pass
        finally:
            writer.close()

    return handler


def test_send_after_body_limit_waits_for_the_rest_of_the_body():
    async def scenario():
        socket_path, server = await _start_raw_server("limit_then_send", _streaming_handler())
        try:
            client = await UnixSocketClient.try_new(socket_path, LIMITED)
            with pytest.raises(InternalError) as excinfo:
                await client.send_request("/big", "GET")
            result = await asyncio.wait_for(client.send_request("/small", "GET"), timeout=10)
            closed = client.is_closed()
            await client.abort()
            return excinfo.value, result, closed
        finally:
            _stop_raw_server(socket_path, server)

    error, result, closed = asyncio.run(scenario())
    assert isinstance(error.error, ResponseCollect)
    assert result == (200, b"ok")
    assert not closed


def test_body_over_limit_is_not_buffered():
    async def scenario():
        socket_path, server = await _start_raw_server("limit_memory", _streaming_handler())
        try:
            reader, writer = await dial(socket_path)
            sender, connection = await handshake(reader, writer)
            driver = spawn_driver(connection)
            response = await sender.send_request(build_request("/big", "GET", settings=LIMITED))
            with pytest.raises(ResponseCollect):
                await collect_body(response, max_bytes=LIMITED.max_body_bytes)
            exchange = response.exchange
            peak = exchange.queued_chunks
            while not exchange.finished:
                await asyncio.sleep(0.01)
                peak = max(peak, exchange.queued_chunks)
            driver.cancel()
            with pytest.raises(asyncio.CancelledError):
                await driver
            return exchange, peak
        finally:
            _stop_raw_server(socket_path, server)

    exchange, peak = asyncio.run(scenario())
    assert exchange.abandoned
    assert exchange.finished
    assert peak == 0
    assert exchange.queued_chunks == 0


def test_send_after_cancelled_send_waits_for_the_abandoned_response():
    async def scenario():
        socket_path, server = await _start_raw_server("cancel_then_send", _streaming_handler(delay_head=0.1))
        try:
            client = await UnixSocketClient.try_new(socket_path, SETTINGS)
            with pytest.raises(asyncio.TimeoutError):
                await asyncio.wait_for(client.send_request("/big", "GET"), timeout=0.02)
            result = await asyncio.wait_for(client.send_request("/small", "GET"), timeout=10)
            await client.abort()
            return result
        finally:
            _stop_raw_server(socket_path, server)

    assert asyncio.run(scenario()) == (200, b"ok")

# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Unix domain socket HTTP client with one persistent connection."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any

from .config import ClientSettings, load_client_settings
from .dialer import dial
from .errors import (
    Error,
    InternalError,
    RequestBuild,
    ResponseParse,
    ResponseUnsuccessful,
    SocketConnectionClosed,
)
from .http.connection import handshake, spawn_driver
from .http.headers import HeaderPairs, has_header
from .http.request import build_request, collect_body
from .http.sender import SendRequest

logger = logging.getLogger(__name__)


class UnixSocketClient:
    """
    HTTP client bound to one Unix socket path.

    A connected client holds a sender handle and the background task driving
    the connection. Requests are serialized: the client does not lock, so
    concurrent callers must share it behind their own ``asyncio.Lock``.

    A failed send (``InternalError`` wrapping ``RequestSend``) leaves the client
    unusable; call ``try_reconnect`` to get a fresh one for the same path.
    """

    def __init__(
        self,
        socket_path: Path,
        sender: SendRequest,
        driver: asyncio.Task[SocketConnectionClosed],
        settings: ClientSettings,
    ):
        self._socket_path = socket_path
        self._sender = sender
        self._driver = driver
        self._settings = settings
        self._aborted = False

    @classmethod
    async def try_new(
        cls,
        socket_path: str | os.PathLike[str],
        settings: ClientSettings | None = None,
    ) -> UnixSocketClient:
        """Dial ``socket_path`` and start the connection driver."""
        return await cls._try_connect(Path(socket_path), settings or load_client_settings())

    @classmethod
    async def _try_connect(cls, socket_path: Path, settings: ClientSettings) -> UnixSocketClient:
        reader, writer = await dial(socket_path, timeout=settings.effective_connect_timeout)
        sender, connection = await handshake(reader, writer, read_size=settings.read_size)
        driver = spawn_driver(connection, name=f"udshttp-driver:{socket_path}")
        logger.debug("Connected to %s", socket_path)
        return cls(socket_path, sender, driver, settings)

    @property
    def socket_path(self) -> Path:
        return self._socket_path

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    @property
    def is_aborted(self) -> bool:
        return self._aborted

    def is_closed(self) -> bool:
        """Whether the sender handle can no longer be used."""
        return self._sender.is_closed()

    async def try_reconnect(self) -> UnixSocketClient:
        """Abort this client and connect again to the same path."""
        await self.abort()
        logger.debug("Reconnecting to %s", self._socket_path)
        return await self._try_connect(self._socket_path, self._settings)

    async def abort(self) -> SocketConnectionClosed | None:
        """
        Cancel the connection driver and wait for it.

        Returns the driver's terminal outcome when it had already finished, or
        None when the cancellation stopped it. The client is unusable afterwards.
        """
        self._aborted = True
        self._sender.close()
        self._driver.cancel()
        try:
            outcome = await self._driver
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            outcome = None
        logger.debug("Aborted connection to %s (outcome: %s)", self._socket_path, outcome)
        return outcome

    async def send_request(
        self,
        endpoint: str,
        method: str,
        headers: HeaderPairs = (),
        body: bytes | None = None,
    ) -> tuple[int, bytes]:
        """
        Send one request and buffer the whole response body.

        Raises InternalError for build/send/collect failures and
        ResponseUnsuccessful (still carrying the body) for non-2xx statuses.
        """
        try:
            request = build_request(endpoint, method, headers, body, settings=self._settings)
            response = await self._sender.send_request(request)
            content = await collect_body(response, max_bytes=self._settings.max_body_bytes)
        except Error as exc:
            logger.debug("%s %s failed: %s", method, endpoint, exc)
            raise InternalError(exc) from exc

        head = response.head
        logger.debug(
            "%s %s -> HTTP/%s %d %s (%d bytes)",
            method,
            endpoint,
            head.http_version,
            head.status_code,
            head.reason,
            len(content),
        )
        status_code = head.status_code
        if not head.is_success:
            raise ResponseUnsuccessful(status_code, content)
        return status_code, content

    async def send_request_json(
        self,
        endpoint: str,
        method: str,
        headers: HeaderPairs = (),
        body: Any = None,
    ) -> tuple[int, Any]:
        """JSON variant of ``send_request``: ``body`` is serialized, the response decoded."""
        pairs = list(headers)
        payload: bytes | None = None
        if body is not None:
            try:
                payload = json.dumps(body, separators=(",", ":")).encode("utf-8")
            except (TypeError, ValueError) as exc:
                raise InternalError(RequestBuild(exc)) from exc
            if not has_header(pairs, "content-type"):
                pairs.append(("Content-Type", "application/json"))
        if not has_header(pairs, "accept"):
            pairs.append(("Accept", "application/json"))

        status_code, content = await self.send_request(endpoint, method, pairs, payload)
        try:
            return status_code, json.loads(content) if content else None
        except ValueError as exc:
            raise InternalError(ResponseParse(exc)) from exc

    async def __aenter__(self) -> UnixSocketClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.abort()


__all__ = ["UnixSocketClient"]

# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Error taxonomy for the Unix socket HTTP client.

Two families are kept apart:

- ``Error``: failures of the transport/protocol plumbing (dial, handshake,
  request build/send, body collection, connection closed).
- ``ErrorAndResponse``: what ``send_request`` raises. Either an
  ``InternalError`` wrapping an ``Error``, or ``ResponseUnsuccessful`` for a
  completed exchange with a non-2xx status.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    SOCKET_CONNECTION_INITIATION = "SOCKET_CONNECTION_INITIATION"
    HANDSHAKE = "HANDSHAKE"
    REQUEST_BUILD = "REQUEST_BUILD"
    REQUEST_SEND = "REQUEST_SEND"
    RESPONSE_COLLECT = "RESPONSE_COLLECT"
    RESPONSE_PARSE = "RESPONSE_PARSE"
    SOCKET_CONNECTION_CLOSED = "SOCKET_CONNECTION_CLOSED"
    RESPONSE_UNSUCCESSFUL = "RESPONSE_UNSUCCESSFUL"


def error_kind_to_reason(kind: ErrorKind | None) -> str:
    """User-facing reason string."""
    mapping = {
        ErrorKind.SOCKET_CONNECTION_INITIATION: "Could not connect to the unix socket",
        ErrorKind.HANDSHAKE: "HTTP handshake failed",
        ErrorKind.REQUEST_BUILD: "Invalid request",
        ErrorKind.REQUEST_SEND: "Request could not be sent",
        ErrorKind.RESPONSE_COLLECT: "Response body could not be read",
        ErrorKind.RESPONSE_PARSE: "Response body is not valid JSON",
        ErrorKind.SOCKET_CONNECTION_CLOSED: "Socket connection closed",
        ErrorKind.RESPONSE_UNSUCCESSFUL: "Server answered with an unsuccessful status",
        None: "",
    }
    return mapping.get(kind, "Unix socket HTTP error")


class UdsHttpError(Exception):
    """Base class of every error raised by this package."""

    kind: ErrorKind | None = None


class Error(UdsHttpError):
    """Transport, protocol or plumbing failure. ``cause`` holds the underlying exception, if any."""

    def __init__(self, cause: BaseException | None = None, message: str | None = None):
        self.cause = cause
        self.message = message
        super().__init__(self._describe())
        if cause is not None:
            self.__cause__ = cause

    def _describe(self) -> str:
        reason = error_kind_to_reason(self.kind)
        detail = self.message or (str(self.cause) if self.cause is not None else "")
        return f"{reason}: {detail}" if detail else reason


class SocketConnectionInitiation(Error):
    kind = ErrorKind.SOCKET_CONNECTION_INITIATION


class Handshake(Error):
    kind = ErrorKind.HANDSHAKE


class RequestBuild(Error):
    kind = ErrorKind.REQUEST_BUILD


class RequestSend(Error):
    """
    The request could not be delivered or its response head never arrived.

    ``is_canceled()`` tells whether the connection was cancelled or closed
    underneath the request, in which case reconnecting is the usual remedy.
    """

    kind = ErrorKind.REQUEST_SEND

    def __init__(self, cause: BaseException | None = None, message: str | None = None, *, canceled: bool = False):
        self.canceled = canceled
        super().__init__(cause, message)

    def is_canceled(self) -> bool:
        return self.canceled


class ResponseCollect(Error):
    kind = ErrorKind.RESPONSE_COLLECT


class ResponseParse(Error):
    kind = ErrorKind.RESPONSE_PARSE


class SocketConnectionClosed(Error):
    """Terminal outcome of a driver task. ``cause`` is None for a graceful close."""

    kind = ErrorKind.SOCKET_CONNECTION_CLOSED

    @property
    def graceful(self) -> bool:
        return self.cause is None


class ErrorAndResponse(UdsHttpError):
    """Base class of what a request call can raise."""


class InternalError(ErrorAndResponse):
    def __init__(self, error: Error):
        self.error = error
        self.kind = error.kind
        super().__init__(str(error))
        self.__cause__ = error


class ResponseUnsuccessful(ErrorAndResponse):
    """A completed exchange whose status is outside 2xx. Carries the full body."""

    kind = ErrorKind.RESPONSE_UNSUCCESSFUL

    def __init__(self, status_code: int, body: bytes):
        self.status_code = status_code
        self.body = body
        super().__init__(f"{error_kind_to_reason(self.kind)}: {status_code}")

    def json(self) -> Any:
        """Decode the error body as JSON. Failure is InternalError(ResponseParse), as in send_request_json."""
        try:
            return json.loads(self.body) if self.body else None
        except ValueError as exc:
            raise InternalError(ResponseParse(exc)) from exc


__all__ = [
    "Error",
    "ErrorAndResponse",
    "ErrorKind",
    "Handshake",
    "InternalError",
    "RequestBuild",
    "RequestSend",
    "ResponseCollect",
    "ResponseParse",
    "ResponseUnsuccessful",
    "SocketConnectionClosed",
    "SocketConnectionInitiation",
    "UdsHttpError",
    "error_kind_to_reason",
]

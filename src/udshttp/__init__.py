# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
udshttp package entrypoint.

An asyncio HTTP/1.1 client that talks to a local server over a Unix domain
socket. One persistent connection is driven by a background task; the caller
sends requests one at a time, and reconnects explicitly after the connection
dies. Wire framing is delegated to h11 and request construction to httpx.
"""

from .client import UnixSocketClient
from .config import ClientSettings, load_client_settings
from .errors import (
    Error,
    ErrorAndResponse,
    ErrorKind,
    Handshake,
    InternalError,
    RequestBuild,
    RequestSend,
    ResponseCollect,
    ResponseParse,
    ResponseUnsuccessful,
    SocketConnectionClosed,
    SocketConnectionInitiation,
    UdsHttpError,
)
from .log import setup_logging
from .version import __version__

__all__ = [
    "ClientSettings",
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
    "UnixSocketClient",
    "__version__",
    "load_client_settings",
    "setup_logging",
]

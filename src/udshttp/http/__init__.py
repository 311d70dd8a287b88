# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP/1.1 plumbing exports."""

from .connection import Connection, handshake, spawn_driver
from .headers import has_header, header_value
from .models import Exchange, PreparedRequest, Response, ResponseHead
from .request import build_request, collect_body
from .sender import SendRequest

__all__ = [
    "Connection",
    "Exchange",
    "PreparedRequest",
    "Response",
    "ResponseHead",
    "SendRequest",
    "build_request",
    "collect_body",
    "handshake",
    "has_header",
    "header_value",
    "spawn_driver",
]

# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Open a stream connection to a Unix domain socket."""

from __future__ import annotations

import asyncio
import logging
import os

from .errors import SocketConnectionInitiation

logger = logging.getLogger(__name__)


async def dial(
    socket_path: str | os.PathLike[str],
    *,
    timeout: float | None = None,
) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """
    Connect to the socket at ``socket_path``. One attempt, no retries.

    Any OS-level failure (missing file, permission denied, refused, timeout)
    is raised as SocketConnectionInitiation with the OS error as its cause.
    """
    path = os.fspath(socket_path)
    logger.debug("Dialing unix socket %s", path)
    try:
        if timeout is None:
            return await asyncio.open_unix_connection(path)
        return await asyncio.wait_for(asyncio.open_unix_connection(path), timeout)
    except OSError as exc:
        logger.debug("Dial to %s failed: %s", path, exc)
        raise SocketConnectionInitiation(exc) from exc

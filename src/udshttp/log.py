# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Logging helpers for udshttp."""

from __future__ import annotations

import logging
import os

LOGGER_NAME = "udshttp"
DEFAULT_LOG_LEVEL = os.getenv("UDSHTTP_LOG_LEVEL", "WARNING").upper()


def parse_log_level(level: str | None) -> int:
    return getattr(logging, (level or DEFAULT_LOG_LEVEL).upper(), logging.WARNING)


def setup_logging(level: str | None = None) -> logging.Logger:
    """
    Configure standard logging for applications embedding the client.

    Only the ``udshttp`` logger gets ``level``; the root logger stays at WARNING
    so connection lifecycle debugging does not turn on every library's debug output.
    """
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(parse_log_level(level))
    return logger


__all__ = ["LOGGER_NAME", "parse_log_level", "setup_logging"]

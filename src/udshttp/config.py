# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Configuration helpers for udshttp."""

import os
from dataclasses import dataclass

from .version import __version__

DEFAULT_USER_AGENT = f"udshttp/{__version__}"
DEFAULT_AUTHORITY = "unix.socket"


def _float_env(name: str, default: float) -> float:
    try:
        value = os.getenv(name)
        return float(value) if value is not None else default
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    try:
        value = os.getenv(name)
        return int(value) if value is not None else default
    except ValueError:
        return default


@dataclass
class ClientSettings:
    """Unix socket client defaults."""

    connect_timeout: float = 10.0
    read_size: int = 64 * 1024
    max_body_bytes: int = 0
    user_agent: str = DEFAULT_USER_AGENT
    authority: str = DEFAULT_AUTHORITY

    @property
    def effective_connect_timeout(self) -> float | None:
        return self.connect_timeout if self.connect_timeout > 0 else None

    @classmethod
    def from_env(cls) -> "ClientSettings":
        """Create settings from environment variables (evaluated at call time)."""
        read_size = _int_env("UDSHTTP_READ_SIZE", cls.read_size)
        if read_size <= 0:
            read_size = cls.read_size
        max_body_bytes = _int_env("UDSHTTP_MAX_BODY_BYTES", cls.max_body_bytes)
        return cls(
            connect_timeout=_float_env("UDSHTTP_CONNECT_TIMEOUT", cls.connect_timeout),
            read_size=read_size,
            max_body_bytes=max(0, max_body_bytes),
            user_agent=os.getenv("UDSHTTP_USER_AGENT", cls.user_agent),
            authority=os.getenv("UDSHTTP_AUTHORITY") or cls.authority,
        )


def load_client_settings() -> ClientSettings:
    """Load client settings from environment with sensible defaults."""
    return ClientSettings.from_env()

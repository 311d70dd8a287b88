# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

from .server import RecordedRequest, Server, make_socket_path_test, remove_socket_dir
from .util import make_client_server, shutdown

__all__ = ["RecordedRequest", "Server", "make_client_server", "make_socket_path_test", "remove_socket_dir", "shutdown"]

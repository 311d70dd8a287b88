# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from udshttp import ClientSettings, UnixSocketClient

from .server import Server, make_socket_path_test, remove_socket_dir


async def make_client_server(
    name: str,
    settings: ClientSettings | None = None,
) -> tuple[Server, UnixSocketClient]:
    socket_path = make_socket_path_test("client", name)
    server = await Server.try_new(socket_path)
    client = await UnixSocketClient.try_new(socket_path, settings or ClientSettings())
    return server, client


async def shutdown(server: Server, client: UnixSocketClient | None = None) -> None:
    if client is not None:
        await client.abort()
    await server.abort()
    remove_socket_dir(server.socket_path)

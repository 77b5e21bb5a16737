# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
ServerSocketBind verb: listen on a port and report every accepted connection.

One request, many responses: each accepted connection is registered in the
client table and its id is sent under the request's correlation id, for as
long as the listener lives. A bind failure, or an accept failure later on,
ends the stream with one empty-payload response.
"""

import re
import sys

from ..channel import open_listener
from ..exceptions import PortError
from ..protocol import EMPTY, Command
from .base import CommandHandler

_INTEGER = re.compile(r"[+-]?[0-9]+")

NATIVE_INT_MIN = -sys.maxsize - 1
NATIVE_INT_MAX = sys.maxsize


def parse_port(text: str) -> int:
    """
    Parse a port as an unbounded integer, then narrow it to the native range.

    Raises:
        PortError: not an integer, or outside the native integer range
    """
    if not _INTEGER.fullmatch(text):
        raise PortError("The port number should be an integer", port=text)
    port = int(text)
    if not NATIVE_INT_MIN <= port <= NATIVE_INT_MAX:
        raise PortError("The port number is too large to fit in an int", port=text)
    return port


class ServerSocketBindCommand(CommandHandler):
    """ServerSocketBind <id> <port> -> client id per accepted connection | empty"""

    verb = "ServerSocketBind"
    arity = 1
    failure_payload = EMPTY

    async def execute(self, command: Command) -> None:
        server = self.context.config.server
        port = parse_port(command.arguments[0])
        listener = open_listener(server.bind_host, port, server.backlog)
        self.context.listeners.add(listener)
        self.logger.info(f"Listening on {server.bind_host}:{listener.port}")

        try:
            while True:
                channel = await listener.accept()
                client_id = self.context.clients.add(channel)
                self.logger.info(f"Accepted {channel.peer} as client {client_id}")
                await self.reply(command, str(client_id))
        finally:
            self.context.listeners.discard(listener)
            listener.close()

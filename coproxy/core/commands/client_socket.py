# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Client connection verbs.

Methods:
    - ClientSocketRead: stream received bytes until the connection fails
    - ClientSocketWrite: send a whole payload
    - ClientSocketClose: unregister and close a connection

Connections are addressed by the ids ServerSocketBind hands out.
"""

from .. import codec
from ..channel import send_all
from ..exceptions import ReceiveError
from ..heap import ResourceId
from ..protocol import EMPTY, FALSE, TRUE, Command
from .base import CommandHandler


class ClientSocketReadCommand(CommandHandler):
    """ClientSocketRead <id> <client id> -> base64 chunk per receive | empty"""

    verb = "ClientSocketRead"
    arity = 1
    failure_payload = EMPTY

    async def execute(self, command: Command) -> None:
        client_id = ResourceId.parse(command.arguments[0])
        server = self.context.config.server
        buffer_size = server.buffer_size

        while True:
            # Looked up on every pass: a close between reads ends the loop
            channel = self.context.clients.require(client_id)
            data = await channel.recv(buffer_size)
            received = len(data)
            # A read of 0 bytes (peer closed) or of a full buffer ends the
            # loop; the two cases are not told apart.
            full = received == buffer_size and not server.accept_full_reads
            if received == 0 or full:
                raise ReceiveError("Invalid number of bytes", received=received)
            await self.reply(command, codec.encode(data))


class ClientSocketWriteCommand(CommandHandler):
    """ClientSocketWrite <id> <client id> <base64 message> -> true | false"""

    verb = "ClientSocketWrite"
    arity = 2
    failure_payload = FALSE

    async def execute(self, command: Command) -> None:
        client_id = ResourceId.parse(command.arguments[0])
        channel = self.context.clients.require(client_id)
        message = codec.decode(command.arguments[1])
        await send_all(channel, message)
        await self.reply(command, TRUE)


class ClientSocketCloseCommand(CommandHandler):
    """ClientSocketClose <id> <client id> -> true | false"""

    verb = "ClientSocketClose"
    arity = 1
    failure_payload = FALSE

    async def execute(self, command: Command) -> None:
        client_id = ResourceId.parse(command.arguments[0])
        channel = self.context.clients.require(client_id)
        self.context.clients.remove(client_id)
        # The reply only depends on the removal; a failed release is logged.
        try:
            channel.close()
        except OSError as e:
            self.logger.warning(f"Closing client {client_id} failed: {e}")
        await self.reply(command, TRUE)

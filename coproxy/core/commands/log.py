# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""Log verb: write a message to the server's log stream."""

from .. import codec
from ..protocol import FALSE, TRUE, Command
from .base import CommandHandler


class LogCommand(CommandHandler):
    """Log <id> <base64 message> -> true | false"""

    verb = "Log"
    arity = 1
    failure_payload = FALSE

    async def execute(self, command: Command) -> None:
        message = codec.decode(command.arguments[0])
        stream = self.context.log_stream
        stream.write(message + b"\n")
        stream.flush()
        await self.reply(command, TRUE)

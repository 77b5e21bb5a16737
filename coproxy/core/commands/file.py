# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""FileRead verb: return the full contents of a file."""

import asyncio

from .. import codec
from ..protocol import EMPTY, Command
from .base import CommandHandler


def _read_bytes(path: bytes) -> bytes:
    with open(path, "rb") as f:
        return f.read()


class FileReadCommand(CommandHandler):
    """FileRead <id> <base64 path> -> base64 contents | empty"""

    verb = "FileRead"
    arity = 1
    failure_payload = EMPTY

    async def execute(self, command: Command) -> None:
        path = codec.decode(command.arguments[0])
        loop = asyncio.get_running_loop()
        content = await loop.run_in_executor(None, _read_bytes, path)
        self.logger.debug(f"Read {len(content)} bytes from {path!r}")
        await self.reply(command, codec.encode(content))

# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

import time

from ..protocol import Command
from .base import CommandHandler


class TimeCommand(CommandHandler):
    """Time <id> -> whole seconds since the Unix epoch"""

    verb = "Time"
    arity = 0

    async def execute(self, command: Command) -> None:
        await self.reply(command, str(int(time.time())))

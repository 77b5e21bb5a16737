# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Base class for command handlers.

Every handler has:
- a fixed verb and arity, checked before it runs (wrong arity is fatal)
- a failure boundary around its effect that turns any exception into
  the verb's failure payload
- reply() to emit response lines under the request's correlation id
"""

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar

from ..exceptions import ArityError, CommandError
from ..protocol import EMPTY, Command, Response

if TYPE_CHECKING:
    from ..context import ServerContext


class CommandHandler(ABC):
    """One protocol verb"""

    verb: ClassVar[str] = ""
    arity: ClassVar[int] = 0
    failure_payload: ClassVar[str] = EMPTY

    def __init__(self, context: "ServerContext"):
        self.context = context
        self.logger = logging.getLogger(f"coproxy.commands.{self.verb}")

    def check_arity(self, command: Command) -> None:
        """
        Raises:
            ArityError: argument count differs from the verb's arity
        """
        received = len(command.arguments)
        if received != self.arity:
            raise ArityError(
                f"{self.verb} expects {self.arity} argument(s), got {received}",
                verb=self.verb,
                expected=self.arity,
                received=received,
            )

    async def run(self, command: Command) -> None:
        """Run the effect; failures become one failure response"""
        self.logger.debug(f"Executing {self.verb} {command.correlation_id}")
        try:
            await self.execute(command)
        except CommandError as e:
            self.logger.debug(f"{self.verb} {command.correlation_id} failed: {e.to_dict()}")
            await self.reply(command, self.failure_payload)
        except Exception as e:
            self.logger.debug(f"{self.verb} {command.correlation_id} failed: {e!r}")
            await self.reply(command, self.failure_payload)

    async def reply(self, command: Command, payload: str) -> None:
        await self.context.writer.send(
            Response(self.verb, command.correlation_id, payload)
        )

    @abstractmethod
    async def execute(self, command: Command) -> None:
        """
        Perform the effect and emit success responses.

        Raise to report failure; run() turns it into the failure payload.
        """

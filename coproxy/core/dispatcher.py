# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Dispatcher: request line -> running handler.

route() does all framing checks before anything runs, so a malformed
line raises straight into the server loop. It never catches them.
"""

import logging
from typing import Awaitable, Dict, Optional

from .commands import CommandHandler
from .context import ServerContext
from .protocol import parse_command
from .registry import CommandRegistry

logger = logging.getLogger("coproxy.dispatcher")


class Dispatcher:
    def __init__(self, context: ServerContext, registry: Optional[CommandRegistry] = None):
        self.context = context
        self.registry = registry or CommandRegistry()
        self._handlers: Dict[str, CommandHandler] = {}

    def handler_for(self, verb: str) -> CommandHandler:
        handler = self._handlers.get(verb)
        if handler is None:
            handler = self.registry.get(verb)(self.context)
            self._handlers[verb] = handler
        return handler

    def route(self, line: str) -> Awaitable[None]:
        """
        Validate a line and return the invocation to run.

        Raises:
            MessageTooShortError: fewer than two tokens
            UnknownCommandError: verb not registered
            ArityError: wrong argument count for the verb
        """
        command = parse_command(line)
        handler = self.handler_for(command.verb)
        handler.check_arity(command)
        return handler.run(command)

    async def dispatch(self, line: str) -> None:
        """Route a line and run it to completion"""
        await self.route(line)

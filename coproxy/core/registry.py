# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
coproxy Command Registry

Maps protocol verbs to handler classes. The built-in verbs are:
    Log, FileRead, ServerSocketBind, ClientSocketRead,
    ClientSocketWrite, ClientSocketClose, Time
"""

import logging
from typing import Dict, Iterable, List, Optional, Type

from .commands import BUILTIN_COMMANDS, CommandHandler
from .exceptions import UnknownCommandError

logger = logging.getLogger("coproxy.registry")


class CommandRegistry:
    """Verb -> handler class"""

    def __init__(self, handlers: Optional[Iterable[Type[CommandHandler]]] = None):
        self._handlers: Dict[str, Type[CommandHandler]] = {}
        for handler in BUILTIN_COMMANDS if handlers is None else handlers:
            self.register(handler)

    def register(self, handler: Type[CommandHandler]) -> Type[CommandHandler]:
        """Register a handler class under its verb; usable as a decorator"""
        if not handler.verb:
            raise ValueError(f"{handler.__name__} has no verb")
        if handler.verb in self._handlers:
            logger.warning(f"Replacing handler for {handler.verb}")
        self._handlers[handler.verb] = handler
        return handler

    def get(self, verb: str) -> Type[CommandHandler]:
        """
        Raises:
            UnknownCommandError: verb not registered
        """
        handler = self._handlers.get(verb)
        if handler is None:
            raise UnknownCommandError(f"Unknown command: {verb}", verb=verb)
        return handler

    def verbs(self) -> List[str]:
        return sorted(self._handlers)

    def __contains__(self, verb: object) -> bool:
        return verb in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

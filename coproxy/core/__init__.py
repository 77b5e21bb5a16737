# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
coproxy Core - Init file

Exports the command server, its registries and protocol types.
"""

from .config import CoproxyConfig, load_config
from .context import ServerContext
from .dispatcher import Dispatcher
from .heap import Heap, ResourceId, ResourceTable
from .protocol import Command, Response, parse_command
from .registry import CommandRegistry
from .server import CommandServer, run_server
from .streams import ResponseWriter

__all__ = [
    "CoproxyConfig",
    "load_config",
    "ServerContext",
    "Dispatcher",
    "Heap",
    "ResourceId",
    "ResourceTable",
    "Command",
    "Response",
    "parse_command",
    "CommandRegistry",
    "CommandServer",
    "run_server",
    "ResponseWriter",
]

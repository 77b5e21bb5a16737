# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
coproxy Command Handlers

One handler class per protocol verb.
"""

from .base import CommandHandler
from .client_socket import (
    ClientSocketCloseCommand,
    ClientSocketReadCommand,
    ClientSocketWriteCommand,
)
from .clock import TimeCommand
from .file import FileReadCommand
from .log import LogCommand
from .server_socket import ServerSocketBindCommand, parse_port

BUILTIN_COMMANDS = [
    LogCommand,
    FileReadCommand,
    ServerSocketBindCommand,
    ClientSocketReadCommand,
    ClientSocketWriteCommand,
    ClientSocketCloseCommand,
    TimeCommand,
]

__all__ = [
    "BUILTIN_COMMANDS",
    "CommandHandler",
    "LogCommand",
    "FileReadCommand",
    "ServerSocketBindCommand",
    "ClientSocketReadCommand",
    "ClientSocketWriteCommand",
    "ClientSocketCloseCommand",
    "TimeCommand",
    "parse_port",
]

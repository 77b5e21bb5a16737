# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

import logging
import sys
from typing import BinaryIO, Optional, Set

from .channel import SocketChannel, SocketListener
from .config import CoproxyConfig
from .heap import ResourceTable
from .streams import ResponseWriter

logger = logging.getLogger("coproxy.context")


class ServerContext:
    """State shared by every command of one server"""

    def __init__(
        self,
        config: Optional[CoproxyConfig] = None,
        writer: Optional[ResponseWriter] = None,
        log_stream: Optional[BinaryIO] = None,
    ):
        self.config = config or CoproxyConfig()
        self.writer = writer or ResponseWriter()
        # Destination of the Log verb
        self.log_stream = log_stream if log_stream is not None else sys.stderr.buffer
        self.clients: ResourceTable[SocketChannel] = ResourceTable("clients")
        self.listeners: Set[SocketListener] = set()

    def close_all(self) -> None:
        """Close every listener and every registered client connection"""
        for listener in list(self.listeners):
            listener.close()
        self.listeners.clear()

        for channel in self.clients.drain():
            try:
                channel.close()
            except OSError as e:
                logger.warning(f"Failed to close {channel!r}: {e}")

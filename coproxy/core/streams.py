# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Control streams: request lines in, response lines out.
"""

import asyncio
import logging
import os
import stat
import sys
from typing import BinaryIO, Optional

from .exceptions import LineTooLongError
from .protocol import Response

logger = logging.getLogger("coproxy.streams")


async def open_line_reader(stream: Optional[BinaryIO] = None, limit: int = 2**16) -> asyncio.StreamReader:
    """
    Attach an asyncio StreamReader to a binary input stream (stdin by default).

    Pipes, sockets and terminals are read through the event loop. A regular
    file (shell redirection) cannot be watched by the loop, so its contents
    are read up front and fed to the reader.
    """
    stream = stream if stream is not None else sys.stdin.buffer
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=limit)

    if stat.S_ISREG(os.fstat(stream.fileno()).st_mode):
        data = await loop.run_in_executor(None, stream.read)
        reader.feed_data(data)
        reader.feed_eof()
        return reader

    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, stream)
    return reader


async def read_line(reader: asyncio.StreamReader) -> Optional[str]:
    """
    Next request line without its terminator, or None at end of input.

    Bytes that are not valid UTF-8 decode to lone surrogates and encode back
    to the same bytes on output, so correlation ids are echoed unchanged.

    Raises:
        LineTooLongError: the line exceeds the reader limit
    """
    try:
        raw = await reader.readline()
    except ValueError as e:
        raise LineTooLongError("Input line exceeds the maximum line size", cause=e)

    if not raw:
        return None

    return raw.decode("utf-8", errors="surrogateescape").rstrip("\r\n")


class ResponseWriter:
    """Writes response lines to the output stream (stdout by default)"""

    def __init__(self, stream: Optional[BinaryIO] = None, trace: Optional[logging.Logger] = None):
        self._stream = stream if stream is not None else sys.stdout.buffer
        self._trace = trace

    def trace_inbound(self, line: str) -> None:
        if self._trace is not None:
            self._trace.debug(f"IN: {line}")

    async def send(self, response: Response) -> None:
        line = response.to_line()
        if self._trace is not None:
            self._trace.debug(f"OUT: {line}")
        # One write per line keeps lines from different tasks whole
        self._stream.write(line.encode("utf-8", errors="surrogateescape") + b"\n")
        self._stream.flush()

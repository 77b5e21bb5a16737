# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
coproxy test configuration

Fixtures:
- output: in-memory stdout that collects response lines
- log_stream: in-memory destination of the Log verb
- context / dispatcher: a server context wired to both
- harness: a CommandServer fed through an in-memory StreamReader
"""

import asyncio
import io
import socket
from typing import Callable, List, Optional

import pytest

from coproxy.core.config import CoproxyConfig, ServerConfig
from coproxy.core.context import ServerContext
from coproxy.core.dispatcher import Dispatcher
from coproxy.core.server import CommandServer
from coproxy.core.streams import ResponseWriter


class RecordingStream:
    """Binary stream that splits written bytes into lines"""

    def __init__(self):
        self.buffer = bytearray()
        self.lines: List[str] = []
        self._consumed = 0

    def write(self, data: bytes) -> int:
        self.buffer += data
        while b"\n" in self.buffer:
            line, _, rest = bytes(self.buffer).partition(b"\n")
            self.lines.append(line.decode("utf-8"))
            self.buffer = bytearray(rest)
        return len(data)

    def flush(self) -> None:
        pass

    @property
    def unread(self) -> List[str]:
        return self.lines[self._consumed:]

    async def next_line(self, timeout: float = 5.0) -> str:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while self._consumed >= len(self.lines):
            if loop.time() > deadline:
                raise AssertionError(f"No response line within {timeout}s")
            await asyncio.sleep(0.01)
        line = self.lines[self._consumed]
        self._consumed += 1
        return line


class ServerHarness:
    """Runs a CommandServer on lines fed by the test"""

    def __init__(self, context: ServerContext, output: RecordingStream, dispatcher: Optional[Dispatcher] = None):
        self.context = context
        self.output = output
        self.dispatcher = dispatcher
        self.reader: Optional[asyncio.StreamReader] = None
        self.server: Optional[CommandServer] = None
        self.task: Optional[asyncio.Task] = None

    async def __aenter__(self) -> "ServerHarness":
        self.reader = asyncio.StreamReader(limit=self.context.config.server.max_line_bytes)
        self.server = CommandServer(self.context, self.dispatcher)
        self.task = asyncio.create_task(self.server.serve(self.reader))
        return self

    async def __aexit__(self, *exc_info) -> None:
        if not self.task.done():
            self.reader.feed_eof()
            await asyncio.wait_for(asyncio.wait({self.task}), 5)
        if not self.task.cancelled():
            # Tests that expect a failure already awaited it
            self.task.exception()

    def send(self, line: str) -> None:
        self.reader.feed_data(line.encode("utf-8") + b"\n")

    async def receive(self, timeout: float = 5.0) -> str:
        return await self.output.next_line(timeout)

    async def finish(self, timeout: float = 5.0) -> None:
        """Close the input and wait for serve() to return (or raise)"""
        self.reader.feed_eof()
        await asyncio.wait_for(self.task, timeout)

    async def wait_for(self, predicate: Callable[[], object], timeout: float = 5.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("Condition not reached")
            await asyncio.sleep(0.01)


def free_port() -> int:
    """A loopback port nobody is listening on right now"""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def server_config():
    """Loopback-only server configuration"""
    return CoproxyConfig(server=ServerConfig(bind_host="127.0.0.1", shutdown_timeout=0.1))


@pytest.fixture
def output():
    return RecordingStream()


@pytest.fixture
def log_stream():
    return io.BytesIO()


@pytest.fixture
def context(server_config, output, log_stream):
    ctx = ServerContext(config=server_config, writer=ResponseWriter(output), log_stream=log_stream)
    yield ctx
    ctx.close_all()


@pytest.fixture
def dispatcher(context):
    return Dispatcher(context)


@pytest.fixture
def harness(context, output):
    return ServerHarness(context, output)


@pytest.fixture
def port():
    return free_port()


@pytest.fixture
def make_harness(context, output):
    """Factory for harnesses built after the test adjusts the context"""

    def factory(dispatcher: Optional[Dispatcher] = None) -> ServerHarness:
        return ServerHarness(context, output, dispatcher)

    return factory

# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
coproxy Server Loop

Reads request lines until end of input and starts each command as its own
task without waiting for it, so accept loops and read loops keep running
next to the loop. All tasks share one event loop thread; handler code
between two awaits never interleaves with another handler.

Termination:
- end of input: normal exit
- framing error on a line: raised out of serve()
- exception escaping a command task: raised out of serve()
"""

import asyncio
import logging
from typing import Awaitable, BinaryIO, Optional, Set

from .config import CoproxyConfig
from .context import ServerContext
from .dispatcher import Dispatcher
from .logger import get_trace_logger
from .streams import ResponseWriter, open_line_reader, read_line

logger = logging.getLogger("coproxy.server")


class CommandServer:
    """Drives one client over a pair of control streams"""

    def __init__(self, context: ServerContext, dispatcher: Optional[Dispatcher] = None):
        self.context = context
        self.dispatcher = dispatcher or Dispatcher(context)
        self._tasks: Set[asyncio.Task] = set()
        self._fatal: Optional[asyncio.Future] = None

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def serve(self, reader: asyncio.StreamReader) -> None:
        """Process lines from `reader` until end of input"""
        self._fatal = asyncio.get_running_loop().create_future()
        try:
            while True:
                line = await self._next_line(reader)
                if line is None:
                    logger.info("End of input")
                    break
                self.context.writer.trace_inbound(line)
                self._spawn(self.dispatcher.route(line))

            server = self.context.config.server
            await self._drain(None if server.linger_on_eof else server.shutdown_timeout)
        finally:
            await self.shutdown()

    def _spawn(self, invocation: Awaitable[None]) -> None:
        task = asyncio.ensure_future(invocation)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.critical(f"Command task crashed: {error!r}")
            if self._fatal is not None and not self._fatal.done():
                self._fatal.set_exception(error)

    async def _next_line(self, reader: asyncio.StreamReader) -> Optional[str]:
        """Next line, unless a command task fails first"""
        read = asyncio.ensure_future(read_line(reader))
        try:
            await asyncio.wait({read, self._fatal}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            read.cancel()
            raise

        if self._fatal.done():
            read.cancel()
            self._fatal.result()
        return read.result()

    async def _drain(self, timeout: Optional[float]) -> None:
        """Wait for in-flight commands (at most `timeout` seconds), failing fast on a crash"""
        if not self._tasks:
            return
        logger.info(f"Waiting for {len(self._tasks)} in-flight command(s)")
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        while self._tasks:
            remaining = None if deadline is None else deadline - loop.time()
            if remaining is not None and remaining <= 0:
                logger.info(f"Cancelling {len(self._tasks)} command(s) still running")
                return
            await asyncio.wait(
                self._tasks | {self._fatal},
                timeout=remaining,
                return_when=asyncio.FIRST_COMPLETED,
            )
            if self._fatal.done():
                self._fatal.result()

    async def shutdown(self) -> None:
        """Cancel in-flight commands and release every socket"""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self.context.close_all()
        if self._fatal is not None and not self._fatal.done():
            self._fatal.cancel()


async def run_server(
    config: CoproxyConfig,
    stdin: Optional[BinaryIO] = None,
    stdout: Optional[BinaryIO] = None,
    log_stream: Optional[BinaryIO] = None,
) -> None:
    """Serve one client over stdin/stdout until end of input"""
    trace = get_trace_logger(config.observability.trace)
    writer = ResponseWriter(stdout, trace=trace)
    context = ServerContext(config=config, writer=writer, log_stream=log_stream)
    reader = await open_line_reader(stdin, limit=config.server.max_line_bytes)

    logger.info("coproxy server ready")
    await CommandServer(context).serve(reader)

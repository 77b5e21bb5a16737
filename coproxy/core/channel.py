# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Non-blocking sockets on the asyncio event loop.

Provides:
- SocketChannel: connected socket with single-call send/recv
- SocketListener: listening socket with accept
- open_listener: bind + listen
- send_all: repeat send until the whole payload is accepted

Closing a socket wakes every task waiting on it with ConnectionAbortedError,
so read and accept loops end instead of hanging on a dead descriptor.
"""

import asyncio
import logging
import socket
from typing import Any, List, Optional, Protocol

from .exceptions import SendError

logger = logging.getLogger("coproxy.channel")


class _SelectableSocket:
    """Non-blocking socket plus readiness waiters"""

    def __init__(self, sock: socket.socket):
        sock.setblocking(False)
        self._sock = sock
        self._fd = sock.fileno()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._readers: List[asyncio.Future] = []
        self._writers: List[asyncio.Future] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def socket(self) -> socket.socket:
        return self._sock

    def _unwatch(self, writable: bool) -> None:
        if self._loop is None or self._loop.is_closed():
            return
        if writable:
            self._loop.remove_writer(self._fd)
        else:
            self._loop.remove_reader(self._fd)

    def _wake(self, writable: bool) -> None:
        waiters = self._writers if writable else self._readers
        self._unwatch(writable)
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)
        waiters.clear()

    async def _wait(self, writable: bool) -> None:
        """Suspend until the descriptor is readable (or writable)"""
        if self._closed:
            raise ConnectionAbortedError(f"Socket {self._fd} is closed")

        loop = self._loop = asyncio.get_running_loop()
        waiters = self._writers if writable else self._readers
        if not waiters:
            if writable:
                loop.add_writer(self._fd, self._wake, True)
            else:
                loop.add_reader(self._fd, self._wake, False)

        waiter = loop.create_future()
        waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter in waiters:
                waiters.remove(waiter)
            if not waiters and not self._closed:
                self._unwatch(writable)
            raise

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._unwatch(False)
        self._unwatch(True)
        for waiter in self._readers + self._writers:
            if not waiter.done():
                waiter.set_exception(ConnectionAbortedError(f"Socket {self._fd} was closed"))
        self._readers.clear()
        self._writers.clear()
        self._sock.close()


class SocketChannel(_SelectableSocket):
    """Connected stream socket"""

    def __init__(self, sock: socket.socket, peer: Any = None):
        super().__init__(sock)
        self.peer = peer

    async def recv(self, size: int) -> bytes:
        """Receive at most `size` bytes; b'' means the peer closed"""
        while True:
            try:
                return self._sock.recv(size)
            except (BlockingIOError, InterruptedError):
                await self._wait(writable=False)

    async def send(self, data: bytes) -> int:
        """One send call; may accept fewer bytes than given"""
        while True:
            try:
                return self._sock.send(data)
            except (BlockingIOError, InterruptedError):
                await self._wait(writable=True)

    def __repr__(self) -> str:
        return f"SocketChannel(fd={self._fd}, peer={self.peer!r}, closed={self._closed})"


class SocketListener(_SelectableSocket):
    """Listening stream socket"""

    async def accept(self) -> SocketChannel:
        while True:
            try:
                sock, peer = self._sock.accept()
            except (BlockingIOError, InterruptedError):
                await self._wait(writable=False)
                continue
            return SocketChannel(sock, peer)

    @property
    def port(self) -> int:
        return self._sock.getsockname()[1]

    def __repr__(self) -> str:
        return f"SocketListener(fd={self._fd}, closed={self._closed})"


def open_listener(host: str, port: int, backlog: int) -> SocketListener:
    """Create an IPv4 TCP socket bound to (host, port) and listening"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.bind((host, port))
        sock.listen(backlog)
    except BaseException:
        sock.close()
        raise
    return SocketListener(sock)


class Sender(Protocol):
    async def send(self, data: bytes) -> int: ...


async def send_all(channel: Sender, data: bytes) -> None:
    """
    Send the whole payload, retrying from the first unsent byte.

    Raises:
        SendError: a send reported a negative byte count
    """
    view = memoryview(data)
    offset = 0
    length = len(data)
    while offset < length:
        sent = await channel.send(view[offset:])
        if sent < 0:
            raise SendError(
                "Positive number of sent bytes expected",
                details={"sent": sent, "offset": offset, "length": length},
            )
        if sent < length - offset:
            logger.debug(f"Short send: {sent} of {length - offset} bytes")
        offset += sent

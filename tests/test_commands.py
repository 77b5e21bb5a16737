# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Command handler tests (no network)

Tests:
- Time, Log, FileRead success and failure payloads
- Failure payloads for unknown or invalid resource ids
- Port validation
"""

import logging
import sys
import time

import pytest

from coproxy.core import codec
from coproxy.core.commands import parse_port
from coproxy.core.exceptions import PortError


@pytest.mark.asyncio
async def test_time_is_current(dispatcher, output):
    before = int(time.time())
    await dispatcher.dispatch("Time t1")
    after = int(time.time())

    verb, correlation_id, payload = (await output.next_line()).split(" ")
    assert (verb, correlation_id) == ("Time", "t1")
    assert before - 1 <= int(payload) <= after + 1


@pytest.mark.asyncio
async def test_log_writes_message(dispatcher, output, log_stream):
    message = b"hello \x00 world\nsecond line"
    await dispatcher.dispatch(f"Log l1 {codec.encode(message)}")

    assert await output.next_line() == "Log l1 true"
    assert log_stream.getvalue() == message + b"\n"


@pytest.mark.asyncio
async def test_log_invalid_payload(dispatcher, output, log_stream):
    await dispatcher.dispatch("Log l1 %%%")

    assert await output.next_line() == "Log l1 false"
    assert log_stream.getvalue() == b""


@pytest.mark.asyncio
async def test_log_stream_failure(dispatcher, output, context):
    class BrokenStream:
        def write(self, data):
            raise OSError("disk full")

        def flush(self):
            pass

    context.log_stream = BrokenStream()
    await dispatcher.dispatch(f"Log l1 {codec.encode(b'x')}")
    assert await output.next_line() == "Log l1 false"


@pytest.mark.asyncio
async def test_file_read(dispatcher, output, tmp_path):
    content = bytes(range(256)) * 10
    path = tmp_path / "data.bin"
    path.write_bytes(content)

    await dispatcher.dispatch(f"FileRead f1 {codec.encode(str(path).encode())}")

    verb, correlation_id, payload = (await output.next_line()).split(" ")
    assert (verb, correlation_id) == ("FileRead", "f1")
    assert codec.decode(payload) == content


@pytest.mark.asyncio
async def test_file_read_empty_file(dispatcher, output, tmp_path):
    path = tmp_path / "empty"
    path.write_bytes(b"")

    await dispatcher.dispatch(f"FileRead f1 {codec.encode(str(path).encode())}")
    assert await output.next_line() == "FileRead f1 "


@pytest.mark.asyncio
async def test_file_read_missing(dispatcher, output, tmp_path):
    path = tmp_path / "missing.txt"
    await dispatcher.dispatch(f"FileRead f1 {codec.encode(str(path).encode())}")
    assert await output.next_line() == "FileRead f1 "


@pytest.mark.asyncio
async def test_file_read_directory(dispatcher, output, tmp_path):
    await dispatcher.dispatch(f"FileRead f1 {codec.encode(str(tmp_path).encode())}")
    assert await output.next_line() == "FileRead f1 "


@pytest.mark.asyncio
async def test_file_read_bad_path_encoding(dispatcher, output):
    await dispatcher.dispatch("FileRead f1 ***")
    assert await output.next_line() == "FileRead f1 "


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "line, expected",
    [
        ("ClientSocketRead r1 0", "ClientSocketRead r1 "),
        ("ClientSocketRead r1 nope", "ClientSocketRead r1 "),
        ("ClientSocketWrite w1 0 aGk=", "ClientSocketWrite w1 false"),
        ("ClientSocketWrite w1 -3 aGk=", "ClientSocketWrite w1 false"),
        ("ClientSocketClose c1 0", "ClientSocketClose c1 false"),
        ("ClientSocketClose c1 x", "ClientSocketClose c1 false"),
    ],
)
async def test_unknown_client_ids(dispatcher, output, line, expected):
    """Unknown or malformed ids give the failure payload, never a crash"""
    await dispatcher.dispatch(line)
    assert await output.next_line() == expected


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "port",
    [
        "http",
        "12ab",
        "99999999999999999999999999999",
        "70000",
        "-1",
    ],
)
async def test_bind_rejects_bad_ports(dispatcher, output, context, port):
    """Parse errors, range errors and bind errors share one payload"""
    await dispatcher.dispatch(f"ServerSocketBind b1 {port}")

    assert await output.next_line() == "ServerSocketBind b1 "
    assert not context.listeners


def test_parse_port():
    assert parse_port("8080") == 8080
    assert parse_port("+80") == 80
    assert parse_port("0") == 0


def test_parse_port_stages():
    with pytest.raises(PortError, match="integer"):
        parse_port("eighty")
    with pytest.raises(PortError, match="too large"):
        parse_port(str(sys.maxsize + 1))
    # Fits a native int; the bind itself rejects it later
    assert parse_port(str(sys.maxsize)) == sys.maxsize


@pytest.mark.asyncio
async def test_failure_details_are_logged(dispatcher, output, caplog):
    caplog.set_level(logging.DEBUG, logger="coproxy.commands.ClientSocketClose")

    await dispatcher.dispatch("ClientSocketClose c1 42")

    assert await output.next_line() == "ClientSocketClose c1 false"
    assert "'type': 'ResourceNotFoundError'" in caplog.text
    assert "'resource_id': '42'" in caplog.text

# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
CLI tests

The server runs as a real subprocess so exit statuses can be checked.
"""

import os
import subprocess
import sys
import time
from pathlib import Path

import pytest
from click.testing import CliRunner

from coproxy import __version__
from coproxy.cli import cli
from coproxy.core import codec

ROOT = Path(__file__).resolve().parent.parent


@pytest.fixture
def env(tmp_path):
    environ = {k: v for k, v in os.environ.items() if not k.startswith("COPROXY_")}
    environ["HOME"] = str(tmp_path)
    environ["COPROXY_SHUTDOWN_TIMEOUT"] = "0.2"
    environ["PYTHONPATH"] = os.pathsep.join(
        filter(None, [str(ROOT), environ.get("PYTHONPATH")])
    )
    return environ


def serve(input_bytes: bytes, env, *args, cwd=None):
    return subprocess.run(
        [sys.executable, "-m", "coproxy", "serve", *args],
        input=input_bytes,
        capture_output=True,
        env=env,
        cwd=cwd,
        timeout=30,
    )


def test_serve_time_and_exit_on_eof(env, tmp_path):
    before = int(time.time())
    result = serve(b"Time t1\n", env, cwd=tmp_path)

    assert result.returncode == 0
    verb, correlation_id, payload = result.stdout.decode().strip("\n").split(" ")
    assert (verb, correlation_id) == ("Time", "t1")
    assert abs(int(payload) - before) <= 5


def test_serve_log_goes_to_stderr(env, tmp_path):
    line = f"Log l1 {codec.encode(b'hello from the caller')}\n".encode()
    result = serve(line, env, cwd=tmp_path)

    assert result.returncode == 0
    assert result.stdout == b"Log l1 true\n"
    assert b"hello from the caller" in result.stderr


@pytest.mark.parametrize(
    "line",
    [b"Time\n", b"Reboot r1\n", b"Time t1 extra\n", b"\n"],
)
def test_serve_framing_error_exit_status(env, tmp_path, line):
    result = serve(line + b"Time t2\n", env, cwd=tmp_path)

    assert result.returncode == 2
    assert result.stdout == b""


def test_serve_recoverable_failure_keeps_running(env, tmp_path):
    result = serve(b"ClientSocketClose c1 9\nTime t1\n", env, cwd=tmp_path)

    assert result.returncode == 0
    lines = result.stdout.decode().splitlines()
    assert lines[0] == "ClientSocketClose c1 false"
    assert lines[1].startswith("Time t1 ")


def test_serve_trace(env, tmp_path):
    result = serve(b"Time t1\n", env, "--trace", cwd=tmp_path)

    assert result.returncode == 0
    stderr = result.stderr.decode()
    assert "IN: Time t1" in stderr
    assert "OUT: Time t1 " in stderr
    assert b"IN:" not in result.stdout


def test_serve_from_regular_file(env, tmp_path):
    requests = tmp_path / "requests.txt"
    requests.write_bytes(b"Time t1\nTime t2\n")
    with open(requests, "rb") as stdin:
        result = subprocess.run(
            [sys.executable, "-m", "coproxy", "serve"],
            stdin=stdin,
            capture_output=True,
            env=env,
            cwd=tmp_path,
            timeout=30,
        )

    assert result.returncode == 0
    assert len(result.stdout.splitlines()) == 2


def test_serve_bad_config(env, tmp_path):
    env["COPROXY_LOG_LEVEL"] = "LOUD"
    result = serve(b"", env, cwd=tmp_path)

    assert result.returncode == 1
    assert b"Configuration error" in result.stderr


def test_version_command():
    result = CliRunner().invoke(cli, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_config_show(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("COPROXY_BACKLOG", "9")

    result = CliRunner().invoke(cli, ["config", "--show"])

    assert result.exit_code == 0
    assert "buffer_size: 1024" in result.output
    assert "backlog: 9" in result.output

# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""coproxy CLI - run the command server on stdin/stdout"""

import asyncio
import logging
import sys
from typing import Any, Dict, Optional

import click
import yaml

from coproxy import __version__
from coproxy.core.config import load_config
from coproxy.core.exceptions import ConfigError, FramingError
from coproxy.core.logger import setup_logging
from coproxy.core.server import run_server

logger = logging.getLogger("coproxy.cli")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_FRAMING_ERROR = 2


def _overrides(**sections: Dict[str, Any]) -> Dict[str, Any]:
    """Drop unset CLI options so they do not mask file/env values"""
    result: Dict[str, Any] = {}
    for section, values in sections.items():
        kept = {key: value for key, value in values.items() if value is not None}
        if kept:
            result[section] = kept
    return result


@click.group()
@click.version_option(version=__version__)
def cli():
    """coproxy - drive sockets and files over a line protocol.

    Requests are read from stdin, responses are written to stdout,
    one per line. Diagnostics go to stderr.
    """
    pass


@cli.command()
@click.option("--config", "-c", "config_file", type=click.Path(dir_okay=False), help="Config file (YAML)")
@click.option("--trace", "-d", is_flag=True, help="Echo every protocol line to stderr")
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Logging level",
)
@click.option("--bind-host", default=None, help="Address ServerSocketBind listens on")
@click.option("--backlog", type=int, default=None, help="Listen backlog")
@click.option("--buffer-size", type=int, default=None, help="Receive buffer size (bytes)")
@click.option("--linger", is_flag=True, help="Keep serving in-flight commands after end of input")
def serve(
    config_file: Optional[str],
    trace: bool,
    log_level: Optional[str],
    bind_host: Optional[str],
    backlog: Optional[int],
    buffer_size: Optional[int],
    linger: bool,
):
    """Run the command server on stdin/stdout.

    Exit status: 0 at end of input, 2 on a malformed request line,
    1 on any other fatal error.

    Examples:
        echo "Time 1" | coproxy serve
        coproxy serve --trace --log-level DEBUG
    """
    overrides = _overrides(
        server={
            "bind_host": bind_host,
            "backlog": backlog,
            "buffer_size": buffer_size,
            "linger_on_eof": True if linger else None,
        },
        observability={"trace": True if trace else None, "log_level": log_level},
    )

    try:
        config = load_config(config_file=config_file, overrides=overrides)
    except ConfigError as e:
        click.echo(f"[-] Configuration error: {e}", err=True)
        sys.exit(EXIT_ERROR)

    setup_logging(config)

    try:
        asyncio.run(run_server(config))
    except FramingError as e:
        logger.critical(f"Fatal protocol error: {e.to_dict()}")
        sys.exit(EXIT_FRAMING_ERROR)
    except KeyboardInterrupt:
        pass  # Silent exit
    except Exception as e:
        logger.critical(f"Server crashed: {e}", exc_info=True)
        sys.exit(EXIT_ERROR)

    sys.exit(EXIT_OK)


@cli.command("config")
@click.option("--config", "-c", "config_file", type=click.Path(dir_okay=False), help="Config file (YAML)")
@click.option("--show", is_flag=True, help="Show current config")
def config_cmd(config_file: Optional[str], show: bool):
    """Inspect the effective configuration."""
    try:
        config = load_config(config_file=config_file)
    except ConfigError as e:
        click.echo(f"[-] Configuration error: {e}", err=True)
        sys.exit(EXIT_ERROR)

    if show:
        click.echo(yaml.safe_dump(config.model_dump(mode="json"), sort_keys=False).rstrip())
    else:
        click.echo("[+] Configuration is valid (use --show to print it)")


@cli.command("version")
def version():
    """Show coproxy version."""
    click.echo(f"coproxy {__version__}")


if __name__ == "__main__":
    cli()

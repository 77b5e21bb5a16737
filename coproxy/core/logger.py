# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
Logging setup for coproxy.

Console output always goes to stderr: stdout carries the protocol.
Optional rotating log files, and a separate trace logger that echoes
protocol lines when diagnostic mode is on.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, TextIO

from .config import CoproxyConfig

TRACE_LOGGER = "coproxy.trace"


class CoproxyLogger:
    """
    Configures one named logger.

    Features:
    - Console logging to stderr
    - Optional file logging with rotation
    - Timestamped log format
    """

    def __init__(
        self,
        name: str = "coproxy",
        level: str = "WARNING",
        log_dir: Optional[Path] = None,
        console_output: bool = True,
        file_output: bool = False,
        stream: Optional[TextIO] = None,
    ):
        self.name = name
        self.logger = logging.getLogger(name)

        # Clear any existing handlers
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        self.logger.setLevel(self._parse_level(level))

        console_formatter = logging.Formatter(
            fmt="[%(asctime)s] [%(name)s:%(levelname)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        file_formatter = logging.Formatter(
            fmt="%(asctime)s | %(name)s | %(levelname)s | %(filename)s:%(lineno)d | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        if console_output:
            console_handler = logging.StreamHandler(stream or sys.stderr)
            console_handler.setFormatter(console_formatter)
            console_handler.setLevel(self._parse_level(level))
            self.logger.addHandler(console_handler)

        if file_output:
            if log_dir is None:
                log_dir = Path.home() / ".coproxy" / "logs"

            log_dir.mkdir(parents=True, exist_ok=True)

            # Rotate after 10MB, keep 5 backup files
            file_handler = RotatingFileHandler(
                log_dir / f"{name}.log",
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
                encoding="utf-8",
                errors="backslashreplace",
            )
            file_handler.setFormatter(file_formatter)
            file_handler.setLevel(logging.DEBUG)
            self.logger.addHandler(file_handler)
            # File gets everything
            self.logger.setLevel(logging.DEBUG)

        self.logger.propagate = False

    def _parse_level(self, level: str) -> int:
        """Convert string level to logging constant"""
        levels = {
            "DEBUG": logging.DEBUG,
            "INFO": logging.INFO,
            "WARNING": logging.WARNING,
            "ERROR": logging.ERROR,
            "CRITICAL": logging.CRITICAL,
        }
        return levels.get(level.upper(), logging.WARNING)

    def set_level(self, level: str):
        """Change log level dynamically"""
        self.logger.setLevel(self._parse_level(level))


def setup_logging(config: CoproxyConfig, stream: Optional[TextIO] = None) -> logging.Logger:
    """Configure the `coproxy` logger tree from configuration"""
    observability = config.observability
    return CoproxyLogger(
        name="coproxy",
        level=observability.log_level,
        log_dir=observability.log_dir,
        file_output=observability.file_logs,
        stream=stream,
    ).logger


def get_trace_logger(enabled: bool, stream: Optional[TextIO] = None) -> Optional[logging.Logger]:
    """
    Logger that echoes protocol lines as bare text.

    Returns None when diagnostic mode is off.
    """
    if not enabled:
        return None

    trace = logging.getLogger(TRACE_LOGGER)
    for handler in list(trace.handlers):
        trace.removeHandler(handler)
        handler.close()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    trace.addHandler(handler)
    trace.setLevel(logging.DEBUG)
    trace.propagate = False
    return trace

# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
coproxy Configuration System

Centralized configuration management supporting:
- Environment variables (COPROXY_*)
- Config files (~/.coproxy/config.yaml, ./.coproxy.yaml)
- Programmatic defaults
- Pydantic validation
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigError

logger = logging.getLogger("coproxy.config")


# ============================================================================
# Configuration Models
# ============================================================================


class ServerConfig(BaseModel):
    """Command server configuration"""

    bind_host: str = Field(
        default="0.0.0.0", description="Address ServerSocketBind listens on"
    )
    backlog: int = Field(default=5, description="Listen backlog", ge=0)
    buffer_size: int = Field(
        default=1024, description="Receive buffer size (bytes)", ge=2
    )
    max_line_bytes: int = Field(
        default=16 * 1024 * 1024, description="Longest accepted input line", ge=64
    )
    linger_on_eof: bool = Field(
        default=False,
        description="Keep running in-flight commands after end of input",
    )
    shutdown_timeout: float = Field(
        default=2.0,
        description="Seconds in-flight commands get to finish after end of input",
        ge=0,
    )
    accept_full_reads: bool = Field(
        default=False,
        description="Report full-buffer receives instead of failing the read loop",
    )


class ObservabilityConfig(BaseModel):
    """Logging configuration"""

    log_level: str = Field(default="WARNING", description="Logging level")
    trace: bool = Field(
        default=False, description="Echo every protocol line to stderr"
    )
    file_logs: bool = Field(default=False, description="Write rotating log files")
    log_dir: Path = Field(
        default_factory=lambda: Path.home() / ".coproxy" / "logs",
        description="Log files directory",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v_upper

    @field_validator("log_dir", mode="before")
    @classmethod
    def ensure_path(cls, v):
        """Convert strings to Path objects"""
        if isinstance(v, str):
            return Path(v).expanduser()
        return v


class CoproxyConfig(BaseModel):
    """Complete coproxy configuration"""

    server: ServerConfig = Field(
        default_factory=ServerConfig, description="Server configuration"
    )
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig,
        description="Observability configuration",
    )


# ============================================================================
# Configuration Loader
# ============================================================================


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class ConfigLoader:
    """Load configuration from multiple sources"""

    ENV_VARS = {
        "COPROXY_BIND_HOST": ("server", "bind_host", str),
        "COPROXY_BACKLOG": ("server", "backlog", int),
        "COPROXY_BUFFER_SIZE": ("server", "buffer_size", int),
        "COPROXY_MAX_LINE_BYTES": ("server", "max_line_bytes", int),
        "COPROXY_LINGER": ("server", "linger_on_eof", _env_flag),
        "COPROXY_SHUTDOWN_TIMEOUT": ("server", "shutdown_timeout", float),
        "COPROXY_ACCEPT_FULL_READS": ("server", "accept_full_reads", _env_flag),
        "COPROXY_LOG_LEVEL": ("observability", "log_level", str),
        "COPROXY_TRACE": ("observability", "trace", _env_flag),
        "COPROXY_FILE_LOGS": ("observability", "file_logs", _env_flag),
        "COPROXY_LOG_DIR": ("observability", "log_dir", str),
    }

    @staticmethod
    def load_from_env(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """Load configuration from environment variables"""
        environ = os.environ if environ is None else environ
        config: Dict[str, Any] = {}

        for name, (section, key, convert) in ConfigLoader.ENV_VARS.items():
            raw = environ.get(name)
            if not raw:
                continue
            try:
                config.setdefault(section, {})[key] = convert(raw)
            except ValueError as e:
                raise ConfigError(f"Invalid value for {name}: {raw!r}", cause=e)

        return config

    @staticmethod
    def load_from_file(file_path: Path) -> Dict[str, Any]:
        """Load configuration from a YAML file"""
        if not file_path.exists():
            return {}

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(
                f"Failed to load config file {file_path}",
                details={"path": str(file_path)},
                cause=e,
            )

        if not isinstance(data, dict):
            raise ConfigError(
                f"Config file {file_path} must contain a mapping",
                details={"path": str(file_path)},
            )
        return data

    @staticmethod
    def merge_configs(*configs: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge multiple configuration dictionaries"""
        result: Dict[str, Any] = {}
        for config in configs:
            for key, value in config.items():
                if (
                    key in result
                    and isinstance(result[key], dict)
                    and isinstance(value, dict)
                ):
                    result[key] = ConfigLoader.merge_configs(result[key], value)
                else:
                    result[key] = value
        return result



def default_locations() -> list:
    return [
        Path.home() / ".coproxy" / "config.yaml",
        Path.cwd() / ".coproxy.yaml",
    ]


def load_config(
    config_file: Optional[Path] = None,
    env_override: bool = True,
    overrides: Optional[Dict[str, Any]] = None,
) -> CoproxyConfig:
    """
    Load configuration from all sources

    Precedence (lowest first): defaults, ~/.coproxy/config.yaml,
    ./.coproxy.yaml, config_file, COPROXY_* environment, overrides.

    Raises:
        ConfigError: a source cannot be read or the result fails validation
    """
    configs = []

    for location in default_locations():
        file_config = ConfigLoader.load_from_file(location)
        if file_config:
            configs.append(file_config)
            logger.debug(f"Loaded config from {location}")

    if config_file:
        if not Path(config_file).exists():
            raise ConfigError(f"Config file not found: {config_file}")
        file_config = ConfigLoader.load_from_file(Path(config_file))
        if file_config:
            configs.append(file_config)
            logger.debug(f"Loaded config from {config_file}")

    if env_override:
        env_config = ConfigLoader.load_from_env()
        if env_config:
            configs.append(env_config)
            logger.debug("Loaded config from environment")

    if overrides:
        configs.append(overrides)

    merged = ConfigLoader.merge_configs(*configs) if configs else {}

    try:
        return CoproxyConfig(**merged)
    except ValidationError as e:
        raise ConfigError("Config validation failed", cause=e)

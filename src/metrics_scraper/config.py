"""
Configuration management for the metrics scraper.

Configuration is loaded from multiple sources with layered precedence:
1. Built-in defaults (Pydantic model defaults)
2. YAML config file (/etc/metrics-scraper/config.yml or --config path)
3. Environment variables (METRICS_SCRAPER_* prefix, __ for nesting)
4. Command-line arguments (highest precedence)
"""

from __future__ import annotations

import argparse
import contextlib
import math
import os
import re
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

DEFAULT_CONFIG_PATH = Path("/etc/metrics-scraper/config.yml")
DEFAULT_ENV_PREFIX = "METRICS_SCRAPER_"

# =============================================================================
# Duration Parsing
# =============================================================================

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_FULL = re.compile(r"^[+-]?(?:(?:\d+(?:\.\d*)?|\.\d+)(?:ns|us|µs|ms|s|m|h))+$")


def parse_duration(value: str | int | float | timedelta) -> timedelta:
    """
    Parse a duration into a timedelta.

    Accepts a timedelta, a number of seconds, a numeric string, or a
    Go-style duration string such as "15m", "1h30m" or "-90s".

    Args:
        value: The duration to parse.

    Returns:
        The parsed timedelta.

    Raises:
        TypeError: If the value is not a string, number or timedelta.
        ValueError: If the value is not a recognizable duration.
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid duration: {value!r}")
    if isinstance(value, int | float):
        if not math.isfinite(value):
            raise ValueError(f"Invalid duration: {value!r}")
        return timedelta(seconds=value)
    if not isinstance(value, str):
        raise TypeError(f"Invalid duration type: {type(value).__name__}")

    text = value.strip()
    try:
        seconds = float(text)
    except ValueError:
        pass
    else:
        return parse_duration(seconds)

    if not _DURATION_FULL.match(text):
        raise ValueError(
            f"Invalid duration: {value!r}. Use seconds or a unit suffix "
            "like '90s', '15m' or '1h30m'"
        )

    sign = -1.0 if text.startswith("-") else 1.0
    seconds = sum(
        float(number) * _DURATION_UNITS[unit]
        for number, unit in _DURATION_PART.findall(text)
    )
    return timedelta(seconds=sign * seconds)


# =============================================================================
# Database Configuration
# =============================================================================


class DatabaseConfig(BaseModel):
    """SQLite store configuration.

    Attributes:
        path: Path to the SQLite database file.
        timeout_seconds: How long a connection waits on a locked database.
        journal_mode: SQLite journal mode applied to every connection.
    """

    path: str = Field(
        default="/tmp/metrics.db",
        description="Path to the SQLite database file",
    )
    timeout_seconds: float = Field(
        default=30.0,
        description="Busy timeout in seconds when the database is locked",
        gt=0,
    )
    journal_mode: str = Field(
        default="wal",
        description="SQLite journal mode: wal, delete, truncate, memory",
    )

    @field_validator("journal_mode")
    @classmethod
    def validate_journal_mode(cls, v: str) -> str:
        """Validate journal mode."""
        valid_modes = {"wal", "delete", "truncate", "memory"}
        v_lower = v.lower()
        if v_lower not in valid_modes:
            raise ValueError(
                f"Invalid journal mode: {v}. Must be one of: {', '.join(sorted(valid_modes))}"
            )
        return v_lower


# =============================================================================
# Retention Configuration
# =============================================================================


class RetentionConfig(BaseModel):
    """Retention window configuration.

    Attributes:
        window: Maximum age of rows kept by the culler.
    """

    window: timedelta = Field(
        default=timedelta(minutes=15),
        description="Maximum age of stored metrics (seconds, '15m', or ISO 8601)",
    )

    @field_validator("window", mode="before")
    @classmethod
    def validate_window(cls, v: Any) -> Any:
        """Accept Go-style duration strings alongside pydantic's formats."""
        if isinstance(v, bool):
            raise ValueError(f"Invalid retention window: {v!r}")
        if isinstance(v, str):
            # ISO 8601 strings fall through to pydantic's own parser
            with contextlib.suppress(ValueError):
                return parse_duration(v)
        return v


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level.
        json_format: Whether to emit JSON log lines.
        log_to_stdout: Whether to log to stdout.
    """

    level: str = Field(
        default="info",
        description="Log level: debug, info, warn, error",
    )
    json_format: bool = Field(
        default=True,
        description="Emit JSON log lines instead of plain text",
    )
    log_to_stdout: bool = Field(
        default=True,
        description="Whether to log to stdout",
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"debug", "info", "warn", "warning", "error", "critical"}
        v_lower = v.lower()
        if v_lower not in valid_levels:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(sorted(valid_levels))}"
            )
        if v_lower == "warn":
            return "warning"
        return v_lower


# =============================================================================
# Main Application Configuration
# =============================================================================


class AppConfig(BaseModel):
    """
    Main application configuration model.

    Attributes:
        database: SQLite store settings.
        retention: Retention window settings.
        logging: Logging configuration.
    """

    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig,
        description="SQLite store settings",
    )
    retention: RetentionConfig = Field(
        default_factory=RetentionConfig,
        description="Retention window settings",
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration",
    )


# =============================================================================
# Configuration Loading Functions
# =============================================================================


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Deep merge two dictionaries.

    Args:
        base: The base dictionary.
        override: The dictionary with values to override.

    Returns:
        A new dictionary with merged values.
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    """
    Load configuration from a YAML file.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        yaml.YAMLError: If the YAML is invalid.
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def _parse_env_value(value: str) -> Any:
    """
    Parse an environment variable value to an appropriate Python type.

    Args:
        value: String value from environment variable.

    Returns:
        Parsed value (bool, int, float, list, or string).
    """
    if value.lower() in ("true", "yes", "on"):
        return True
    if value.lower() in ("false", "no", "off"):
        return False

    try:
        return int(value)
    except ValueError:
        pass

    try:
        return float(value)
    except ValueError:
        pass

    if "," in value:
        return [_parse_env_value(item.strip()) for item in value.split(",")]

    return value


def _load_env_config(prefix: str = DEFAULT_ENV_PREFIX) -> dict[str, Any]:
    """
    Load configuration from environment variables.

    Nested keys use a double underscore separator, for example
    METRICS_SCRAPER_DATABASE__PATH=/data/metrics.db.

    Args:
        prefix: Environment variable prefix.

    Returns:
        Dictionary with configuration values.
    """
    result: dict[str, Any] = {}

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue

        parts = key[len(prefix) :].lower().split("__")

        current = result
        for part in parts[:-1]:
            if part not in current:
                current[part] = {}
            current = current[part]

        current[parts[-1]] = _parse_env_value(value)

    return result


def build_global_parser(add_help: bool = True) -> argparse.ArgumentParser:
    """
    Build the parser for options shared by every command.

    Args:
        add_help: Whether the parser handles -h/--help itself. Disabled when
            the parser is used as a parent of the command-line interface.

    Returns:
        The argument parser.
    """
    parser = argparse.ArgumentParser(
        description="Kubernetes metrics persistence and retention",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        add_help=add_help,
    )

    parser.add_argument(
        "--config",
        "-c",
        type=str,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--db-file",
        type=str,
        help="Path to the SQLite database file",
    )
    parser.add_argument(
        "--metric-duration",
        type=str,
        help="Retention window, e.g. '15m' or '3600'",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["debug", "info", "warning", "error"],
        help="Override log level",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    return parser


def _parse_cli_args(args: list[str] | None = None) -> dict[str, Any]:
    """
    Parse the shared command-line options into configuration overrides.

    Unknown arguments (commands and their options) are ignored.

    Args:
        args: Command-line arguments. If None, uses sys.argv.

    Returns:
        Dictionary with parsed overrides.
    """
    parsed, _ = build_global_parser().parse_known_args(args)

    result: dict[str, Any] = {}

    if parsed.config:
        result["_config_path"] = parsed.config

    if parsed.db_file:
        result["database"] = {"path": parsed.db_file}

    if parsed.metric_duration:
        result["retention"] = {"window": parsed.metric_duration}

    if parsed.log_level:
        result["logging"] = {"level": parsed.log_level}

    if parsed.debug:
        result.setdefault("logging", {})["level"] = "debug"

    return result


def load_config(
    config_path: Path | str | None = None,
    env_prefix: str = DEFAULT_ENV_PREFIX,
    cli_args: list[str] | None = None,
) -> AppConfig:
    """
    Load configuration from all sources with layered precedence.

    Later sources override earlier ones: defaults, YAML file, environment
    variables, then command-line arguments.

    Args:
        config_path: Path to YAML configuration file. If None, uses the
            --config argument or the default path when it exists.
        env_prefix: Prefix for environment variables.
        cli_args: Command-line arguments. If None, uses sys.argv.

    Returns:
        Fully configured AppConfig instance.

    Raises:
        FileNotFoundError: If specified config file doesn't exist.
        ValidationError: If configuration is invalid.

    Example:
        >>> config = load_config(cli_args=["--db-file", "/data/metrics.db"])
        >>> config.database.path
        '/data/metrics.db'
    """
    config_dict: dict[str, Any] = {}

    cli_config = _parse_cli_args(cli_args)

    if config_path is None:
        if "_config_path" in cli_config:
            config_path = Path(cli_config.pop("_config_path"))
        elif DEFAULT_CONFIG_PATH.exists():
            config_path = DEFAULT_CONFIG_PATH
    else:
        cli_config.pop("_config_path", None)
        config_path = Path(config_path)

    if config_path is not None:
        config_dict = _deep_merge(config_dict, _load_yaml_config(config_path))

    config_dict = _deep_merge(config_dict, _load_env_config(env_prefix))
    config_dict = _deep_merge(config_dict, cli_config)

    return AppConfig(**config_dict)

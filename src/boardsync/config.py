"""Configuration loading for boardsync."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from boardsync.board.models import DEFAULT_COLUMN_TYPES, ColumnType

DEFAULT_GRAPHQL_URL = "https://api.github.com/graphql"
DEFAULT_STATUS_FIELD = "Status"


class ConfigError(Exception):
    """Raised when configuration is invalid or missing."""


@dataclass
class UpstreamConfig:
    """Connection settings for the GraphQL endpoint."""

    graphql_url: str = DEFAULT_GRAPHQL_URL
    token: str = ""
    timeout: float = 30.0


@dataclass
class BoardConfig:
    """How a project's fields are mapped to board columns.

    `column_types` is matched exactly and case-sensitively against option
    names. Names not in the table become BACKLOG columns.
    """

    status_field: str = DEFAULT_STATUS_FIELD
    column_types: dict[str, ColumnType] = field(
        default_factory=lambda: dict(DEFAULT_COLUMN_TYPES)
    )


@dataclass
class LoggingConfig:
    """Logging settings passed through to setup_logging()."""

    level: str | None = None
    log_dir: str | None = None
    console: bool = True


@dataclass
class BoardSyncConfig:
    """Top-level boardsync configuration."""

    upstream: UpstreamConfig = field(default_factory=UpstreamConfig)
    board: BoardConfig = field(default_factory=BoardConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BoardSyncConfig:
        """Create config from a dictionary.

        Args:
            data: Configuration dictionary, usually parsed from YAML.

        Returns:
            Parsed configuration object.

        Raises:
            ConfigError: If a section has the wrong shape or a column type is unknown.
        """
        for section in ("upstream", "board", "logging"):
            if section in data and not isinstance(data[section], dict):
                raise ConfigError(f"Section '{section}' must be a mapping")

        upstream_data = data.get("upstream", {})
        try:
            timeout = float(upstream_data.get("timeout", 30.0))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid upstream timeout: {upstream_data['timeout']!r}") from e
        upstream = UpstreamConfig(
            graphql_url=upstream_data.get("graphql_url", DEFAULT_GRAPHQL_URL),
            token=upstream_data.get("token", ""),
            timeout=timeout,
        )

        board_data = data.get("board", {})
        column_types = dict(DEFAULT_COLUMN_TYPES)
        raw_types = board_data.get("column_types")
        if raw_types is not None:
            if not isinstance(raw_types, dict):
                raise ConfigError("board.column_types must be a mapping of option name to type")
            column_types = {}
            for name, type_name in raw_types.items():
                try:
                    column_types[str(name)] = ColumnType(str(type_name).upper())
                except ValueError as e:
                    valid = ", ".join(t.value for t in ColumnType)
                    raise ConfigError(
                        f"Unknown column type '{type_name}' for '{name}'. Valid: {valid}"
                    ) from e
        board = BoardConfig(
            status_field=board_data.get("status_field", DEFAULT_STATUS_FIELD),
            column_types=column_types,
        )

        logging_data = data.get("logging", {})
        log_config = LoggingConfig(
            level=logging_data.get("level"),
            log_dir=logging_data.get("log_dir"),
            console=bool(logging_data.get("console", True)),
        )

        return cls(upstream=upstream, board=board, logging=log_config)


def get_github_token() -> str:
    """Get a GitHub token from GITHUB_TOKEN or the gh CLI."""
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token
    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            check=True,
        )
        return result.stdout.strip()
    except (subprocess.CalledProcessError, FileNotFoundError):
        return ""


def load_config(path: str | Path | None = None) -> BoardSyncConfig:
    """Load configuration from a YAML file.

    The path defaults to BOARDSYNC_CONFIG; with neither set, defaults are
    used. A missing token is filled from the environment.

    Raises:
        ConfigError: If the file is missing or malformed.
    """
    if path is None:
        path = os.environ.get("BOARDSYNC_CONFIG")

    data: dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
        try:
            loaded = yaml.safe_load(config_path.read_text())
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"Config root must be a mapping: {config_path}")
        data = loaded

    config = BoardSyncConfig.from_dict(data)
    if not config.upstream.token:
        config.upstream.token = get_github_token()
    return config

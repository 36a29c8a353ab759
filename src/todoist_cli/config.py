"""
Client configuration for todoist-cli.

Supports configuration via:
1. Environment variables (highest priority)
2. TOML config file (todoist-cli.toml)
3. Default values (lowest priority)

Environment variables:
- TODOIST_API_TOKEN: Personal API token (required for any API call)
- TODOIST_REST_URL: REST API base URL
- TODOIST_SYNC_URL: Sync API endpoint URL
- TODOIST_CLI_TIMEOUT: Per-request timeout in seconds
- TODOIST_CLI_MAX_RETRIES: Retries for transient failures
- TODOIST_CLI_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
- TODOIST_CLI_CONFIG_FILE: Path to TOML config file

TOML layout:

    [api]
    token = "..."
    timeout = 30
    max_retries = 2

    [logging]
    level = "WARNING"
    structured = false
"""

import logging
import os
import sys
import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

from todoist_cli.core.client import DEFAULT_MAX_RETRIES, DEFAULT_REST_URL, DEFAULT_SYNC_URL
from todoist_cli.core.resilience import MEDIUM_TIMEOUT

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILES = ("todoist-cli.toml", ".todoist-cli.toml")
_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Exception):
    """Configuration is missing or invalid."""

    def __init__(self, message: str, *, missing_credential: bool = False):
        super().__init__(message)
        self.missing_credential = missing_credential


class _StderrHandler(logging.StreamHandler):
    """Writes to whatever ``sys.stderr`` is at emit time."""

    @property
    def stream(self):
        return sys.stderr

    @stream.setter
    def stream(self, value):
        pass


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"true", "1", "yes", "on"}


def _parse_number(name: str, value: Any, kind: type) -> Any:
    try:
        return kind(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {name}: {value!r}") from e


@dataclass(frozen=True)
class ClientConfig:
    """Immutable settings for one CLI invocation."""

    api_token: Optional[str] = None
    rest_url: str = DEFAULT_REST_URL
    sync_url: str = DEFAULT_SYNC_URL
    timeout: float = MEDIUM_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_base_delay: float = 1.0
    log_level: str = "WARNING"
    structured_logging: bool = False

    @classmethod
    def from_env(
        cls,
        config_file: Optional[str] = None,
        environ: Optional[Dict[str, str]] = None,
    ) -> "ClientConfig":
        """
        Create configuration from environment variables and optional TOML file.

        Priority (highest to lowest):
        1. Environment variables
        2. TOML config file
        3. Default values
        """
        env = os.environ if environ is None else environ
        values: Dict[str, Any] = {}

        toml_path = config_file or env.get("TODOIST_CLI_CONFIG_FILE")
        if toml_path:
            values.update(_load_toml(Path(toml_path)))
        else:
            for default_path in DEFAULT_CONFIG_FILES:
                if Path(default_path).exists():
                    values.update(_load_toml(Path(default_path)))
                    break

        values.update(_load_env(env))
        return cls(**values)

    def with_overrides(self, **changes: Any) -> "ClientConfig":
        known = {f.name for f in fields(self)}
        return replace(self, **{k: v for k, v in changes.items() if k in known and v is not None})

    def validate(self) -> "ClientConfig":
        """Check ranges and formats; raises ``ConfigError``."""
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {self.timeout}")
        if self.max_retries < 0:
            raise ConfigError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.retry_base_delay < 0:
            raise ConfigError(f"retry_base_delay must be >= 0, got {self.retry_base_delay}")
        if self.log_level not in _VALID_LOG_LEVELS:
            raise ConfigError(
                f"Invalid log level '{self.log_level}'. "
                f"Valid options: {', '.join(_VALID_LOG_LEVELS)}"
            )
        for name in ("rest_url", "sync_url"):
            url = getattr(self, name)
            if not url.startswith(("http://", "https://")):
                raise ConfigError(f"{name} must be an http(s) URL, got {url!r}")
        return self

    def require_token(self) -> str:
        """Return the API token or fail before any network call."""
        if not self.api_token or not self.api_token.strip():
            raise ConfigError(
                "TODOIST_API_TOKEN environment variable is required",
                missing_credential=True,
            )
        return self.api_token.strip()

    def setup_logging(self, stream: Any = None) -> None:
        """Configure the ``todoist_cli`` logger to write to stderr."""
        level = getattr(logging, self.log_level, logging.WARNING)

        if self.structured_logging:
            formatter = logging.Formatter(
                '{"timestamp":"%(asctime)s","level":"%(levelname)s",'
                '"logger":"%(name)s","message":"%(message)s"}'
            )
        else:
            formatter = logging.Formatter("%(levelname)s %(name)s: %(message)s")

        handler = logging.StreamHandler(stream) if stream is not None else _StderrHandler()
        handler.setFormatter(formatter)

        root_logger = logging.getLogger("todoist_cli")
        root_logger.setLevel(level)
        for existing in list(root_logger.handlers):
            if getattr(existing, "_todoist_cli", False):
                root_logger.removeHandler(existing)
        handler._todoist_cli = True  # type: ignore[attr-defined]
        root_logger.addHandler(handler)

    def to_dict(self) -> Dict[str, Any]:
        """Settings with the token masked, for ``--verbose`` diagnostics."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["api_token"] = "[set]" if self.api_token else None
        return data


def _load_toml(path: Path) -> Dict[str, Any]:
    """Read settings from a TOML file."""
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Error loading config file {path}: {e}") from e

    values: Dict[str, Any] = {}
    api = data.get("api", {})
    if "token" in api:
        values["api_token"] = str(api["token"])
    if "rest_url" in api:
        values["rest_url"] = str(api["rest_url"])
    if "sync_url" in api:
        values["sync_url"] = str(api["sync_url"])
    if "timeout" in api:
        values["timeout"] = _parse_number("api.timeout", api["timeout"], float)
    if "max_retries" in api:
        values["max_retries"] = _parse_number("api.max_retries", api["max_retries"], int)
    if "retry_base_delay" in api:
        values["retry_base_delay"] = _parse_number(
            "api.retry_base_delay", api["retry_base_delay"], float
        )

    log = data.get("logging", {})
    if "level" in log:
        values["log_level"] = str(log["level"]).upper()
    if "structured" in log:
        values["structured_logging"] = _parse_bool(log["structured"])

    return values


def _load_env(env: Any) -> Dict[str, Any]:
    """Read settings from environment variables."""
    values: Dict[str, Any] = {}

    if token := env.get("TODOIST_API_TOKEN"):
        values["api_token"] = token
    if rest_url := env.get("TODOIST_REST_URL"):
        values["rest_url"] = rest_url
    if sync_url := env.get("TODOIST_SYNC_URL"):
        values["sync_url"] = sync_url
    if timeout := env.get("TODOIST_CLI_TIMEOUT"):
        values["timeout"] = _parse_number("TODOIST_CLI_TIMEOUT", timeout, float)
    if retries := env.get("TODOIST_CLI_MAX_RETRIES"):
        values["max_retries"] = _parse_number("TODOIST_CLI_MAX_RETRIES", retries, int)
    if level := env.get("TODOIST_CLI_LOG_LEVEL"):
        values["log_level"] = level.upper()

    return values

"""CLI execution context.

Holds the effective configuration for one invocation plus the lazily
created API client and snapshot, so every command shares one client and
fetches each collection at most once.
"""

from typing import Any, Callable, Optional

from todoist_cli.config import ClientConfig
from todoist_cli.core.client import TodoistClient
from todoist_cli.core.snapshot import Snapshot

ClientFactory = Callable[[ClientConfig], Any]


def _default_client_factory(config: ClientConfig) -> TodoistClient:
    return TodoistClient.from_config(config)


class CLIContext:
    """CLI execution context with resolved configuration.

    Args:
        config: Validated client configuration.
        json_output: Emit response envelopes instead of text.
        client_factory: Builds the API client (tests inject a fake).
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        json_output: bool = False,
        client_factory: Optional[ClientFactory] = None,
    ):
        self._config = config or ClientConfig()
        self.json_output = json_output
        self._client_factory = client_factory or _default_client_factory
        self._client: Any = None
        self._snapshot: Optional[Snapshot] = None

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def client(self) -> Any:
        """The API client, created on first use.

        Raises:
            ConfigError: If no API token is configured. Raised before any
                network call is attempted.
        """
        if self._client is None:
            self._config.require_token()
            self._client = self._client_factory(self._config)
        return self._client

    @property
    def snapshot(self) -> Snapshot:
        if self._snapshot is None:
            self._snapshot = Snapshot(self.client)
        return self._snapshot

    def close(self) -> None:
        if self._client is not None and hasattr(self._client, "close"):
            self._client.close()
        self._client = None
        self._snapshot = None


def create_context(
    *,
    config_file: Optional[str] = None,
    json_output: bool = False,
    verbose: bool = False,
    client_factory: Optional[ClientFactory] = None,
) -> CLIContext:
    """Load configuration (env > TOML > defaults) and build a context.

    Raises:
        ConfigError: If the configuration is invalid.
    """
    config = ClientConfig.from_env(config_file)
    if verbose:
        config = config.with_overrides(log_level="DEBUG")
    config.validate()
    config.setup_logging()
    return CLIContext(config, json_output=json_output, client_factory=client_factory)

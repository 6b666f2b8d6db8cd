"""Application settings loaded from environment variables and config files.

Configuration is loaded from (highest priority first):
1. Environment variables (prefix: ``CARDANO_WALLET_``, nested via ``__``)
2. YAML config file (``config_path`` or ``CARDANO_WALLET_CONFIG_PATH`` env var)
3. Defaults defined here
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Any, Self

import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Enums for validated choices
# ---------------------------------------------------------------------------


class DatabaseEngine(enum.StrEnum):
    """Supported database engines."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"


class Network(enum.StrEnum):
    """Cardano networks served by the indexer."""

    MAINNET = "mainnet"
    PREPROD = "preprod"


# ---------------------------------------------------------------------------
# Sub-config models
# ---------------------------------------------------------------------------


class ServerConfig(BaseSettings):
    """HTTP server settings."""

    model_config = SettingsConfigDict(
        env_prefix="CARDANO_WALLET_SERVER__",
        case_sensitive=False,
    )

    host: str = "127.0.0.1"
    port: int = 3004
    cors_origins: list[str] = Field(
        default_factory=list,
        description="Origins allowed to call the API; empty allows any origin",
    )


class DatabaseConfig(BaseSettings):
    """Database settings."""

    model_config = SettingsConfigDict(
        env_prefix="CARDANO_WALLET_DB__",
        case_sensitive=False,
    )

    engine: DatabaseEngine = Field(
        default=DatabaseEngine.SQLITE,
        description="Database backend: sqlite or postgresql",
    )
    dsn: str = Field(
        default="sqlite+aiosqlite:///./cardano_wallet.db",
        description="Async database connection string",
    )
    max_idle_connections: int = 5
    max_open_connections: int = 10
    debug_sql: bool = False


class IndexerConfig(BaseSettings):
    """Blockfrost indexer settings (one base URL and project key per network)."""

    model_config = SettingsConfigDict(
        env_prefix="CARDANO_WALLET_INDEXER__",
        case_sensitive=False,
    )

    mainnet_url: str = "https://cardano-mainnet.blockfrost.io/api/v0"
    preprod_url: str = "https://cardano-preprod.blockfrost.io/api/v0"
    mainnet_api_key: str = ""
    preprod_api_key: str = ""
    timeout: float = 30.0
    page_size: int = Field(default=100, ge=1, le=100)
    max_concurrent_requests: int = Field(default=5, ge=1)

    def base_url(self, network: Network) -> str:
        """Return the base URL configured for *network*."""
        if network == Network.MAINNET:
            return self.mainnet_url
        return self.preprod_url

    def api_key(self, network: Network) -> str:
        """Return the project key configured for *network* (may be empty)."""
        if network == Network.MAINNET:
            return self.mainnet_api_key
        return self.preprod_api_key


class SyncConfig(BaseSettings):
    """Ledger sync behaviour."""

    model_config = SettingsConfigDict(
        env_prefix="CARDANO_WALLET_SYNC__",
        case_sensitive=False,
    )

    max_age_seconds: float = 300.0
    cooldown_seconds: float = 30.0
    timeout_seconds: float = 60.0
    batch_size: int = Field(default=3, ge=1)
    batch_delay_seconds: float = 1.0
    reject_conflicting_spends: bool = False


class MetricsConfig(BaseSettings):
    """Prometheus metrics settings."""

    model_config = SettingsConfigDict(
        env_prefix="CARDANO_WALLET_METRICS__",
        case_sensitive=False,
    )

    enabled: bool = True


class TaskConfig(BaseSettings):
    """Background task settings."""

    model_config = SettingsConfigDict(
        env_prefix="CARDANO_WALLET_TASK__",
        case_sensitive=False,
    )

    enabled: bool = False
    sync_period: float = 300.0
    metrics_period: float = 15.0


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


def _load_yaml(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file and return its contents as a dict.

    Returns an empty dict if the file doesn't exist or is empty.
    """
    p = Path(path)
    if not p.exists():
        return {}
    text = p.read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    return data if isinstance(data, dict) else {}


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Loads settings from environment variables (``CARDANO_WALLET_`` prefix),
    an optional YAML file, and built-in defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="CARDANO_WALLET_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    debug: bool = False
    version: str = "0.1.0"
    config_path: str = ""

    server: ServerConfig = Field(default_factory=ServerConfig)
    db: DatabaseConfig = Field(default_factory=DatabaseConfig)
    indexer: IndexerConfig = Field(default_factory=IndexerConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    task: TaskConfig = Field(default_factory=TaskConfig)

    @model_validator(mode="before")
    @classmethod
    def _merge_yaml(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Merge YAML config file contents under the env var overrides."""
        config_path = values.get("config_path", "")
        if not config_path:
            return values
        yaml_data = _load_yaml(config_path)
        # YAML values serve as defaults; env vars (already in *values*) win.
        for key, val in yaml_data.items():
            if key not in values or values[key] is None:
                values[key] = val
            elif isinstance(val, dict) and isinstance(values.get(key), dict):
                merged = {**val, **values[key]}
                values[key] = merged
        return values

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """Construct ``AppConfig`` loading defaults from a YAML file.

        Environment variables still override YAML values.
        """
        return cls(config_path=str(path))

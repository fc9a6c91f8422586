"""
Configuration management for MDB_DASHBOARD.

Every value can be passed directly, falls back to an environment variable,
and finally to the defaults in ``constants``. The dashboard can still be
built without any configuration object at all.
"""

import os
from typing import Any

from .constants import (
    DEFAULT_HOST,
    DEFAULT_MAX_POOL_SIZE,
    DEFAULT_MIN_POOL_SIZE,
    DEFAULT_PAGE_SIZE,
    DEFAULT_PORT,
    DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
    MIN_SERVER_SELECTION_TIMEOUT_MS,
)
from .exceptions import ConfigurationError


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"Environment variable {name} must be an integer, got {raw!r}",
            config_key=name,
            config_value=raw,
        ) from e


class DashboardConfig:
    """
    Dashboard configuration.

    Example:
        # Using environment variables
        config = DashboardConfig()

        # Or using direct parameters
        config = DashboardConfig(max_pool_size=20, port=9000)
        config.validate()
        registry = ClientRegistry(**config.registry_options())
    """

    def __init__(
        self,
        max_pool_size: int | None = None,
        min_pool_size: int | None = None,
        server_selection_timeout_ms: int | None = None,
        default_page_size: int | None = None,
        cors_origins: list[str] | None = None,
        host: str | None = None,
        port: int | None = None,
        log_level: str | None = None,
    ):
        """
        Initialize configuration.

        Args:
            max_pool_size: Maximum pool size per client (MONGO_MAX_POOL_SIZE, default 10)
            min_pool_size: Minimum pool size per client (MONGO_MIN_POOL_SIZE, default 2)
            server_selection_timeout_ms: Server selection timeout in ms
                (MONGO_SERVER_SELECTION_TIMEOUT_MS, default 5000)
            default_page_size: Documents per page when no limit is given
                (DASHBOARD_DEFAULT_PAGE_SIZE, default 50)
            cors_origins: Allowed CORS origins (DASHBOARD_CORS_ORIGINS, comma separated,
                default "*")
            host: Bind address (DASHBOARD_HOST, default 127.0.0.1)
            port: Bind port (DASHBOARD_PORT, default 8000)
            log_level: Root log level (LOG_LEVEL, default INFO)
        """
        self.max_pool_size = (
            max_pool_size
            if max_pool_size is not None
            else _env_int("MONGO_MAX_POOL_SIZE", DEFAULT_MAX_POOL_SIZE)
        )
        self.min_pool_size = (
            min_pool_size
            if min_pool_size is not None
            else _env_int("MONGO_MIN_POOL_SIZE", DEFAULT_MIN_POOL_SIZE)
        )
        self.server_selection_timeout_ms = (
            server_selection_timeout_ms
            if server_selection_timeout_ms is not None
            else _env_int("MONGO_SERVER_SELECTION_TIMEOUT_MS", DEFAULT_SERVER_SELECTION_TIMEOUT_MS)
        )
        self.default_page_size = (
            default_page_size
            if default_page_size is not None
            else _env_int("DASHBOARD_DEFAULT_PAGE_SIZE", DEFAULT_PAGE_SIZE)
        )
        if cors_origins is None:
            raw_origins = os.getenv("DASHBOARD_CORS_ORIGINS", "*")
            cors_origins = [o.strip() for o in raw_origins.split(",") if o.strip()]
        self.cors_origins = cors_origins
        self.host = host or os.getenv("DASHBOARD_HOST", DEFAULT_HOST)
        self.port = port if port is not None else _env_int("DASHBOARD_PORT", DEFAULT_PORT)
        self.log_level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ConfigurationError: If a configuration value is invalid
        """
        if self.max_pool_size < 1:
            raise ConfigurationError(
                f"max_pool_size must be >= 1, got {self.max_pool_size}",
                config_key="max_pool_size",
                config_value=self.max_pool_size,
            )

        if self.min_pool_size < 1:
            raise ConfigurationError(
                f"min_pool_size must be >= 1, got {self.min_pool_size}",
                config_key="min_pool_size",
                config_value=self.min_pool_size,
            )

        if self.min_pool_size > self.max_pool_size:
            raise ConfigurationError(
                f"min_pool_size ({self.min_pool_size}) cannot be greater than "
                f"max_pool_size ({self.max_pool_size})",
                config_key="min_pool_size",
                config_value=self.min_pool_size,
            )

        if self.server_selection_timeout_ms < MIN_SERVER_SELECTION_TIMEOUT_MS:
            raise ConfigurationError(
                f"server_selection_timeout_ms must be >= {MIN_SERVER_SELECTION_TIMEOUT_MS}, "
                f"got {self.server_selection_timeout_ms}",
                config_key="server_selection_timeout_ms",
                config_value=self.server_selection_timeout_ms,
            )

        if self.default_page_size < 1:
            raise ConfigurationError(
                f"default_page_size must be >= 1, got {self.default_page_size}",
                config_key="default_page_size",
                config_value=self.default_page_size,
            )

        if not 1 <= self.port <= 65535:
            raise ConfigurationError(
                f"port must be between 1 and 65535, got {self.port}",
                config_key="port",
                config_value=self.port,
            )

    def registry_options(self) -> dict[str, Any]:
        """Keyword arguments for constructing a ClientRegistry."""
        return {
            "max_pool_size": self.max_pool_size,
            "min_pool_size": self.min_pool_size,
            "server_selection_timeout_ms": self.server_selection_timeout_ms,
        }

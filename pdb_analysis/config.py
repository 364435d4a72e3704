"""
Configuration management for the PDB Analysis toolkit.

This module provides configuration classes and utilities for managing
API endpoints, retry policies, logging and server parameters.
"""

import os
from dataclasses import dataclass, field, asdict
from typing import Optional
import json

from .errors import ConfigurationError


@dataclass
class RetryConfig:
    """Configuration for retry behavior of transient network failures."""
    max_attempts: int = 3
    initial_delay: float = 1.0
    backoff_multiplier: float = 2.0


@dataclass
class APIConfig:
    """External API endpoints and request settings."""
    pdb_data_api: str = "https://data.rcsb.org/rest/v1"
    pdb_search_api: str = "https://search.rcsb.org/rcsbsearch/v2/query"
    pdb_graphql_api: str = "https://data.rcsb.org/graphql"
    uniprot_api: str = "https://rest.uniprot.org/uniprotkb"
    structure_viewer_url: str = "https://www.rcsb.org/structure"
    user_agent: str = "PDB-Analysis-Tool/1.0"

    # Per-attempt request timeout
    request_timeout_ms: int = 30000


@dataclass
class LoggingConfig:
    """Logging system configuration."""
    level: str = "INFO"
    format: str = "text"
    log_file: Optional[str] = None
    max_file_size_mb: int = 100
    backup_count: int = 5
    structured: bool = True


@dataclass
class ServerConfig:
    """Settings for the MCP and REST transports."""
    name: str = "pdb-analysis"
    keep_alive_interval: float = 25.0
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass
class SystemConfig:
    """Main system configuration combining all subsystem configs."""
    api: APIConfig = field(default_factory=APIConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    @classmethod
    def from_env(cls) -> "SystemConfig":
        """Create configuration from environment variables."""
        config = cls()

        # API configuration from environment
        if os.getenv("PDB_DATA_API"):
            config.api.pdb_data_api = os.getenv("PDB_DATA_API")
        if os.getenv("PDB_SEARCH_API"):
            config.api.pdb_search_api = os.getenv("PDB_SEARCH_API")
        if os.getenv("PDB_GRAPHQL_API"):
            config.api.pdb_graphql_api = os.getenv("PDB_GRAPHQL_API")
        if os.getenv("UNIPROT_API"):
            config.api.uniprot_api = os.getenv("UNIPROT_API")
        if os.getenv("REQUEST_TIMEOUT_MS"):
            config.api.request_timeout_ms = _parse_int("REQUEST_TIMEOUT_MS")

        # Retry configuration from environment
        if os.getenv("MAX_ATTEMPTS"):
            config.retry.max_attempts = _parse_int("MAX_ATTEMPTS")
        if os.getenv("INITIAL_DELAY"):
            config.retry.initial_delay = _parse_float("INITIAL_DELAY")
        if os.getenv("BACKOFF_MULTIPLIER"):
            config.retry.backoff_multiplier = _parse_float("BACKOFF_MULTIPLIER")

        # Logging configuration from environment
        if os.getenv("LOG_LEVEL"):
            config.logging.level = os.getenv("LOG_LEVEL")
        if os.getenv("LOG_FILE"):
            config.logging.log_file = os.getenv("LOG_FILE")
        if os.getenv("LOG_FORMAT"):
            config.logging.format = os.getenv("LOG_FORMAT")

        return config

    @classmethod
    def from_file(cls, config_path: str) -> "SystemConfig":
        """Load configuration from JSON file."""
        try:
            with open(config_path, 'r') as f:
                config_data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(
                f"Cannot read configuration file {config_path}: {e}",
                original_exception=e
            )

        config = cls()

        # Unknown keys are ignored so older files keep loading
        for section in ("api", "retry", "logging", "server"):
            section_data = config_data.get(section, {})
            target = getattr(config, section)
            for key, value in section_data.items():
                if hasattr(target, key):
                    setattr(target, key, value)

        return config

    def to_file(self, config_path: str) -> None:
        """Save configuration to JSON file."""
        config_data = {
            "api": asdict(self.api),
            "retry": asdict(self.retry),
            "logging": asdict(self.logging),
            "server": asdict(self.server),
        }

        with open(config_path, 'w') as f:
            json.dump(config_data, f, indent=2)


def _parse_int(name: str) -> int:
    try:
        return int(os.environ[name])
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer", original_exception=e)


def _parse_float(name: str) -> float:
    try:
        return float(os.environ[name])
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number", original_exception=e)


# Global configuration instance
_config: Optional[SystemConfig] = None


def get_config() -> SystemConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = SystemConfig.from_env()
    return _config


def set_config(config: Optional[SystemConfig]) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def load_config_from_file(config_path: str) -> SystemConfig:
    """Load and set configuration from file."""
    config = SystemConfig.from_file(config_path)
    set_config(config)
    return config

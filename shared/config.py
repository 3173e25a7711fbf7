"""
Shared configuration management for the rules engine.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="RULES_",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local", description="Deployment environment")
    log_level: str = Field(default="info", description="Log level")

    # Observability
    metrics_port: Optional[int] = Field(default=None, description="Port for the Prometheus exporter, disabled when unset")


class RulesEngineConfig(BaseConfig):
    """Rules engine runtime configuration."""

    service_name: str = "rulesengine"

    # Cache
    cache_ttl_seconds: float = Field(default=300.0, gt=0, description="Age after which an entry is rechecked")
    sweep_interval_seconds: float = Field(default=300.0, gt=0, description="Delay between refresh sweeps")
    fetch_timeout_seconds: float = Field(default=5.0, gt=0, description="Upper bound on a configuration fetch")
    refresh_concurrency: int = Field(default=5, ge=1, description="Entries reconciled in parallel per sweep")

    # Configuration source
    config_source: str = Field(default="file", pattern="^(memory|file|http)$")
    config_dir: str = Field(default="./rules", description="Directory holding <config_id>.json files")
    config_source_url: str = Field(default="http://localhost:8090/rules", description="Base URL for HTTP fetches")


def get_config(**overrides) -> RulesEngineConfig:
    """Get the rules engine configuration."""
    return RulesEngineConfig(**overrides)

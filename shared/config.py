"""
Shared configuration management for the Product Catalog Access service.
"""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="CATALOG_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # External services
    redis_url: str = Field(default="redis://localhost:6379/0")
    redis_connect_timeout: float = Field(default=10.0)
    redis_command_timeout: float = Field(default=5.0)
    postgres_dsn: str = Field(default="postgresql://localhost:5432/catalog")
    db_pool_min: int = Field(default=5)
    db_pool_max: int = Field(default=50)
    db_command_timeout: float = Field(default=30.0)

    # Request admission
    enable_request_queue: bool = Field(default=False)
    max_concurrent_requests: int = Field(default=1000, ge=1)
    queue_timeout_seconds: float = Field(default=30.0, gt=0)

    # Cache TTL classes (seconds)
    cache_ttl_default: int = Field(default=60, ge=1)
    cache_ttl_latest: int = Field(default=30, ge=1)
    cache_ttl_aggregate: int = Field(default=300, ge=1)

    # HTTP
    allowed_origins: List[str] = Field(default_factory=list)
    slow_request_threshold_ms: float = Field(default=1000.0)

    @property
    def is_development(self) -> bool:
        """True when internal error detail may be echoed to callers."""
        return self.env.lower() in ("local", "development", "dev")


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)

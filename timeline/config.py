"""Configuration management for the timeline aggregator."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="TL_", extra="ignore")

    # Cache
    cache_type: str = Field(default="redis", pattern="^(redis|memory)$")
    redis_url: str = "redis://localhost:6379/0"
    cache_key_prefix: str = "timeline:"
    cache_memory_max_items: int = 5000
    cache_content_expire: int = 3600  # identity lookups, 1 hour
    cache_route_expire: int = 300  # per-source results, 5 minutes

    # Upstream
    upstream_base_url: str = "https://x.com/i/api/graphql"
    third_party_api: str = Field(default="")
    upstream_bearer_token: str = Field(default="")
    upstream_timeout: float = 15.0
    operation_ids: dict[str, str] = Field(default_factory=dict)  # query id overrides

    # Aggregation
    page_size: int = 20
    max_pages: int = Field(default=1, ge=1)
    aggregate_timeout: float = 30.0

    # CORS
    frontend_origin: str = "http://localhost:5173"

    # Environment
    env: str = Field(default="dev", pattern="^(dev|prod)$")


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance (singleton pattern)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings

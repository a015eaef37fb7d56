from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SystemSettings(BaseSettings):
    """
    Centralized system-level configuration.
    Reads from .env at startup. Immutable at runtime.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Upstream workspace API
    NOTION_API_KEY: Optional[str] = Field(None)
    NOTION_BASE_URL: str = Field("https://api.notion.com/v1")
    NOTION_VERSION: str = Field("2022-06-28")
    PAGE_SIZE: int = Field(100)

    # Fetch behaviour
    FETCH_TIMEOUT_SECONDS: float = Field(30.0)
    FETCH_RETRY_ATTEMPTS: int = Field(3)
    RETRY_BASE_DELAY_SECONDS: float = Field(0.5)
    RETRY_MAX_DELAY_SECONDS: float = Field(8.0)
    PROGRESS_INTERVAL_SECONDS: float = Field(0.1)

    # Cache tiers
    CACHE_TTL_SECONDS: int = Field(300)
    DURABLE_CACHE_TTL_SECONDS: int = Field(24 * 60 * 60)
    REDIS_URL: Optional[str] = Field(None)
    CACHE_KEY_PREFIX: str = Field("workgraph-cache-")
    CACHE_MANIFEST_KEY: str = Field("workgraph-cache-metadata")

    # Workspace layout
    WORKSPACE_CONFIG_PATH: Optional[str] = Field(None)
    DEFAULT_ITEM_TYPE: str = Field("project")
    RELATION_FALLBACK_STRICT: bool = Field(False)

    DEBUG_MODE: bool = Field(False)
    LOG_LEVEL: str = Field("INFO")


# Singleton instance
system_settings = SystemSettings()

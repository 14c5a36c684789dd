"""Process settings using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process-level settings loaded from ``GITBACK_*`` environment variables.

    These only provide defaults for the command line; the accounts and the
    backup root live in the YAML config file.
    """

    model_config = SettingsConfigDict(
        env_prefix="GITBACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    config: str = "./config.yml"
    log_level: str = "INFO"
    log_file: str | None = None
    progress: bool = True


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

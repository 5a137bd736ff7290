from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Bitbucket - workspace and bearer token (repository read scope is enough)
    bitbucket_workspace: str = ""
    bitbucket_access_token: str = ""
    bitbucket_api_url: str = "https://api.bitbucket.org/2.0"

    # Response cache
    # "memory" keeps entries in-process, "file" persists them to cache_path
    cache_backend: Literal["memory", "file"] = "memory"
    cache_path: str = ".branchboard-cache.json"
    cache_ttl_seconds: int = 300  # 5 min
    cache_max_entries: int = 1000

    # Branches without commits in this many days are flagged stale
    stale_threshold_days: int = 30

    # Application
    debug: bool = False
    cors_origins: list[str] = ["http://localhost:3000"]

    @property
    def bitbucket_configured(self) -> bool:
        """Check if both workspace and access token are set."""
        return bool(self.bitbucket_workspace and self.bitbucket_access_token)


settings = Settings()

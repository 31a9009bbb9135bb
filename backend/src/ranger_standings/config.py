"""Application configuration via pydantic-settings."""

from functools import lru_cache

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API Settings
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS - comma-separated origins (env var: CORS_ORIGINS)
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

    @computed_field
    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # Match result store (DuckDB file)
    database_path: str = "data/match_results.duckdb"

    # Image-understanding provider (OpenAI-compatible chat completions)
    vision_api_key: str = ""
    vision_api_url: str = "https://api.openai.com/v1/chat/completions"
    vision_model: str = "gpt-4o"
    vision_timeout: float = 60.0
    extraction_max_attempts: int = 2

    # Billing gate
    aggregation_fee: int = 3
    starting_wallet_balance: int = 0

    # Standings defaults
    default_group_name: str = "G1"
    default_combine_group_name: str = "G2"

    # Feature flags
    enable_vision: bool = True


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()

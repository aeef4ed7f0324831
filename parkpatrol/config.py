"""Application configuration using Pydantic settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database (embedded, survives restarts)
    database_url: str = "sqlite+aiosqlite:///./parkpatrol.db"

    # Reverse geocoding (Nominatim)
    geocoder_base_url: str = "https://nominatim.openstreetmap.org"
    geocoder_user_agent: str = "parkpatrol/0.1"
    geocode_timeout_seconds: float = 3.0
    unknown_location: str = "Unknown Location"

    # Map screen
    confirmation_seconds: float = 2.0
    default_latitude: float = 33.8818  # CSUF East Parking
    default_longitude: float = -117.8855
    default_span_degrees: float = 0.01

    # Profile key-value file
    profile_path: str = "parkpatrol_profile.json"

    # API settings
    api_v1_prefix: str = "/api/v1"
    cors_origins: list[str] = ["*"]  # Restrict in production
    rate_limit_per_minute: int = 60

    # Environment
    debug: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

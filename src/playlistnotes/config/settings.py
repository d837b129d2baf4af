"""Application settings loaded from environment variables / .env via pydantic-settings."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Hey future me - client_id/client_secret are ONLY needed by the backend token endpoint
# (/api/spotify/token). The adapter itself never sees them, it calls token_endpoint and
# gets a short-lived bearer token back. Leave them empty and the endpoint answers 500
# missing_credentials, which the adapter maps to ERR_NETWORK (and the session falls back).
class SpotifySettings(BaseSettings):
    """Spotify Web API configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SPOTIFY_", env_file=".env", extra="ignore"
    )

    client_id: str = Field(default="", description="Spotify application client ID")
    client_secret: str = Field(default="", description="Spotify application client secret")
    token_url: str = Field(
        default="https://accounts.spotify.com/api/token",
        description="Accounts service endpoint for the client-credentials exchange",
    )
    api_base_url: str = Field(
        default="https://api.spotify.com/v1", description="Spotify Web API base URL"
    )
    token_endpoint: str = Field(
        default="http://localhost:8000/api/spotify/token",
        description="Backend endpoint the adapter fetches bearer tokens from",
    )
    token_expiry_skew_seconds: int = Field(
        default=60,
        ge=0,
        description="Seconds subtracted from expires_in before the server cache treats a token as stale",
    )
    retry_after_max_seconds: float = Field(
        default=5.0,
        ge=0,
        description="Upper bound for honoring Retry-After on a 429 from the accounts service",
    )

    @property
    def has_credentials(self) -> bool:
        return bool(self.client_id.strip() and self.client_secret.strip())


class ImportSettings(BaseSettings):
    """Import behaviour: feature flags and the simulated-pagination adapters."""

    model_config = SettingsConfigDict(env_prefix="IMPORT_", env_file=".env", extra="ignore")

    # pydantic accepts 1/0, true/false, yes/no, on/off here
    enable_podcasts: bool = Field(
        default=False, description="Allow importing Spotify shows and episodes"
    )
    mock_page_size: int = Field(default=10, ge=1, description="Items per mock page")
    mock_total_tracks: int = Field(default=75, ge=0, description="Size of the mock catalog")
    mock_delay_seconds: float = Field(
        default=0.12, ge=0, description="Simulated latency of a mock page fetch"
    )


class ObservabilitySettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_", env_file=".env", extra="ignore")

    level: str = Field(default="INFO", description="Root log level")
    json_format: bool = Field(default=False, description="Emit JSON log lines")

    @field_validator("level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = Field(default="playlistnotes", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")

    spotify: SpotifySettings = Field(default_factory=SpotifySettings)
    imports: ImportSettings = Field(default_factory=ImportSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)


# Yo, cached on purpose - Settings() reads the environment and .env every time it's built.
# Tests that need different values construct Settings(...) directly or call
# get_settings.cache_clear() after monkeypatching the environment.
@lru_cache
def get_settings() -> Settings:
    """Get the cached application settings."""
    return Settings()

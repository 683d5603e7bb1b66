"""Client configuration using pydantic-settings."""

from functools import lru_cache
from typing import List, Optional

from pydantic import field_validator, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from directions import __version__


class Settings(BaseSettings):
    """Client settings loaded from environment variables.

    Notes:
    - The access token SHOULD be supplied via MAPBOX_ACCESS_TOKEN rather than code
    - Setting LOCAL_ENGINE_PATH configures the local engine fallback for every
      Directions object built from these settings
    """

    # Application identity (sent in the User-Agent header)
    app_name: str = "directions"
    app_version: str = __version__

    # Directions API
    mapbox_access_token: str = Field(
        default="",
        description="Access token appended to every request as access_token.",
    )
    directions_scheme: str = Field(default="https", description="Scheme of the API endpoint")
    directions_host: str = Field(default="api.mapbox.com", description="Host of the API endpoint")
    request_timeout_seconds: float = Field(default=30.0, description="Per-request timeout in seconds")

    # Local routing engine fallback
    local_engine_path: Optional[str] = Field(
        default=None,
        description="Dataset path of the local routing engine. Enables the offline fallback.",
    )
    local_engine_url: str = Field(
        default="http://127.0.0.1:5000",
        description="Base URL the local engine serves the dataset on.",
    )
    local_engine_profile: str = "driving"
    voice_locale: str = Field(default="en-US", description="Locale stamped on synthesized routes")
    local_engine_suppress_errors: bool = Field(
        default=False,
        description="Return an empty result instead of raising when local synthesis fails.",
    )

    # Logging
    log_level: str = "INFO"
    log_requests: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("directions_scheme")
    @classmethod
    def validate_scheme(cls, v: str) -> str:
        """Normalize the scheme and reject anything that is not HTTP."""
        v = v.strip().lower()
        if v not in ("http", "https"):
            raise ValueError(f"Unsupported scheme: {v}")
        return v

    @field_validator("local_engine_path")
    @classmethod
    def validate_local_engine_path(cls, v: Optional[str]) -> Optional[str]:
        """Treat an empty path as unset."""
        if v is not None and not v.strip():
            return None
        return v

    def api_endpoint(self) -> str:
        """Base URL of the directions API."""
        return f"{self.directions_scheme}://{self.directions_host}"

    def validate_client_settings(self) -> List[str]:
        """Validate settings are usable for outbound requests. Returns list of errors."""
        errors = []

        if not self.mapbox_access_token:
            errors.append("MAPBOX_ACCESS_TOKEN is not set - requests will be rejected")

        if self.directions_scheme != "https":
            errors.append("DIRECTIONS_SCHEME should be https outside of local testing")

        if self.request_timeout_seconds <= 0:
            errors.append("REQUEST_TIMEOUT_SECONDS must be positive")

        return errors


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()

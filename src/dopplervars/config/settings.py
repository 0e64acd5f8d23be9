"""
Process-wide defaults for dopplervars, overridable through DOPPLERVARS_*
environment variables or a .env file.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_local_settings_path() -> Path:
    return Path.home() / ".doppler" / ".doppler.yaml"


class Settings(BaseSettings):
    """Defaults that apply when neither CLI params nor the doppler block say otherwise."""

    # Doppler API
    api_base_url: str = "https://api.doppler.com"
    page_size: int = 10_000

    # HTTP client settings (no retries unless asked for)
    http_timeout: float = 30.0
    http_max_retries: int = 0

    # Local Doppler CLI state
    local_settings_path: Path = _default_local_settings_path()
    keyring_service: str = "doppler-cli"

    # Resolution policy
    service_token_prefix: str = "dp.st."
    local_fallback: bool = True  # used when neither CLI nor config states it
    verify_identity: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="DOPPLERVARS_",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Settings for this process, read once."""
    return Settings()

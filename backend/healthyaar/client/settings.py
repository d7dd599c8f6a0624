"""
Client Settings.
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    """Settings for the application-side workflow (``HEALTHYAAR_`` env prefix)."""

    model_config = SettingsConfigDict(env_prefix="HEALTHYAAR_", env_file=".env", extra="ignore")

    base_url: str = "http://localhost:8000"
    request_timeout: float = 90.0

    # Where the access token is kept between runs; None keeps it in memory only
    credential_path: Optional[str] = "./.healthyaar/credential.json"
    # One-time custom token handed over by the host environment
    initial_auth_token: Optional[str] = None

    notification_ttl: float = 3.0

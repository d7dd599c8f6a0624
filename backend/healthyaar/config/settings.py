"""
Configuration Settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # App info
    app_name: str = "Health Yaar AI"
    app_version: str = "1.0.0"
    debug: bool = False
    app_id: str = "default-app-id"

    # Auth provider
    secret_key: str = "change-this-secret-key"
    custom_token_secret: str = "change-this-custom-token-secret"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days

    # Document store
    local_storage_path: str = "./data"

    # Gemini
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-1.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    llm_timeout: float = 60.0
    llm_temperature: float = 0.7
    llm_max_output_tokens: int = 2048
    chat_history_window: int = 40  # 0 keeps the whole transcript

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
    ]

    # Logging configuration
    log_level: str = "INFO"
    log_file_path: str = "./logs/healthyaar.log"
    log_file_enabled: bool = True
    log_console_enabled: bool = True
    log_json_format: bool = True
    log_api_requests: bool = True


def get_settings() -> Settings:
    """Build settings from the environment."""
    return Settings()

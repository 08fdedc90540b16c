"""Configuration settings for the Treegar API client."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TreegarSettings(BaseSettings):
    """Treegar banking API configuration.

    All settings can be configured via environment variables with TREEGAR_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="TREEGAR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    base_url: str = Field(
        default="https://treegar-accounts-api.treegar.com:8443/api",
        description="Treegar API base URL",
    )
    access_token: str = Field(
        default="",
        description="Bearer token issued by the session layer",
    )
    timeout_seconds: float = Field(
        default=30.0,
        description="HTTP request timeout in seconds",
    )
    upload_timeout_seconds: float = Field(
        default=120.0,
        description="HTTP timeout for document uploads in seconds",
    )
    retry_attempts: int = Field(
        default=3,
        description="Number of attempts for idempotent requests",
    )
    retry_min_wait_seconds: float = Field(
        default=1.0,
        description="Minimum wait time between retries in seconds",
    )
    retry_max_wait_seconds: float = Field(
        default=10.0,
        description="Maximum wait time between retries in seconds",
    )

"""Orchestration core configuration."""
import logging
from functools import lru_cache

from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Core settings loaded from environment variables."""

    # Account / tag resolution
    resolution_debounce_ms: int = 500
    account_number_length: int = 10
    customer_tag_min_length: int = 3
    cancel_superseded_requests: bool = True  # Abort the stale request, not just ignore it

    # KYC verification
    verification_refresh_delay_ms: int = 2000  # Backend propagation after a verification/upload
    verification_number_length: int = 11

    # Authorization
    pin_length: int = 4
    verify_pin_before_payout: bool = True

    # Payout
    bulk_group_key_prefix: str = "BULK"

    # Read-side caches (recent transactions, profile/balance)
    cache_ttl_seconds: int = 300

    class Config:
        env_file = ".env"
        extra = "ignore"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()
    logger.info(
        f"Settings loaded - debounce: {settings.resolution_debounce_ms}ms, "
        f"refresh delay: {settings.verification_refresh_delay_ms}ms"
    )
    return settings

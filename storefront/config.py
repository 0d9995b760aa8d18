"""
Configuration settings for the application.
"""

import logging
import os

from dotenv import load_dotenv

load_dotenv()


def _optional_float(name: str) -> float | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return float(raw)


class Settings:
    """Application settings loaded from environment variables."""

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Redis / rule cache settings
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    RULE_CACHE_ENABLED: bool = os.getenv("RULE_CACHE_ENABLED", "true").lower() == "true"
    RULE_CACHE_PREFIX: str = os.getenv("RULE_CACHE_PREFIX", "smart_rule_v1")
    RULE_CACHE_DEFAULT_MINUTES: int = int(os.getenv("RULE_CACHE_DEFAULT_MINUTES", "15"))
    ADHOC_CACHE_ENABLED: bool = os.getenv("ADHOC_CACHE_ENABLED", "false").lower() == "true"
    ADHOC_CACHE_TTL_SECONDS: int = int(os.getenv("ADHOC_CACHE_TTL_SECONDS", "300"))

    # Rule execution
    RULE_DEFAULT_LIMIT: int = int(os.getenv("RULE_DEFAULT_LIMIT", "12"))
    RULE_MAX_LIMIT: int = int(os.getenv("RULE_MAX_LIMIT", "50"))
    MANUAL_FALLBACK_LIMIT: int = int(os.getenv("MANUAL_FALLBACK_LIMIT", "8"))
    LOW_STOCK_THRESHOLD: int = int(os.getenv("LOW_STOCK_THRESHOLD", "10"))
    STOCK_STATUS_LOW_BELOW: int = int(os.getenv("STOCK_STATUS_LOW_BELOW", "5"))
    CLEARANCE_MIN_DISCOUNT_PERCENT: float = float(
        os.getenv("CLEARANCE_MIN_DISCOUNT_PERCENT", "10")
    )
    TRENDING_WINDOW_DAYS: int = int(os.getenv("TRENDING_WINDOW_DAYS", "7"))
    DEAD_STOCK_DAYS: int = int(os.getenv("DEAD_STOCK_DAYS", "90"))
    DEAD_STOCK_MIN_QUANTITY: int = int(os.getenv("DEAD_STOCK_MIN_QUANTITY", "5"))
    DEFAULT_CURRENCY: str = os.getenv("DEFAULT_CURRENCY", "INR")

    # Hydration
    SECTION_RESOLVE_TIMEOUT_SECONDS: float | None = _optional_float(
        "SECTION_RESOLVE_TIMEOUT_SECONDS"
    )

    @property
    def is_production(self) -> bool:
        """
        Check if running in production environment.
        """
        return self.ENVIRONMENT.lower() == "production"

    def __init__(self):
        self.debug = os.getenv("DEBUG", "false").lower() == "true"
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        logging.basicConfig(level=self.log_level)
        self.logger = logging.getLogger(__name__)

        self.logger.debug(
            f"Config initialized with environment={self.ENVIRONMENT}, "
            f"debug={self.debug}, log_level={self.log_level}"
        )


# Create a global settings instance for import
settings = Settings()

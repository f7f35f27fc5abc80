"""
Order Service configuration
"""

from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

ORDER_SERVICE_DIR = Path(__file__).parent.parent.parent
ENV_FILE = ORDER_SERVICE_DIR / ".env"


class OrderSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Order Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    SERVICE_NAME: str = "order-service"

    # Stores (required, no default: fail fast at startup)
    ORDER_DATABASE_URL: str
    PRODUCT_DATABASE_URL: str
    EVENTS_DATABASE_URL: str
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 40

    # Event topic (required)
    KAFKA_BOOTSTRAP_SERVERS: str
    ORDER_EVENTS_TOPIC: str
    KAFKA_GROUP_ID: str = "order-events-handler"
    # Run the order-event handler inside this process
    ENABLE_EVENT_CONSUMER: bool = True

    # Timeouts and retries
    STORE_TIMEOUT_SECONDS: float = 5.0
    PUBLISH_TIMEOUT_SECONDS: float = 5.0
    READ_RETRY_ATTEMPTS: int = 3
    READ_RETRY_BASE_DELAY: float = 0.1
    EVENT_WRITE_RETRY_ATTEMPTS: int = 3

    # CORS
    CORS_ORIGINS: List[str] = ["*"]
    CORS_CREDENTIALS: bool = False
    CORS_METHODS: List[str] = ["GET", "POST", "DELETE"]
    CORS_HEADERS: List[str] = ["*"]


_settings_instance = None


def get_settings() -> OrderSettings:
    """Get settings singleton instance"""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = OrderSettings()  # type: ignore[call-arg]
    return _settings_instance

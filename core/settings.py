from typing import Literal

from dotenv import load_dotenv
from pydantic import ConfigDict
from pydantic_settings import BaseSettings

# Load .env file automatically
load_dotenv()


class Settings(BaseSettings):
    """Bridge settings loaded from environment variables."""

    # Host sales database
    DATABASE_URL: str = "sqlite:///:memory:"

    # Store / currency
    BASE_CURRENCY_CODE: str = "KWD"
    KWD_USD_RATE: float = 3.25
    PAYPAL_EXPRESS_METHOD: str = "paypal_express"

    # App settings
    APP_NAME: str = "PayPal USD Bridge"
    DEBUG: bool = False
    ENVIRONMENT: Literal["development", "test", "production"] = "development"
    LOG_LEVEL: str = "INFO"

    # Observability (Optional)
    OTEL_SERVICE_NAME: str = "paypal-usd-bridge"

    model_config = ConfigDict(env_file=".env", case_sensitive=True)

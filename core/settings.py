from typing import Literal

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from payments.errors import ConfigurationError, InvalidItemError
from payments.ledger import normalize_currency

# Load .env file automatically
load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # PayPal credentials
    PAYPAL_CLIENT_ID: str = ""
    PAYPAL_SECRET: str = ""

    # PayPal SDK
    PAYPAL_MODE: Literal["sandbox", "live"] = "sandbox"
    PAYPAL_CURRENCY: str = "USD"
    PAYPAL_HTTP_TIMEOUT: float = 3.0  # seconds

    # PayPal SDK logging
    PAYPAL_LOG_ENABLED: bool = True
    PAYPAL_LOG_LEVEL: Literal["DEBUG", "INFO", "WARN", "ERROR"] = "DEBUG"
    PAYPAL_LOG_FILE: str | None = None

    # Billing plan catalog
    PAYPAL_PLAN_STANDARD: str = ""
    PAYPAL_PLAN_SILVER: str = ""
    PAYPAL_PLAN_GOLD: str = ""
    PAYPAL_PLAN_PLATINUM: str = ""

    # Checkout session
    PAYPAL_TOKEN_TTL: float = 3600  # seconds, 0 disables expiry

    # App settings
    APP_NAME: str = "PayPal Checkout"
    DEBUG: bool = False
    ENVIRONMENT: Literal["development", "production", "test"] = "development"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    @field_validator("PAYPAL_CURRENCY")
    @classmethod
    def check_currency(cls, value: str) -> str:
        """Fail at startup rather than on the first checkout."""
        try:
            return normalize_currency(value)
        except InvalidItemError as e:
            raise ValueError(str(e)) from e

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if not self.PAYPAL_CLIENT_ID or not self.PAYPAL_SECRET:
            raise ConfigurationError(
                "PAYPAL_CLIENT_ID / PAYPAL_SECRET not set; create .env or export the variables"
            )

    @property
    def plans(self) -> dict[str, str]:
        return {
            "standard": self.PAYPAL_PLAN_STANDARD,
            "silver": self.PAYPAL_PLAN_SILVER,
            "gold": self.PAYPAL_PLAN_GOLD,
            "platinum": self.PAYPAL_PLAN_PLATINUM,
        }

    def plan_id(self, name: str) -> str:
        plan_id = self.plans.get(name.lower())
        if not plan_id:
            raise ConfigurationError(f"No billing plan configured for {name!r}")
        return plan_id

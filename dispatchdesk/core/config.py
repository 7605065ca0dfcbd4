import logging
from datetime import date, datetime

import pytz
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class CoreSettings(BaseSettings):
    ENV: str = Field(default="development", validation_alias="APP_ENV")
    LOG_LEVEL: str = "INFO"
    APP_TIMEZONE: str = "America/Chicago"

    ALLOWED_ORIGINS: str = "http://localhost:5173,http://127.0.0.1:5173"

    FULL_LOAD_COMMISSION_RATE: float = 0.01
    PARTIAL_LOAD_COMMISSION_RATE: float = 0.02

    # weekly gross threshold -> bonus amount; JSON object in the environment
    COMPANY_DRIVER_BONUS_TIERS: dict[int, int] = {
        10000: 30,
        11000: 50,
        12000: 70,
        13000: 90,
        14000: 110,
        15000: 150,
    }
    OWNER_OPERATOR_BONUS_TIERS: dict[int, int] = {
        13000: 50,
        15000: 100,
        17000: 150,
    }

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def bonus_tiers(self) -> dict[str, dict[int, int]]:
        return {
            "company_driver": dict(self.COMPANY_DRIVER_BONUS_TIERS),
            "owner_operator": dict(self.OWNER_OPERATOR_BONUS_TIERS),
        }

    @property
    def allowed_origins(self) -> list[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


settings = CoreSettings()


def business_today() -> date:
    """Current calendar date in APP_TIMEZONE."""
    try:
        tz = pytz.timezone(settings.APP_TIMEZONE)
    except pytz.UnknownTimeZoneError:
        logger.warning("config: unknown APP_TIMEZONE=%s, falling back to UTC", settings.APP_TIMEZONE)
        tz = pytz.utc
    return datetime.now(tz).date()

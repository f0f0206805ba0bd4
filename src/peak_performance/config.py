"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    telegram_bot_token: str | None = None
    telegram_chat_id: int | None = None
    default_timezone: str = "UTC"
    default_calorie_intake_goal: int = 2000
    stats_transaction_max_attempts: int = 5
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def notifications_via_telegram(self) -> bool:
        """True when both a bot token and a target chat are configured."""
        return bool(self.telegram_bot_token) and self.telegram_chat_id is not None

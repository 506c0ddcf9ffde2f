from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Core
    ENVIRONMENT: str = Field(default="production")
    LOG_LEVEL: str = Field(default="INFO")
    FIRESTORE_PROJECT_ID: str = Field(default="")
    APP_BASE_URL: str = Field(default="")  # public URL Twilio posts status callbacks to

    # Platform Twilio account (shared by tenants without their own)
    TWILIO_ACCOUNT_SID: str = Field(default="")
    TWILIO_AUTH_TOKEN: str = Field(default="")
    TWILIO_PHONE_NUMBER: str = Field(default="")
    TWILIO_VALIDATE_WEBHOOKS: bool = Field(default=True)
    TWILIO_TIMEOUT_SECONDS: float = Field(default=15.0)

    # SMS
    SMS_DEFAULT_COUNTRY_CODE: str = Field(default="1")  # applied to bare 10-digit numbers
    SMS_MAX_BODY_CHARS: int = Field(default=1600)


settings = Settings()

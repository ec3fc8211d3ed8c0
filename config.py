from __future__ import annotations
import logging
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    DATABASE_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "mousse_and_melts"

    STORE_NAME: str = "Mousse & Melts"
    WHATSAPP_NUMBER: str = "923290033863"

    ADMIN_USERNAME: str = "mnmadmin"
    ADMIN_PASSWORD: str = "change-me"
    LOGIN_DELAY_SECONDS: float = 0.8

    SAVE_INDICATOR_SECONDS: float = 3.0
    NOTIFICATION_DURATION_SECONDS: float = 4.0
    NOTIFICATION_INTERVAL_SECONDS: float = 0.05

    SESSION_COOKIE: str = "mm_session"
    SESSION_TTL_SECONDS: float = 1800.0
    # the session cookie needs credentialed CORS, so origins must be explicit
    CORS_ALLOW_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    LOG_LEVEL: str = "INFO"
    PORT: int = 8000

    @field_validator("CORS_ALLOW_ORIGINS")
    @classmethod
    def no_wildcard_origin(cls, origins: list[str]) -> list[str]:
        if "*" in origins:
            raise ValueError("CORS_ALLOW_ORIGINS cannot contain '*' when sessions use cookies; list the frontend origins")
        return origins

settings = Settings()

def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

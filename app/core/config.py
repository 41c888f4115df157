from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    APP_NAME: str = "TimeTrac"
    APP_ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    DB_URL: str = Field(
        default="sqlite:///./timetrac.db",
        validation_alias=AliasChoices("DATABASE_URL", "DB_URL"),
    )
    # Comma separated; the mobile client runs on :8100 during development.
    CORS_ORIGIN: str = "http://localhost:8100"

    # Deployment-time secret, no usable default.
    JWT_SECRET: str = ""
    TOKEN_TTL_MINUTES: int = Field(default=60 * 24, gt=0)
    BCRYPT_ROUNDS: int = Field(default=12, ge=4, le=31)

    HOST: str = "0.0.0.0"
    PORT: int = 8080
    # Zone that decides what "today" is; empty means the host's local zone.
    # Not read from TZ, which belongs to the C library and may hold POSIX rule strings.
    APP_TZ: str = Field(default="", validation_alias=AliasChoices("APP_TZ"))

    METRICS_ENABLED: bool = True

    DEMO_EMAIL: str = ""
    DEMO_PASSWORD: str = ""

    @property
    def allowed_origins(self) -> list[str]:
        return [item.strip() for item in self.CORS_ORIGIN.split(",") if item.strip()]

    @property
    def demo_account_enabled(self) -> bool:
        return bool(self.DEMO_EMAIL.strip() and self.DEMO_PASSWORD)

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return (value or "INFO").strip().upper()


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return AppSettings()

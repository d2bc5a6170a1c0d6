"""Environment variables read by the Django settings module."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BillingEnv(BaseSettings):
    """Typed view of the process environment.

    Invalid values fail at startup with the variable named.
    """

    secret_key: str = Field(default="insecure-dev-key-change-me", alias="DJANGO_SECRET_KEY")
    debug: bool = Field(default=False, alias="DJANGO_DEBUG")
    allowed_hosts: str = Field(default="*", alias="DJANGO_ALLOWED_HOSTS")

    db_engine: str = Field(default="django.db.backends.sqlite3", alias="DB_ENGINE")
    db_name: str | None = Field(default=None, alias="DB_NAME")
    db_user: str = Field(default="billing", alias="DB_USER")
    db_password: str = Field(default="", alias="DB_PASSWORD")
    db_host: str = Field(default="localhost", alias="DB_HOST")
    db_port: int = Field(default=5432, alias="DB_PORT")

    time_zone: str = Field(default="UTC", alias="TIME_ZONE")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )
    log_json: bool = Field(default=False, alias="LOG_JSON")

    default_rounding_step: int = Field(default=5, ge=1, alias="BILLING_DEFAULT_ROUNDING_STEP")
    default_rounding_mode: Literal["ceil", "floor", "round"] = Field(
        default="ceil", alias="BILLING_DEFAULT_ROUNDING_MODE"
    )
    default_grace_minutes: int = Field(default=0, ge=0, alias="BILLING_DEFAULT_GRACE_MINUTES")

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def is_sqlite(self) -> bool:
        return self.db_engine.endswith("sqlite3")

    @property
    def host_list(self) -> list[str]:
        return [h for h in self.allowed_hosts.split(",") if h]

    def billing_default_rule(self) -> dict:
        return {
            "rounding_step": self.default_rounding_step,
            "rounding_mode": self.default_rounding_mode,
            "grace_minutes": self.default_grace_minutes,
        }


@lru_cache()
def get_env() -> BillingEnv:
    """Return the cached environment."""
    return BillingEnv()

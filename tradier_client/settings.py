"""Centralized client settings powered by Pydantic.

Environment matrix:

| Section | Environment Variable        | Default                   | Purpose                                 |
|---------|-----------------------------|---------------------------|-----------------------------------------|
| API     | `TRADIER_API_TOKEN`         | `""`                      | Bearer token sent with every request    |
| API     | `TRADIER_ENDPOINT`          | `https://api.tradier.com` | REST base URL                           |
| API     | `TRADIER_SANDBOX`           | `false`                   | Route requests to the sandbox host      |
| API     | `TRADIER_ACCOUNT_ID`        | `None`                    | Account selected at client construction |
| HTTP    | `TRADIER_RETRY_LIMIT`       | `3`                       | Default retry budget per logical call   |
| HTTP    | `HTTP_TIMEOUT`              | `10`                      | Transport timeout (seconds)             |
| HTTP    | `HTTP_USER_AGENT`           | `tradier-client/<ver>`    | User-Agent header                       |
| Backoff | `BACKOFF_INITIAL_SEC`       | `0.5`                     | First backoff interval                  |
| Backoff | `BACKOFF_MULTIPLIER`        | `2.0`                     | Interval growth factor                  |
| Backoff | `BACKOFF_JITTER`            | `0.5`                     | Randomization factor (+/- fraction)     |
| Backoff | `BACKOFF_MAX_INTERVAL_SEC`  | `60`                      | Cap for a single interval               |
| Backoff | `BACKOFF_MAX_ELAPSED_SEC`   | `900`                     | Give up retrying after this long        |
| Logging | `LOG_LEVEL`                 | `INFO`                    | Loguru sink level                       |

The settings objects source environment variables when instantiated and are
frozen. Call ``reload_settings()`` after mutating the environment (tests do).
"""

from __future__ import annotations

from pydantic import BaseModel, Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tradier_client import __version__

PRODUCTION_ENDPOINT = "https://api.tradier.com"
SANDBOX_ENDPOINT = "https://sandbox.tradier.com"


class _SettingsBase(BaseSettings):
    """Common configuration for BaseSettings subclasses."""

    model_config = SettingsConfigDict(
        env_prefix="",
        populate_by_name=True,
        extra="ignore",
        case_sensitive=True,
        frozen=True,
    )


def _fallback(value, default, cast):
    if value in (None, ""):
        return default
    try:
        return cast(value)
    except (TypeError, ValueError):
        return default


class ApiSettings(_SettingsBase):
    """Credentials and endpoint selection for the brokerage API."""

    token: str = Field(default="", alias="TRADIER_API_TOKEN")
    endpoint: str = Field(default=PRODUCTION_ENDPOINT, alias="TRADIER_ENDPOINT")
    sandbox: bool = Field(default=False, alias="TRADIER_SANDBOX")
    account_id: str | None = Field(default=None, alias="TRADIER_ACCOUNT_ID")
    user_agent: str = Field(
        default=f"tradier-client/{__version__}", alias="HTTP_USER_AGENT"
    )

    @field_validator("sandbox", mode="before")
    @classmethod
    def _coerce_sandbox(cls, value: bool | str | None) -> bool:
        if isinstance(value, bool):
            return value
        return str(value or "").strip().lower() in {"1", "true", "t", "yes", "y", "on"}

    @computed_field
    @property
    def base_url(self) -> str:
        if self.sandbox and self.endpoint == PRODUCTION_ENDPOINT:
            return SANDBOX_ENDPOINT
        return self.endpoint.rstrip("/")

    @computed_field
    @property
    def has_token(self) -> bool:
        return bool(self.token)


class RetrySettings(_SettingsBase):
    """Retry budget, transport timeout and exponential backoff tuning."""

    retry_limit: int = Field(default=3, alias="TRADIER_RETRY_LIMIT")
    timeout: float = Field(default=10.0, alias="HTTP_TIMEOUT")
    initial_interval: float = Field(default=0.5, alias="BACKOFF_INITIAL_SEC")
    multiplier: float = Field(default=2.0, alias="BACKOFF_MULTIPLIER")
    jitter: float = Field(default=0.5, alias="BACKOFF_JITTER")
    max_interval: float = Field(default=60.0, alias="BACKOFF_MAX_INTERVAL_SEC")
    max_elapsed: float = Field(default=900.0, alias="BACKOFF_MAX_ELAPSED_SEC")

    @field_validator("retry_limit", mode="before")
    @classmethod
    def _coerce_retry_limit(cls, value: int | str | None) -> int:
        return max(0, _fallback(value, 3, int))

    @field_validator("timeout", mode="before")
    @classmethod
    def _coerce_timeout(cls, value: float | str | None) -> float:
        return _fallback(value, 10.0, float)

    @field_validator("initial_interval", mode="before")
    @classmethod
    def _coerce_initial(cls, value: float | str | None) -> float:
        return _fallback(value, 0.5, float)

    @field_validator("multiplier", mode="before")
    @classmethod
    def _coerce_multiplier(cls, value: float | str | None) -> float:
        return _fallback(value, 2.0, float)

    @field_validator("jitter", mode="before")
    @classmethod
    def _coerce_jitter(cls, value: float | str | None) -> float:
        return _fallback(value, 0.5, float)

    @field_validator("max_interval", mode="before")
    @classmethod
    def _coerce_max_interval(cls, value: float | str | None) -> float:
        return _fallback(value, 60.0, float)

    @field_validator("max_elapsed", mode="before")
    @classmethod
    def _coerce_max_elapsed(cls, value: float | str | None) -> float:
        return _fallback(value, 900.0, float)


class LoggingSettings(_SettingsBase):
    level: str = Field(default="INFO", alias="LOG_LEVEL")


class Settings(BaseModel):
    """Aggregate accessor for domain-specific settings."""

    api: ApiSettings = Field(default_factory=ApiSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = {
        "frozen": True,
        "arbitrary_types_allowed": True,
    }


def get_settings() -> Settings:
    """Instantiate settings from the current environment."""
    return Settings()


def reload_settings() -> Settings:
    """Alias for get_settings to maintain a consistent API."""
    return get_settings()


def get_api_settings() -> ApiSettings:
    return get_settings().api


def get_retry_settings() -> RetrySettings:
    return get_settings().retry


def get_logging_settings() -> LoggingSettings:
    return get_settings().logging


__all__ = [
    "Settings",
    "ApiSettings",
    "RetrySettings",
    "LoggingSettings",
    "PRODUCTION_ENDPOINT",
    "SANDBOX_ENDPOINT",
    "get_settings",
    "reload_settings",
    "get_api_settings",
    "get_retry_settings",
    "get_logging_settings",
]

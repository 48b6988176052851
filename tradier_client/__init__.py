import os
from pathlib import Path

from dotenv import load_dotenv

__version__ = "0.4.2"

# Load environment variables early so the API token is available for local runs
load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env")


def _detect_build_version() -> str:
    explicit = os.getenv("APP_VERSION")
    if explicit:
        return explicit
    return __version__


APP_VERSION = _detect_build_version()

from tradier_client.client import TradierClient  # noqa: E402
from tradier_client.core.exceptions import (  # noqa: E402
    ApiError,
    ApiFault,
    DecodeError,
    InputError,
    NoAccountSelectedError,
    OrderRejectedError,
    OrderValidationError,
    QuotaViolationError,
    TradierClientError,
    TransportError,
)
from tradier_client.core.timeutils import DateTime, parse_timestamp  # noqa: E402

__all__ = [
    "__version__",
    "APP_VERSION",
    "TradierClient",
    "DateTime",
    "parse_timestamp",
    "TradierClientError",
    "TransportError",
    "ApiError",
    "ApiFault",
    "QuotaViolationError",
    "DecodeError",
    "InputError",
    "NoAccountSelectedError",
    "OrderValidationError",
    "OrderRejectedError",
]

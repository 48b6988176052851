from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from tradier_client.core.models import FaultInfo

# Fault code Tradier returns when a response would be too large to deliver.
ERR_BODY_BUFFER_OVERFLOW = "protocol.http.TooBigBody"


class TradierClientError(Exception):
    """Base class for all client exceptions."""


class TransportError(TradierClientError):
    """Raised when a request produced no HTTP response (DNS, connect, timeout)."""

    def __init__(self, message: str, *, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause
        self.__cause__ = cause
        self.response = None


class ApiError(TradierClientError):
    """A non-200 HTTP response."""

    def __init__(
        self,
        fault: "FaultInfo",
        *,
        response: Any = None,
        raw_body: str = "",
    ) -> None:
        self.fault = fault
        self.response = response
        self.raw_body = raw_body
        super().__init__(self._describe())

    @property
    def status_code(self) -> int:
        return self.fault.http_status_code

    @property
    def fault_code(self) -> str:
        return self.fault.fault_code

    @property
    def fault_string(self) -> str:
        return self.fault.fault_string

    def _describe(self) -> str:
        text = self.fault.message or self.raw_body
        if self.fault_code:
            return f"{self.status_code} {self.fault_code}: {text}"
        return f"{self.status_code}: {text}"


class ApiFault(ApiError):
    """Structured JSON fault. Terminal: retrying cannot change the answer."""

    @property
    def is_body_too_large(self) -> bool:
        return self.fault_code == ERR_BODY_BUFFER_OVERFLOW


class QuotaViolationError(ApiError):
    """Unstructured error body, treated as a rate-limit rejection and retried."""

    def __init__(
        self,
        fault: "FaultInfo",
        *,
        response: Any = None,
        raw_body: str = "",
        expires_at: Optional[datetime] = None,
    ) -> None:
        self.expires_at = expires_at
        super().__init__(fault, response=response, raw_body=raw_body)


class DecodeError(TradierClientError):
    """Raised when a successful response does not have the expected shape."""


class InputError(TradierClientError, ValueError):
    """Raised for invalid caller input before any request is sent."""


class NoAccountSelectedError(InputError):
    """Account-specific method used without selecting an account first."""

    def __init__(self, message: str = "no account selected") -> None:
        super().__init__(message)


class OrderValidationError(InputError):
    """Raised when an order form has inconsistent class/type/price/stop fields."""


class OrderRejectedError(TradierClientError):
    """Raised when an order endpoint answers 200 but reports a non-ok status."""

    def __init__(self, message: str, *, order_id: Optional[int] = None, status: str = "") -> None:
        super().__init__(message)
        self.order_id = order_id
        self.status = status


__all__ = [
    "ERR_BODY_BUFFER_OVERFLOW",
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

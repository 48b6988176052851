"""Classification of non-200 responses and rate-limit bookkeeping."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

from pydantic import ValidationError

from tradier_client.core.exceptions import ApiError, ApiFault, QuotaViolationError
from tradier_client.core.models import Fault, FaultInfo, RateLimit
from tradier_client.core.timeutils import UNIX_EPOCH, ZERO_TIME, DateTime

QUOTA_VIOLATION_PREFIX = "Quota Violation"

# Header indicating the number of requests remaining.
RATE_LIMIT_AVAILABLE = "X-Ratelimit-Available"
# Header indicating the time at which the rate limit will renew.
RATE_LIMIT_EXPIRY = "X-Ratelimit-Expiry"


def parse_quota_violation_expiration(body: str) -> datetime:
    """
    Extract the resume time from a quota violation message.

    The last whitespace-separated token is a millisecond epoch. Returns
    :data:`ZERO_TIME` when the body is not a parseable quota violation.
    """
    if not body or not body.startswith(QUOTA_VIOLATION_PREFIX):
        return ZERO_TIME
    parts = body.split()
    try:
        return UNIX_EPOCH + timedelta(seconds=int(parts[-1]) // 1000)
    except (ValueError, OverflowError):
        return ZERO_TIME


def classify_error_response(
    status_code: int, body: str, *, response: Any = None
) -> ApiError:
    """
    Turn a non-200 response body into an error.

    A body that decodes as a JSON object, or the JSON literal ``null``, is a
    definitive answer from the API (:class:`ApiFault`, never retried).
    Anything else is taken as a quota violation (:class:`QuotaViolationError`,
    retried).
    """
    text = body or ""
    try:
        if text.strip() == "null":
            fault = FaultInfo()
        else:
            fault = FaultInfo.model_validate_json(text)
    except ValidationError:
        fault = FaultInfo(
            http_status_code=status_code, fault=Fault(faultstring=text)
        )
        return QuotaViolationError(
            fault,
            response=response,
            raw_body=body,
            expires_at=parse_quota_violation_expiration(fault.fault_string),
        )
    fault = fault.model_copy(update={"http_status_code": status_code})
    return ApiFault(fault, response=response, raw_body=body)


def quota_wait(
    expires_at: datetime | None, planned_sleep: float, now: datetime
) -> float | None:
    """
    Seconds until the quota renews plus one, or None when the quota does not
    outlast ``planned_sleep`` and the backoff schedule should decide.
    """
    if expires_at is None:
        return None
    if expires_at > now + timedelta(seconds=max(0.0, planned_sleep)):
        return (expires_at - now).total_seconds() + 1.0
    return None


def rate_limit_from_headers(headers: Mapping[str, str] | None) -> RateLimit:
    """Read the informational rate-limit headers; missing/bad values are None."""
    headers = headers or {}
    available = headers.get(RATE_LIMIT_AVAILABLE)
    expiry = headers.get(RATE_LIMIT_EXPIRY)
    result = RateLimit()
    if available not in (None, ""):
        try:
            result.available = int(available)
        except ValueError:
            pass
    if expiry not in (None, ""):
        try:
            result.expiry = DateTime.from_unix_ms(int(expiry))
        except ValueError:
            pass
    return result


__all__ = [
    "QUOTA_VIOLATION_PREFIX",
    "RATE_LIMIT_AVAILABLE",
    "RATE_LIMIT_EXPIRY",
    "parse_quota_violation_expiration",
    "classify_error_response",
    "quota_wait",
    "rate_limit_from_headers",
]

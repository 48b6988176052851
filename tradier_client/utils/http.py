from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import urlencode

import requests
from loguru import logger

from tradier_client.core.exceptions import ApiFault, TradierClientError, TransportError
from tradier_client.core.models import RateLimit
from tradier_client.core.timeutils import now_utc
from tradier_client.settings import get_api_settings, get_retry_settings
from tradier_client.utils.backoff import STOP, Backoff, ExponentialBackoff
from tradier_client.utils.rate_limit import (
    classify_error_response,
    quota_wait,
    rate_limit_from_headers,
)

FormData = Union[Mapping[str, Any], Sequence[Tuple[str, Any]]]

# ------------------------------------------------------------------------------
# Request description
# ------------------------------------------------------------------------------


@dataclass(frozen=True)
class RequestDescriptor:
    """One logical request. The wire request is rebuilt from it on every attempt."""

    method: str
    url: str
    params: Optional[Mapping[str, Any]] = None
    data: Optional[FormData] = None
    retries: int = 0

    def encoded_body(self) -> Optional[str]:
        if self.data is None:
            return None
        items = self.data.items() if isinstance(self.data, Mapping) else self.data
        return urlencode(list(items), doseq=True)


def _log_http_event(
    log: Any,
    *,
    level: str,
    method: str,
    url: str,
    status: int,
    attempt: int,
    retries: int,
    start_time: float,
    note: str = "",
) -> None:
    latency_ms = round((time.perf_counter() - start_time) * 1000.0, 1)
    log.log(
        level,
        "[http] method={} url={} status={} latency_ms={:.1f} attempt={}/{} {}",
        method,
        url,
        status,
        latency_ms,
        attempt + 1,
        retries + 1,
        note,
    )


# ------------------------------------------------------------------------------
# Executor
# ------------------------------------------------------------------------------


class RequestExecutor:
    """
    Sends signed requests to the API and owns the retry loop.

    - Transport failures (no response) are retried on the backoff schedule.
    - A non-200 whose body decodes as a JSON fault raises :class:`ApiFault`
      at once, whatever the remaining budget.
    - Any other non-200 is a quota violation: retried, waiting until the
      quota renews when the body says when, otherwise on the backoff schedule.

    Backoff state comes from ``backoff_factory`` and is created per call, so
    one executor can serve concurrent callers. ``log`` takes any object with
    loguru's ``log``/``warning`` methods.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        session: requests.Session | None = None,
        timeout: float | None = None,
        retries: int | None = None,
        user_agent: str | None = None,
        backoff_factory: Callable[[], Backoff] | None = None,
        log: Any = None,
    ) -> None:
        api = get_api_settings()
        retry_cfg = get_retry_settings()
        self.token = api.token if token is None else token
        self.session = session or requests.Session()
        self.timeout = retry_cfg.timeout if timeout is None else timeout
        self.retries = max(0, retry_cfg.retry_limit if retries is None else retries)
        self.user_agent = user_agent or api.user_agent
        self.backoff_factory = backoff_factory or (
            lambda: ExponentialBackoff.from_settings(retry_cfg)
        )
        self.log = log or logger
        self.last_rate_limit = RateLimit()

    def headers_for(self, method: str) -> Dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {self.token}",
            "User-Agent": self.user_agent,
        }
        if method != "DELETE":
            headers["Content-Type"] = "application/x-www-form-urlencoded"
        return headers

    def build_request(self, descriptor: RequestDescriptor) -> Dict[str, Any]:
        """Fresh request arguments for one attempt; the body is re-encoded each time."""
        return {
            "method": descriptor.method,
            "url": descriptor.url,
            "params": dict(descriptor.params) if descriptor.params else None,
            "data": descriptor.encoded_body(),
            "headers": self.headers_for(descriptor.method),
        }

    def execute(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        data: Optional[FormData] = None,
        retries: Optional[int] = None,
        stream: bool = False,
    ) -> requests.Response:
        """
        Perform ``method url`` with up to ``retries + 1`` attempts.

        Returns the 200 response. Raises :class:`ApiFault`,
        :class:`QuotaViolationError` or :class:`TransportError`; the error keeps
        the last response (if any) on ``.response``.
        """
        descriptor = RequestDescriptor(
            method=method.upper(),
            url=url,
            params=params,
            data=data,
            retries=self.retries if retries is None else max(0, retries),
        )
        backoff = self.backoff_factory()
        attempt = 0
        sleep_s = 0.0

        while True:
            start_time = time.perf_counter()
            try:
                resp = self.session.request(
                    **self.build_request(descriptor),
                    timeout=self.timeout,
                    stream=stream,
                )
            except requests.RequestException as exc:
                _log_http_event(
                    self.log,
                    level="WARNING",
                    method=descriptor.method,
                    url=url,
                    status=599,
                    attempt=attempt,
                    retries=descriptor.retries,
                    start_time=start_time,
                    note=f"error={exc}",
                )
                error: TradierClientError = TransportError(
                    f"{descriptor.method} {url} failed: {exc}", cause=exc
                )
                sleep_s = backoff.next_backoff()
            else:
                self.last_rate_limit = rate_limit_from_headers(resp.headers)
                if resp.status_code == 200:
                    _log_http_event(
                        self.log,
                        level="DEBUG",
                        method=descriptor.method,
                        url=url,
                        status=resp.status_code,
                        attempt=attempt,
                        retries=descriptor.retries,
                        start_time=start_time,
                        note="ok",
                    )
                    return resp

                body = resp.text
                resp.close()
                outcome = classify_error_response(resp.status_code, body, response=resp)
                if isinstance(outcome, ApiFault):
                    _log_http_event(
                        self.log,
                        level="WARNING",
                        method=descriptor.method,
                        url=url,
                        status=resp.status_code,
                        attempt=attempt,
                        retries=descriptor.retries,
                        start_time=start_time,
                        note=f"fault={outcome.fault_code or '-'}",
                    )
                    raise outcome

                _log_http_event(
                    self.log,
                    level="WARNING",
                    method=descriptor.method,
                    url=url,
                    status=resp.status_code,
                    attempt=attempt,
                    retries=descriptor.retries,
                    start_time=start_time,
                    note="quota",
                )
                error = outcome
                wait = quota_wait(outcome.expires_at, sleep_s, now_utc())
                sleep_s = wait if wait is not None else backoff.next_backoff()

            if attempt >= descriptor.retries:
                raise error
            if sleep_s == STOP:
                self.log.warning(
                    "HTTP {} {}: backoff exhausted after {} attempt(s)",
                    descriptor.method,
                    url,
                    attempt + 1,
                )
                raise error
            self.log.warning(
                "HTTP {} {} -> {}; retry {}/{} in {:.2f}s",
                descriptor.method,
                url,
                error,
                attempt + 1,
                descriptor.retries,
                sleep_s,
            )
            time.sleep(sleep_s)
            attempt += 1


__all__ = ["FormData", "RequestDescriptor", "RequestExecutor"]

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import List

import pytest
import requests

from support.fakes import TOO_BIG_BODY, DummyResponse, DummySession, ListLog
from tradier_client.core.exceptions import ApiFault, QuotaViolationError, TransportError
from tradier_client.utils import http
from tradier_client.utils.backoff import STOP, ConstantBackoff

URL = "https://api.example.test/v1/markets/quotes"
NOW = datetime(2024, 1, 2, 15, 0, tzinfo=timezone.utc)


def _executor(session, *, retries=3, interval=0.25, log=None):
    return http.RequestExecutor(
        "tok",
        session=session,
        retries=retries,
        timeout=5,
        user_agent="tests/1.0",
        backoff_factory=lambda: ConstantBackoff(interval),
        log=log,
    )


@pytest.fixture
def sleeps(monkeypatch) -> List[float]:
    recorded: List[float] = []
    monkeypatch.setattr(http.time, "sleep", lambda s: recorded.append(s))
    monkeypatch.setattr(http, "now_utc", lambda: NOW)
    return recorded


def test_transport_failures_use_full_budget(sleeps):
    session = DummySession([requests.ConnectionError("down")] * 4)

    with pytest.raises(TransportError) as excinfo:
        _executor(session).execute("GET", URL)

    assert len(session.calls) == 4
    assert sleeps == [0.25, 0.25, 0.25]
    assert excinfo.value.response is None
    assert isinstance(excinfo.value.cause, requests.ConnectionError)


def test_transport_failure_then_success(sleeps):
    session = DummySession(
        [requests.Timeout("slow"), DummyResponse(200, {"ok": True})]
    )

    resp = _executor(session).execute("GET", URL, params={"symbols": "SPY"})

    assert resp.json() == {"ok": True}
    assert sleeps == [0.25]
    assert session.calls[0]["params"] == {"symbols": "SPY"}
    assert session.calls[0]["timeout"] == 5


def test_structured_fault_is_not_retried(sleeps):
    failure = DummyResponse(400, text=TOO_BIG_BODY)
    session = DummySession([failure, DummyResponse(200, {})])

    with pytest.raises(ApiFault) as excinfo:
        _executor(session).execute("GET", URL)

    err = excinfo.value
    assert err.is_body_too_large
    assert err.status_code == 400
    assert err.fault_string == "Body buffer overflow"
    assert err.response is failure
    assert failure.closed is True
    assert len(session.calls) == 1
    assert sleeps == []


def test_errors_payload_is_a_fault(sleeps):
    body = '{"errors": {"error": "Invalid Parameter: symbols"}}'
    session = DummySession([DummyResponse(400, text=body)])

    with pytest.raises(ApiFault) as excinfo:
        _executor(session).execute("GET", URL)

    assert "Invalid Parameter: symbols" in str(excinfo.value)
    assert not excinfo.value.is_body_too_large


def test_quota_violation_waits_until_expiry(sleeps):
    resume_ms = int((NOW + timedelta(seconds=10)).timestamp() * 1000)
    session = DummySession(
        [
            DummyResponse(429, text=f"Quota Violation: retry after {resume_ms}"),
            DummyResponse(200, {"ok": True}),
        ]
    )

    resp = _executor(session).execute("GET", URL)

    assert resp.status_code == 200
    assert sleeps == [11.0]


def test_unstructured_error_falls_back_to_backoff(sleeps):
    session = DummySession(
        [
            DummyResponse(502, text="<html>Bad Gateway</html>"),
            DummyResponse(503, text="Service Unavailable"),
            DummyResponse(200, {}),
        ]
    )

    _executor(session).execute("GET", URL)

    assert sleeps == [0.25, 0.25]
    assert len(session.calls) == 3


def test_quota_violation_exhausts_budget(sleeps):
    last = DummyResponse(503, text="Service Unavailable")
    session = DummySession(
        [DummyResponse(503, text="Service Unavailable")] * 2 + [last]
    )

    with pytest.raises(QuotaViolationError) as excinfo:
        _executor(session, retries=2).execute("GET", URL)

    assert len(session.calls) == 3
    assert len(sleeps) == 2
    assert excinfo.value.response is last
    assert excinfo.value.fault_string == "Service Unavailable"


def test_stop_signal_ends_retries_early(sleeps):
    session = DummySession([requests.ConnectionError("down")] * 4)
    log = ListLog()

    with pytest.raises(TransportError):
        _executor(session, interval=STOP, log=log).execute("GET", URL)

    assert len(session.calls) == 1
    assert sleeps == []
    assert any("backoff exhausted" in msg for msg in log.messages("WARNING"))


def test_zero_retries_is_a_single_attempt(sleeps):
    session = DummySession([requests.ConnectionError("down"), DummyResponse(200, {})])

    with pytest.raises(TransportError):
        _executor(session).execute("POST", URL, data={"a": "1"}, retries=0)

    assert len(session.calls) == 1
    assert sleeps == []


def test_body_is_reencoded_on_every_attempt(sleeps):
    session = DummySession([requests.ConnectionError("down"), DummyResponse(200, {})])
    form = [("class", "equity"), ("symbol", "SPY"), ("quantity", "1")]

    _executor(session).execute("POST", URL, data=form)

    assert [call["data"] for call in session.calls] == [
        "class=equity&symbol=SPY&quantity=1",
        "class=equity&symbol=SPY&quantity=1",
    ]


def test_headers_by_method():
    executor = _executor(DummySession([]))

    post = executor.headers_for("POST")
    delete = executor.headers_for("DELETE")

    assert post["Authorization"] == "Bearer tok"
    assert post["Accept"] == "application/json"
    assert post["User-Agent"] == "tests/1.0"
    assert post["Content-Type"] == "application/x-www-form-urlencoded"
    assert "Content-Type" not in delete


def test_backoff_is_created_per_call(sleeps):
    created = []

    def factory():
        created.append(1)
        return ConstantBackoff(0.0)

    session = DummySession([DummyResponse(200, {}), DummyResponse(200, {})])
    executor = http.RequestExecutor(
        "tok", session=session, retries=1, backoff_factory=factory
    )

    executor.execute("GET", URL)
    executor.execute("GET", URL)

    assert len(created) == 2


def test_rate_limit_headers_are_recorded(sleeps):
    headers = {"X-Ratelimit-Available": "118", "X-Ratelimit-Expiry": "1700000060000"}
    session = DummySession([DummyResponse(200, {}, headers=headers)])
    executor = _executor(session)

    executor.execute("GET", URL)

    assert executor.last_rate_limit.available == 118
    assert executor.last_rate_limit.expiry.unix_ms() == 1700000060000


def test_retry_is_logged(sleeps, caplog):
    caplog.set_level(logging.INFO)
    session = DummySession(
        [DummyResponse(500, text="boom"), DummyResponse(200, {"ok": True})]
    )

    _executor(session).execute("GET", URL)

    messages = [record.getMessage() for record in caplog.records]
    assert any(f"method=GET url={URL} status=500" in msg for msg in messages)
    assert any("retry 1/3" in msg for msg in messages)


def test_out_of_range_quota_expiry_uses_backoff(sleeps):
    session = DummySession(
        [
            DummyResponse(429, text="Quota Violation resume at 99999999999999999"),
            DummyResponse(200, {}),
        ]
    )

    resp = _executor(session).execute("GET", URL)

    assert resp.status_code == 200
    assert sleeps == [0.25]


def test_null_error_body_is_not_retried(sleeps):
    session = DummySession([DummyResponse(500, text="null"), DummyResponse(200, {})])

    with pytest.raises(ApiFault) as excinfo:
        _executor(session).execute("GET", URL)

    assert excinfo.value.status_code == 500
    assert len(session.calls) == 1
    assert sleeps == []


@pytest.mark.parametrize(
    "outcome, expected",
    [
        (requests.ConnectionError("down"), TransportError),
        (DummyResponse(429, text="Quota Violation 0"), QuotaViolationError),
    ],
)
def test_single_attempt_raises_its_own_error(sleeps, outcome, expected):
    session = DummySession([outcome])

    with pytest.raises(expected):
        _executor(session, retries=0).execute("GET", URL)

    assert len(session.calls) == 1
    assert sleeps == []

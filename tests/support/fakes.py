from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List


class DummyResponse:
    def __init__(
        self,
        status: int = 200,
        payload: Any = None,
        *,
        text: str | None = None,
        headers: Dict[str, str] | None = None,
        lines: Iterable[str] | None = None,
        url: str = "https://api.example.test",
    ):
        self.status_code = status
        self._payload = payload
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text
        self.headers = headers or {}
        self.lines = list(lines or [])
        self.url = url
        self.closed = False

    def json(self):
        if self._payload is not None:
            return self._payload
        return json.loads(self.text)

    def iter_lines(self, decode_unicode: bool = False):
        yield from self.lines

    def close(self):
        self.closed = True


class DummySession:
    """Stands in for ``requests.Session``; exceptions in ``responses`` are raised."""

    def __init__(self, responses: Iterable[Any]):
        self.responses = list(responses)
        self.calls: List[Dict[str, Any]] = []

    def request(self, **kwargs):
        self.calls.append(kwargs)
        outcome = self.responses.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class ListLog:
    """Minimal loguru-compatible logger that keeps formatted messages."""

    def __init__(self):
        self.records: List[tuple[str, str]] = []

    def log(self, level: str, message: str, *args: Any) -> None:
        self.records.append((level, message.format(*args)))

    def debug(self, message: str, *args: Any) -> None:
        self.log("DEBUG", message, *args)

    def info(self, message: str, *args: Any) -> None:
        self.log("INFO", message, *args)

    def warning(self, message: str, *args: Any) -> None:
        self.log("WARNING", message, *args)

    def error(self, message: str, *args: Any) -> None:
        self.log("ERROR", message, *args)

    def messages(self, level: str | None = None) -> List[str]:
        return [msg for lvl, msg in self.records if level is None or lvl == level]


TOO_BIG_BODY = json.dumps(
    {
        "fault": {
            "faultstring": "Body buffer overflow",
            "detail": {"errorcode": "protocol.http.TooBigBody"},
        }
    }
)

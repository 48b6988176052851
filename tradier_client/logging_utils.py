"""Loguru setup for the client: one stderr sink plus a bridge into stdlib logging."""

from __future__ import annotations

import logging
import os
import sys
from contextlib import contextmanager
from os import PathLike
from typing import Optional, Union

from loguru import logger

from tradier_client import APP_VERSION
from tradier_client.settings import get_logging_settings

_LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | "
    "req={extra[request_id]} | env={extra[environment]} | "
    "ver={extra[service_version]} | {name}:{line} | {message}"
)

_SINK_OPTIONS = {"enqueue": False, "backtrace": False, "diagnose": False}


def _forward_to_stdlib(message) -> None:
    """Re-emit a loguru record through ``logging`` so caplog and stdlib handlers see it."""
    record = message.record
    exc = record["exception"]
    std_record = logging.getLogger(record["name"]).makeRecord(
        record["name"],
        record["level"].no,
        record["file"].path,
        record["line"],
        record["message"],
        (),
        (exc.type, exc.value, exc.traceback) if exc else None,
        func=record["function"],
        extra=dict(record["extra"]),
    )
    logging.getLogger(record["name"]).handle(std_record)


def setup_logging(*, force: bool = False, level: str | None = None) -> None:
    """Install the client's sinks once (or again with ``force``)."""
    if not force and getattr(setup_logging, "_configured", False):
        return

    log_level = (level or get_logging_settings().level or "INFO").upper()

    logger.remove()
    logger.configure(
        extra={
            "request_id": "-",
            "environment": os.getenv("ENV", "local"),
            "service_version": APP_VERSION,
        }
    )
    logger.add(sys.stderr, level=log_level, format=_LOG_FORMAT, **_SINK_OPTIONS)
    logger.add(_forward_to_stdlib, level=log_level, **_SINK_OPTIONS)

    logging.getLogger().setLevel(getattr(logging, log_level, logging.INFO))
    setup_logging._configured = True  # type: ignore[attr-defined]


def setup_test_logging(
    level: Optional[str] = None, *, file: Optional[Union[str, PathLike]] = None
) -> None:
    """Reset sinks for a pytest session; ``file`` adds a log file in the same format."""
    effective_level = (level or os.getenv("PYTEST_LOGLEVEL") or "INFO").upper()
    setup_logging(force=True, level=effective_level)
    if file is not None:
        logger.add(str(file), level=effective_level, format=_LOG_FORMAT, **_SINK_OPTIONS)


@contextmanager
def logging_context(**values: str):
    """Bind structured fields such as ``request_id`` for the enclosed block."""
    with logger.contextualize(**{key: value or "-" for key, value in values.items()}):
        yield


__all__ = ["setup_logging", "setup_test_logging", "logging_context"]

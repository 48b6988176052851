from __future__ import annotations

import os

import pytest

from tradier_client.logging_utils import setup_test_logging

os.environ.setdefault("ENV", "test")

_CLIENT_ENV = (
    "TRADIER_API_TOKEN",
    "TRADIER_ENDPOINT",
    "TRADIER_SANDBOX",
    "TRADIER_ACCOUNT_ID",
    "TRADIER_RETRY_LIMIT",
    "HTTP_TIMEOUT",
    "HTTP_USER_AGENT",
    "BACKOFF_INITIAL_SEC",
    "BACKOFF_MULTIPLIER",
    "BACKOFF_JITTER",
    "BACKOFF_MAX_INTERVAL_SEC",
    "BACKOFF_MAX_ELAPSED_SEC",
)


@pytest.fixture(scope="session", autouse=True)
def configure_logging():
    setup_test_logging(os.getenv("PYTEST_LOGLEVEL", "INFO"))
    yield


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Keep a developer's .env from leaking credentials or accounts into tests."""
    for key in _CLIENT_ENV:
        monkeypatch.delenv(key, raising=False)
    yield

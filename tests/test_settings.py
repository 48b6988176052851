from __future__ import annotations

from tradier_client import __version__
from tradier_client import settings as settings_module


def test_defaults():
    settings = settings_module.reload_settings()

    assert settings.api.base_url == settings_module.PRODUCTION_ENDPOINT
    assert settings.api.has_token is False
    assert settings.api.account_id is None
    assert settings.api.user_agent == f"tradier-client/{__version__}"
    assert settings.retry.retry_limit == 3
    assert settings.retry.timeout == 10.0
    assert settings.retry.max_elapsed == 900.0


def test_sandbox_switches_base_url(monkeypatch):
    monkeypatch.setenv("TRADIER_SANDBOX", "yes")
    monkeypatch.setenv("TRADIER_API_TOKEN", "abc")

    api = settings_module.get_api_settings()

    assert api.base_url == settings_module.SANDBOX_ENDPOINT
    assert api.has_token is True


def test_explicit_endpoint_wins_over_sandbox(monkeypatch):
    monkeypatch.setenv("TRADIER_SANDBOX", "1")
    monkeypatch.setenv("TRADIER_ENDPOINT", "http://localhost:8080/")

    assert settings_module.get_api_settings().base_url == "http://localhost:8080"


def test_invalid_numbers_fall_back(monkeypatch):
    monkeypatch.setenv("TRADIER_RETRY_LIMIT", "many")
    monkeypatch.setenv("HTTP_TIMEOUT", "")
    monkeypatch.setenv("BACKOFF_JITTER", "0.1")

    retry = settings_module.get_retry_settings()

    assert retry.retry_limit == 3
    assert retry.timeout == 10.0
    assert retry.jitter == 0.1


def test_negative_retry_limit_is_clamped(monkeypatch):
    monkeypatch.setenv("TRADIER_RETRY_LIMIT", "-2")
    assert settings_module.get_retry_settings().retry_limit == 0


def test_account_from_env(monkeypatch):
    monkeypatch.setenv("TRADIER_ACCOUNT_ID", "VA000042")
    assert settings_module.get_api_settings().account_id == "VA000042"

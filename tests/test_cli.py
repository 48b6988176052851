from __future__ import annotations

import json

import pytest

from support.fakes import DummyResponse, DummySession
from tradier_client import TradierClient, cli
from tradier_client.utils.backoff import ConstantBackoff


def _client(responses):
    return TradierClient(
        "tok",
        endpoint="https://api.example.test",
        retries=0,
        session=DummySession(responses),
        backoff_factory=lambda: ConstantBackoff(0.0),
    )


def test_quotes_print_json_lines(capsys):
    client = _client(
        [DummyResponse(200, {"quotes": {"quote": [{"symbol": "SPY", "last": 470.1}, {"symbol": "QQQ"}]}})]
    )

    code = cli.main(["quotes", "SPY", "QQQ"], client=client)

    lines = capsys.readouterr().out.splitlines()
    assert code == 0
    assert [json.loads(line)["symbol"] for line in lines] == ["SPY", "QQQ"]


def test_clock(capsys):
    client = _client([DummyResponse(200, {"clock": {"date": "2024-01-02", "state": "open"}})])

    assert cli.main(["clock"], client=client) == 0

    out = json.loads(capsys.readouterr().out)
    assert out["state"] == "open"
    assert out["date"] == "2024-01-02T00:00:00+00:00"


def test_api_errors_exit_non_zero(capsys):
    body = '{"fault": {"faultstring": "Invalid Access Token", "detail": {"errorcode": "keymanagement.service.invalid_access_token"}}}'
    client = _client([DummyResponse(401, text=body)])

    assert cli.main(["quotes", "SPY"], client=client) == 1
    assert "Invalid Access Token" in capsys.readouterr().err


def test_timesales_arguments_use_timestamp_parser():
    args = cli.build_parser().parse_args(
        ["timesales", "SPY", "--interval", "daily", "--start", "2024-01-02", "--end", "1704412800000"]
    )

    assert args.start.unix() == 1704153600
    assert args.end.unix() == 1704412800
    assert args.interval == "daily"


def test_bad_timestamp_is_a_usage_error():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["timesales", "SPY", "--start", "someday"])

from __future__ import annotations

from typing import Any, Dict

import pytest

from tradier_client.core.exceptions import DecodeError
from tradier_client.core.models import Quote, Security
from tradier_client.core.timeutils import DateTime
from tradier_client.dal.normalize import collection, extract, normalize, normalize_payload


def test_single_object_becomes_one_element_list():
    items = normalize(b'{"symbol": "SPY", "exchange": "P"}', Security)

    assert len(items) == 1
    assert items[0].symbol == "SPY"


def test_array_keeps_order():
    items = normalize('[{"symbol": "B"}, {"symbol": "A"}, {"symbol": "C"}]', Security)
    assert [s.symbol for s in items] == ["B", "A", "C"]


def test_empty_array():
    assert normalize("[]", Security) == []


@pytest.mark.parametrize("raw", ['"oops"', "42", "not json"])
def test_other_shapes_raise(raw):
    with pytest.raises(DecodeError):
        normalize(raw, Security)


def test_out_of_range_timestamp_field_is_a_decode_error():
    with pytest.raises(DecodeError):
        normalize('{"symbol": "X", "trade_date": 100000000000000000000}', Quote)


def test_scalar_models():
    assert normalize("5", float) == [5.0]
    assert normalize("[5, 7.5]", float) == [5.0, 7.5]
    dates = normalize_payload(["2024-01-19", "2024-01-26"], DateTime)
    assert [d.day for d in dates] == [19, 26]


def test_extract_handles_missing_and_null_markers():
    payload = {"quotes": {"quote": "null"}, "clock": {"state": "open"}, "x": "text"}

    assert extract(payload, "clock", "state") == "open"
    assert extract(payload, "quotes", "quote") is None
    assert extract(payload, "missing", "quote") is None
    assert extract(payload, "x", "y") is None
    assert extract(None, "quotes") is None


def test_collection_of_quotes():
    one = {"quotes": {"quote": {"symbol": "SPY", "last": 1.0}}}
    many = {"quotes": {"quote": [{"symbol": "SPY"}, {"symbol": "QQQ"}]}}
    empty = {"quotes": "null"}

    assert [q.symbol for q in collection(one, Quote, "quotes", "quote")] == ["SPY"]
    assert [q.symbol for q in collection(many, Quote, "quotes", "quote")] == ["SPY", "QQQ"]
    assert collection(empty, Quote, "quotes", "quote") == []


def test_dict_model_for_untyped_payloads():
    rows = normalize_payload([{"request": "AAPL"}, {"request": "MSFT"}], Dict[str, Any])
    assert [row["request"] for row in rows] == ["AAPL", "MSFT"]

"""
Market event streaming.

A stream session is created first (ordinary retry budget), then the event
stream is opened with a single attempt: once the server starts sending
events a replayed request would duplicate them.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterator, Optional, Sequence, Union

from loguru import logger

from tradier_client.core.exceptions import DecodeError, InputError

STREAM_ENDPOINT = "https://stream.tradier.com/v1/markets/events"


def _join(values: Union[str, Sequence[str]]) -> str:
    return values if isinstance(values, str) else ",".join(values)


def stream_market_events(
    client: Any,
    symbols: Union[str, Sequence[str]],
    filters: Optional[Sequence[str]] = None,
    *,
    url: Optional[str] = None,
) -> Iterator[Dict[str, Any]]:
    """
    Yield decoded market events for ``symbols`` until the server closes.

    Args:
        client (TradierClient): Client used for the session and the stream.
        symbols: Symbols to subscribe to.
        filters: Event types to keep (trade, quote, summary, timesale, tradex).
        url: Stream URL; defaults to the one returned with the session.

    Raises:
        InputError: no symbols given.
        DecodeError: a line is not valid JSON.
    """
    joined = _join(symbols) if symbols else ""
    if not joined:
        raise InputError("at least one symbol is required to stream events")

    session = client.create_stream_session()
    stream_url = url or session.url or STREAM_ENDPOINT
    data = [
        ("sessionid", session.sessionid),
        ("symbols", joined),
        ("linebreak", "true"),
        ("advancedDetails", "true"),
    ]
    if filters:
        data.append(("filter", _join(filters)))

    resp = client.executor.execute(
        "POST", stream_url, data=data, retries=0, stream=True
    )
    logger.info("Streaming {} event(s) for {}", ",".join(filters or []) or "all", joined)
    try:
        for line in resp.iter_lines(decode_unicode=True):
            if not line:
                continue
            try:
                yield json.loads(line)
            except ValueError as exc:
                raise DecodeError(f"invalid stream event {line!r}: {exc}") from exc
    finally:
        resp.close()


__all__ = ["STREAM_ENDPOINT", "stream_market_events"]

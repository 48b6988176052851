"""
Time-series (history/timesales) requests and oversized-range splitting.

Tradier refuses to deliver a response body past a size limit and answers
with the ``protocol.http.TooBigBody`` fault instead. :func:`fetch_with_split`
recovers by bisecting the requested range and fetching each half, recursing
until a half would span less than :data:`MIN_SPLIT_INTERVAL`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

import pandas as pd
from loguru import logger

from tradier_client.core.exceptions import ApiFault, InputError
from tradier_client.core.models import TimeSale
from tradier_client.core.timeutils import (
    DATE_FORMAT,
    DATETIME_FORMAT,
    ET,
    ensure_utc,
    now_utc,
)
from tradier_client.dal.normalize import collection

T = TypeVar("T")

# Smallest range worth splitting; below this the oversized fault is surfaced.
MIN_SPLIT_INTERVAL = timedelta(minutes=1)
# Stand-in for an unset start when computing midpoints (daily history begins here).
EARLIEST_HISTORY = datetime(1980, 1, 1, tzinfo=timezone.utc)


class Interval(str, Enum):
    TICK = "tick"
    MINUTE = "1min"
    FIVE_MINUTES = "5min"
    FIFTEEN_MINUTES = "15min"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @property
    def is_history(self) -> bool:
        return self in (Interval.DAILY, Interval.WEEKLY, Interval.MONTHLY)


@dataclass(frozen=True)
class TimeRange:
    """``[start, end]``; a None start is the beginning of history, a None end is now."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.start is not None:
            object.__setattr__(self, "start", ensure_utc(self.start))
        if self.end is not None:
            object.__setattr__(self, "end", ensure_utc(self.end))
        if self.start is not None and self.end is not None and self.start > self.end:
            raise InputError(f"range start {self.start} is after end {self.end}")

    def effective_start(self) -> datetime:
        return self.start if self.start is not None else EARLIEST_HISTORY

    def effective_end(self, now: Optional[datetime] = None) -> datetime:
        if self.end is not None:
            return self.end
        return ensure_utc(now) if now is not None else now_utc()

    def midpoint(self, now: Optional[datetime] = None) -> datetime:
        return bisect(self.start, self.end, now=now)

    def split(self, middle: datetime) -> Tuple["TimeRange", "TimeRange"]:
        return TimeRange(self.start, middle), TimeRange(middle, self.end)


def bisect(
    start: Optional[datetime], end: Optional[datetime], *, now: Optional[datetime] = None
) -> datetime:
    """Midpoint of ``[start, end]``; an unset end means ``now`` (call time by default)."""
    effective_end = ensure_utc(end) if end is not None else (
        ensure_utc(now) if now is not None else now_utc()
    )
    effective_start = ensure_utc(start) if start is not None else EARLIEST_HISTORY
    return effective_start + (effective_end - effective_start) / 2


def fetch_with_split(
    fetch: Callable[[TimeRange], List[T]],
    time_range: TimeRange,
    *,
    clock: Optional[Callable[[], datetime]] = None,
    min_interval: timedelta = MIN_SPLIT_INTERVAL,
    log: Any = None,
) -> List[T]:
    """
    Call ``fetch(time_range)``; on the oversized-body fault, fetch both halves
    (first, then second, each with its own retry budget) and concatenate them.

    Any other error propagates unchanged. The original fault is re-raised once
    a half would span less than ``min_interval``, so recursion depth is at most
    ``ceil(log2(range / min_interval))``.
    """
    log = log or logger
    try:
        return fetch(time_range)
    except ApiFault as exc:
        if not exc.is_body_too_large:
            raise
        now = (clock or now_utc)()
        middle = time_range.midpoint(now)
        if time_range.effective_end(now) - middle < min_interval:
            log.warning(
                "Range {} -> {} still too large at the split floor; giving up",
                time_range.start,
                time_range.end,
            )
            raise
        log.info(
            "Response too large for {} -> {}; splitting at {}",
            time_range.start,
            time_range.end,
            middle,
        )

    first, second = time_range.split(middle)
    first_half = fetch_with_split(
        fetch, first, clock=clock, min_interval=min_interval, log=log
    )
    second_half = fetch_with_split(
        fetch, second, clock=clock, min_interval=min_interval, log=log
    )
    return first_half + second_half


def time_sales_request(
    base_url: str, symbol: str, interval: Interval, time_range: TimeRange
) -> Tuple[str, Dict[str, str]]:
    """URL and query parameters for one history/timesales request."""
    if interval.is_history:
        url = f"{base_url}/v1/markets/history"
        fmt, tz = DATE_FORMAT, timezone.utc
    else:
        url = f"{base_url}/v1/markets/timesales"
        fmt, tz = DATETIME_FORMAT, ET

    params: Dict[str, str] = {"symbol": symbol, "interval": interval.value}
    if time_range.start is not None:
        params["start"] = time_range.start.astimezone(tz).strftime(fmt)
    if time_range.end is not None:
        params["end"] = time_range.end.astimezone(tz).strftime(fmt)
    return url, params


def decode_time_sales(payload: Any, interval: Interval) -> List[TimeSale]:
    if interval.is_history:
        return collection(payload, TimeSale, "history", "day")
    return collection(payload, TimeSale, "series", "data")


def time_sales_to_frame(sales: List[TimeSale], tz: str = "UTC") -> pd.DataFrame:
    """OHLCV frame indexed by bar time, oldest first."""
    columns = ["timestamp", "open", "high", "low", "close", "volume", "vwap"]
    if not sales:
        return pd.DataFrame(columns=columns).set_index("timestamp")
    raw = [
        {
            "timestamp": sale.at,
            "open": sale.open,
            "high": sale.high,
            "low": sale.low,
            "close": sale.close,
            "volume": sale.volume,
            "vwap": sale.vwap,
        }
        for sale in sales
    ]
    df = pd.DataFrame(raw)
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
    df = df.set_index("timestamp").sort_index()
    if tz:
        df.index = df.index.tz_convert(tz)
    return df


__all__ = [
    "MIN_SPLIT_INTERVAL",
    "EARLIEST_HISTORY",
    "Interval",
    "TimeRange",
    "bisect",
    "fetch_with_split",
    "time_sales_request",
    "decode_time_sales",
    "time_sales_to_frame",
]

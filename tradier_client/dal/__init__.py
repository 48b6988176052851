"""Response decoding and time-series helpers."""

from .normalize import collection, extract, normalize, normalize_payload
from .timesales import (
    Interval,
    TimeRange,
    bisect,
    fetch_with_split,
    time_sales_to_frame,
)

__all__ = [
    "normalize",
    "normalize_payload",
    "extract",
    "collection",
    "Interval",
    "TimeRange",
    "bisect",
    "fetch_with_split",
    "time_sales_to_frame",
]

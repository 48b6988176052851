"""Timestamp parsing for the handful of encodings the API mixes together.

Tradier reports instants as full ISO date-times, bare dates, bare ``hh:mm``
clock times (market calendar sessions) or millisecond epochs (quotes). All of
them decode to :class:`DateTime`, a UTC ``datetime`` that can also be used as
a pydantic field type and as an argparse ``type=``.
"""

from __future__ import annotations

import calendar
import re
import zoneinfo
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic_core import core_schema

# Eastern Timezone aware (handles DST via IANA database)
ET = zoneinfo.ZoneInfo("America/New_York")

UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
# "No known instant"; the earliest representable UTC datetime.
ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)
# Unix seconds of 0000-01-01T00:00:00Z (proleptic Gregorian), the anchor the
# API uses for clock-only values.
ZERO_DATE_UNIX = -62167219200

DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S"
DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"

_INTEGER = re.compile(r"^[+-]?\d+$")


def now_utc() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class DateTime(datetime):
    """UTC instant decoded from one of the API's date/time encodings."""

    #: True for ``hh:mm`` values anchored at the zero date.
    time_only: bool = False

    @classmethod
    def from_datetime(cls, value: datetime) -> "DateTime":
        value = ensure_utc(value)
        return cls(
            value.year,
            value.month,
            value.day,
            value.hour,
            value.minute,
            value.second,
            value.microsecond,
            tzinfo=timezone.utc,
        )

    @classmethod
    def time_of_day(cls, hour: int, minute: int, second: int = 0) -> "DateTime":
        value = cls(1, 1, 1, hour, minute, second, tzinfo=timezone.utc)
        value.time_only = True
        return value

    @classmethod
    def from_unix_ms(cls, ms: int) -> "DateTime":
        try:
            return cls.from_datetime(UNIX_EPOCH + timedelta(milliseconds=ms))
        except OverflowError as exc:
            raise ValueError(f"millisecond timestamp {ms} is out of range") from exc

    @classmethod
    def parse(cls, text: str) -> "DateTime":
        return parse_timestamp(text)

    @classmethod
    def from_json(cls, data: bytes | str) -> "DateTime":
        """Decode a JSON scalar, quoted or not."""
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        return parse_timestamp(data.strip().strip('"'))

    @classmethod
    def coerce(cls, value: Any) -> "DateTime":
        if isinstance(value, DateTime):
            return value
        if isinstance(value, datetime):
            return cls.from_datetime(value)
        if isinstance(value, bool):
            raise ValueError("booleans are not timestamps")
        if isinstance(value, int):
            return cls.from_unix_ms(value)
        if isinstance(value, (bytes, str)):
            return cls.from_json(value)
        raise ValueError(f"cannot interpret {type(value).__name__} as a timestamp")

    @classmethod
    def __get_pydantic_core_schema__(cls, _source: Any, _handler: Any):
        return core_schema.no_info_plain_validator_function(
            cls.coerce,
            serialization=core_schema.plain_serializer_function_ser_schema(
                lambda value: value.isoformat()
            ),
        )

    def unix(self) -> int:
        """Whole seconds since the Unix epoch."""
        if self.time_only:
            return ZERO_DATE_UNIX + self.hour * 3600 + self.minute * 60 + self.second
        return calendar.timegm(self.utctimetuple())

    def unix_ms(self) -> int:
        return self.unix() * 1000 + self.microsecond // 1000


def parse_timestamp(text: str) -> DateTime:
    """
    Parse ``text`` trying, in order: ``YYYY-MM-DDThh:mm:ss`` (UTC),
    ``YYYY-MM-DD`` (midnight UTC), ``hh:mm`` (zero date) and a millisecond
    epoch. The first format that matches wins.

    Raises:
        ValueError: if no format matches.
    """
    raw = (text or "").strip()
    for fmt in (DATETIME_FORMAT, DATE_FORMAT):
        try:
            return DateTime.from_datetime(datetime.strptime(raw, fmt))
        except ValueError:
            continue

    try:
        clock = datetime.strptime(raw, TIME_FORMAT)
    except ValueError:
        pass
    else:
        return DateTime.time_of_day(clock.hour, clock.minute)

    if _INTEGER.match(raw):
        return DateTime.from_unix_ms(int(raw))
    raise ValueError(f"cannot parse {text!r} as a timestamp")


def parse_time_ms(text: str) -> DateTime:
    """Parse a millisecond epoch string, e.g. ``"123456"`` -> 123.456s."""
    raw = (text or "").strip()
    if not _INTEGER.match(raw):
        raise ValueError(f"invalid millisecond timestamp: {text!r}")
    return DateTime.from_unix_ms(int(raw))


__all__ = [
    "ET",
    "UNIX_EPOCH",
    "ZERO_TIME",
    "ZERO_DATE_UNIX",
    "DATETIME_FORMAT",
    "DATE_FORMAT",
    "TIME_FORMAT",
    "DateTime",
    "ensure_utc",
    "now_utc",
    "parse_timestamp",
    "parse_time_ms",
]

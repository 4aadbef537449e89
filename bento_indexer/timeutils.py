"""Conversions between node timestamps and datetimes."""

from __future__ import annotations

from datetime import datetime, timedelta

_EPOCH = datetime(1970, 1, 1)


def timestamp_millis_to_naive_datetime(timestamp_millis: int) -> datetime:
    """Convert a UTC timestamp in milliseconds to a naive UTC datetime.

    Timestamps that cannot be represented, including negative values with
    a sub-second part, fall back to the Unix epoch.
    """
    remainder = timestamp_millis % 1000
    if timestamp_millis < 0 and remainder:
        return _EPOCH
    try:
        return _EPOCH + timedelta(
            seconds=timestamp_millis // 1000, milliseconds=remainder
        )
    except OverflowError:
        return _EPOCH
"""Leaf-level helpers: narrow integer detection and timestamp rendering."""

from __future__ import annotations

from datetime import datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import numpy as np

from reql_ast.constants import NARROW_INT_MAX_BYTES, TIMESTAMP_MILLIS_DIGITS
from reql_ast.errors import ReqlDriverError


def is_narrow_int(value: object) -> bool:
    """Return True for fixed-width signed integers of 32 bits or less."""

    return isinstance(value, np.signedinteger) and value.dtype.itemsize <= NARROW_INT_MAX_BYTES


def resolve_zone(name: str | None) -> tzinfo | None:
    """Return the IANA zone called ``name``; empty means the system default."""

    if name is None or not name.strip():
        return None
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ReqlDriverError("Unknown time zone %r", name) from exc


def format_timestamp(value: datetime, *, local_zone: tzinfo | None = None) -> str:
    """Render ``value`` as ``YYYY-MM-DDTHH:MM:SS.mmm+HH:MM``.

    Naive values are anchored to ``local_zone``, or to the system's default
    time zone when no zone is given. The wall-clock fields are kept as they
    are; only the offset suffix is derived from the zone.
    """

    if value.tzinfo is None or value.utcoffset() is None:
        value = value.replace(tzinfo=local_zone) if local_zone is not None else value.astimezone()

    millis = value.microsecond // 1000
    return (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
        f".{millis:0{TIMESTAMP_MILLIS_DIGITS}d}"
        f"{_format_offset(value.utcoffset())}"
    )


def _format_offset(offset: timedelta | None) -> str:
    total_seconds = int((offset or timedelta()).total_seconds())
    sign = "-" if total_seconds < 0 else "+"
    hours, minutes = divmod(abs(total_seconds) // 60, 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


__all__ = ["format_timestamp", "is_narrow_int", "resolve_zone"]

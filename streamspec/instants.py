from __future__ import annotations

import datetime as dt
from email.utils import parsedate_to_datetime
import math
import time
from typing import Any, Mapping, Sequence

import numpy as np

EPOCH = dt.datetime(1970, 1, 1, tzinfo=dt.timezone.utc)
MINUTE_MS = 60_000

_ONE_MS = dt.timedelta(milliseconds=1)

# Range of instants a `datetime` can represent.
MIN_INSTANT_MS = -62_135_596_800_000
MAX_INSTANT_MS = 253_402_300_799_999


def parse_instant(value: Any) -> int | float:
    """Coerce a temporal field value to epoch milliseconds.

    Numbers are taken as epoch milliseconds already. ``datetime`` values
    without tzinfo are read as UTC. Anything that cannot be parsed is
    instant ``0`` so a single bad row never aborts a render.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, np.integer)):
        return _in_range(int(value))
    if isinstance(value, (float, np.floating)):
        out = float(value)
        return _in_range(out) if math.isfinite(out) else 0
    if isinstance(value, dt.datetime):
        # NaT compares unequal to itself.
        if value != value:
            return 0
        return _datetime_ms(value)
    if isinstance(value, dt.date):
        return _datetime_ms(dt.datetime(value.year, value.month, value.day))
    if isinstance(value, np.datetime64):
        if np.isnat(value):
            return 0
        return _in_range(int(value.astype("datetime64[ms]").astype(np.int64)))
    if isinstance(value, str):
        return _parse_string(value)
    return 0


def instant_array(rows: Sequence[Mapping[str, Any]], field: str) -> np.ndarray:
    return np.fromiter(
        (parse_instant(row.get(field)) for row in rows),
        dtype=np.float64,
        count=len(rows),
    )


def now_ms() -> int:
    return int(time.time() * 1000)


def max_instant(rows: Sequence[Mapping[str, Any]], field: str, *, now: int | None = None) -> int | float:
    if len(rows) == 0:
        return now_ms() if now is None else now
    peak = float(np.max(instant_array(rows, field)))
    if not math.isfinite(peak):
        return now_ms() if now is None else now
    return _as_instant(peak)


def min_instant(rows: Sequence[Mapping[str, Any]], field: str, *, now: int | None = None) -> int | float:
    if len(rows) == 0:
        return now_ms() if now is None else now
    return _as_instant(float(np.min(instant_array(rows, field))))


def to_datetime(instant: int | float) -> dt.datetime:
    """Aware UTC datetime for ``instant``, clamped to the representable range."""
    clamped = min(max(float(instant), MIN_INSTANT_MS), MAX_INSTANT_MS)
    return EPOCH + dt.timedelta(milliseconds=clamped)


def time_mask(min_ms: int | float, max_ms: int | float) -> str:
    """Pick a tick label mask for the visible span (calendar fields read in UTC)."""
    start = to_datetime(min_ms)
    end = to_datetime(max_ms)
    if start.year != end.year:
        return "YY/MM/DD"
    if start.month != end.month:
        return "MM/DD"
    if start.day != end.day:
        return "MM/DD" if abs(start.day - end.day) > 1 else "MM/DD HH:mm:ss"
    return "HH:mm:ss"


def _datetime_ms(value: dt.datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    return int((value - EPOCH) // _ONE_MS)


def _parse_string(raw: str) -> int:
    text = raw.strip()
    if not text:
        return 0
    try:
        return _datetime_ms(dt.datetime.fromisoformat(text))
    except ValueError:
        pass
    try:
        return _datetime_ms(parsedate_to_datetime(text))
    except (TypeError, ValueError, IndexError):
        return 0


def _as_instant(value: float) -> int | float:
    return int(value) if value.is_integer() else value


def _in_range(value: int | float) -> int | float:
    return value if MIN_INSTANT_MS <= value <= MAX_INSTANT_MS else 0

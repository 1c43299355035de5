from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, Sequence

import numpy as np

from streamspec.instants import MINUTE_MS, instant_array, max_instant, parse_instant
from streamspec.spec import Row, Spec, Temporal, Transform


def filter_rows(temporal: Temporal | None, rows: Sequence[Row]) -> Sequence[Row]:
    """Return the rows visible under ``temporal``, in display order.

    The input is never mutated. Without a temporal binding the input object
    itself is returned so callers can skip downstream work on identity.
    """
    if temporal is None:
        return rows
    if temporal.mode == "axis":
        return _filter_axis(temporal, rows)
    if temporal.mode == "frame":
        return _filter_frame(temporal, rows)
    if temporal.key_field is None:
        return rows
    return _filter_key(temporal, rows)


def filter_for_spec(spec: Spec, rows: Sequence[Row]) -> Sequence[Row]:
    return filter_rows(spec.temporal, rows)


def window_bounds(temporal: Temporal, rows: Sequence[Row]) -> tuple[int | float, int | float] | None:
    """Inclusive ``(min, max)`` instants of a finite axis window, else None."""
    minutes = temporal.window_minutes
    if temporal.mode != "axis" or minutes is None:
        return None
    peak = max_instant(rows, temporal.field)
    return (peak - minutes * MINUTE_MS, peak)


def inject_temporal_transforms(spec: Spec, rows: Sequence[Row]) -> Spec:
    """Prepend the temporal filter/sort as renderer transforms.

    For backends that filter through their own transform pipeline rather than
    receiving pre-filtered rows. Predicates are bound to ``rows`` as they are
    now; a later snapshot needs a fresh call.
    """
    temporal = spec.temporal
    if temporal is None:
        return spec

    injected: list[Transform] = []
    field = temporal.field
    if temporal.mode == "axis":
        bounds = window_bounds(temporal, rows)
        if bounds is not None:
            lower, upper = bounds
            injected.append(Transform("filter", {"callback": _between(field, lower, upper)}))
        injected.append(Transform("sortBy", {"fields": [field]}))
    elif temporal.mode == "frame":
        peak = max_instant(rows, field)
        injected.append(Transform("filter", {"callback": _equals(field, peak)}))
    elif temporal.key_field is not None:
        latest = _latest_by_key(temporal.key_field, field, rows)
        injected.append(Transform("filter", {"callback": _is_latest(temporal.key_field, field, latest)}))

    if not injected:
        return spec
    return replace(spec, transforms=(*injected, *spec.transforms))


def _filter_axis(temporal: Temporal, rows: Sequence[Row]) -> list[Row]:
    items = list(rows)
    instants = instant_array(items, temporal.field)
    bounds = window_bounds(temporal, items)
    if bounds is None:
        idx = np.arange(instants.size)
    else:
        lower, upper = bounds
        idx = np.flatnonzero((instants >= lower) & (instants <= upper))
    order = idx[np.argsort(instants[idx], kind="stable")]
    return [items[i] for i in order.tolist()]


def _filter_frame(temporal: Temporal, rows: Sequence[Row]) -> list[Row]:
    items = list(rows)
    instants = instant_array(items, temporal.field)
    peak = max_instant(items, temporal.field)
    return [items[i] for i in np.flatnonzero(instants == peak).tolist()]


def _filter_key(temporal: Temporal, rows: Sequence[Row]) -> list[Row]:
    assert temporal.key_field is not None
    items = list(rows)
    instants = instant_array(items, temporal.field).tolist()
    keys = [_key_of(row, temporal.key_field) for row in items]
    latest: dict[str, float] = {}
    for key, ts in zip(keys, instants):
        prev = latest.get(key)
        if prev is None or ts > prev:
            latest[key] = ts
    # Every row sharing its key's latest instant survives; ties are not broken.
    return [row for row, key, ts in zip(items, keys, instants) if latest[key] == ts]


def _latest_by_key(key_field: str, field: str, rows: Sequence[Row]) -> dict[str, int | float]:
    latest: dict[str, int | float] = {}
    for row in rows:
        key = _key_of(row, key_field)
        ts = parse_instant(row.get(field))
        prev = latest.get(key)
        if prev is None or ts > prev:
            latest[key] = ts
    return latest


def _key_of(row: Row, key_field: str) -> str:
    value = row.get(key_field)
    return "" if value is None else str(value)


def _between(field: str, lower: int | float, upper: int | float) -> Callable[[Row], bool]:
    def predicate(row: Row) -> bool:
        ts = parse_instant(row.get(field))
        return lower <= ts <= upper

    return predicate


def _equals(field: str, target: int | float) -> Callable[[Row], bool]:
    def predicate(row: Row) -> bool:
        return parse_instant(row.get(field)) == target

    return predicate


def _is_latest(key_field: str, field: str, latest: dict[str, Any]) -> Callable[[Row], bool]:
    def predicate(row: Row) -> bool:
        return latest.get(_key_of(row, key_field)) == parse_instant(row.get(field))

    return predicate

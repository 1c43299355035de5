from __future__ import annotations

from typing import AbstractSet, Sequence

from streamspec.instants import parse_instant, to_datetime
from streamspec.spec import Row, Spec
from streamspec.translate import mark_scales


def collect_time_fields(spec: Spec) -> set[str]:
    """Field names whose values must become instants before rendering.

    Fields encoded to a ``time``-typed channel are collected, together with
    the temporal field. A temporal field that any mark encodes to a
    ``band``-typed channel is left alone (interval marks count ``ordinal``
    as band): turning it into instants would make the renderer replace the
    band scale with a time scale.
    """
    time_fields: set[str] = set()
    banded: set[str] = set()
    temporal_field = spec.temporal.field if spec.temporal is not None else None

    for mark in spec.marks:
        scales = mark_scales(mark, spec.scales)
        for channel, scale in scales.items():
            if scale.type != "time":
                continue
            name = mark.channel_field(channel)
            if name is not None:
                time_fields.add(name)
        if temporal_field is not None:
            for channel in mark.channels_for(temporal_field):
                scale = scales.get(channel)
                if scale is not None and scale.type == "band":
                    banded.add(temporal_field)

    if temporal_field is not None:
        if temporal_field in banded:
            time_fields.discard(temporal_field)
        else:
            time_fields.add(temporal_field)
    return time_fields


def coerce_time_fields(rows: Sequence[Row], fields: AbstractSet[str]) -> Sequence[Row]:
    """Copy ``rows`` with every present value of ``fields`` turned into an instant."""
    if not fields or len(rows) == 0:
        return rows
    out: list[Row] = []
    for row in rows:
        copy = dict(row)
        for name in fields:
            value = copy.get(name)
            if value is not None:
                copy[name] = to_datetime(parse_instant(value))
        out.append(copy)
    return out

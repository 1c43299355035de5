from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from streamspec.coerce import coerce_time_fields, collect_time_fields
from streamspec.instants import MINUTE_MS, max_instant, min_instant, time_mask, to_datetime
from streamspec.spec import Row, Spec, ensure_spec
from streamspec.temporal import filter_rows
from streamspec.theme import theme_config_from_tokens
from streamspec.translate import INTERVAL_MARK, spec_tokens, translate

LOGGER = logging.getLogger(__name__)


def build_options(spec: Spec | Mapping[str, Any], rows: Sequence[Row]) -> dict[str, Any]:
    """Run filter, coercion, translation and theming for one data snapshot.

    The result is handed to the renderer unmodified. Rows are attached at the
    root for the children to inherit; annotation children keep their own data.
    """
    spec = ensure_spec(spec)
    visible = filter_rows(spec.temporal, rows)
    visible = coerce_time_fields(visible, collect_time_fields(spec))

    options = translate(spec)
    options["theme"] = theme_config_from_tokens(spec_tokens(spec))
    options["data"] = list(visible)

    if spec.temporal is not None and spec.temporal.mode == "axis" and len(visible) > 0:
        _attach_sliding_domain(spec, options, visible)
    LOGGER.debug("built options: %d of %d rows visible", len(visible), len(rows))
    return options


def sliding_domain(spec: Spec, visible: Sequence[Row]) -> tuple[int | float, int | float, str] | None:
    """``(domain_min, domain_max, mask)`` for the axis-mode visible window."""
    temporal = spec.temporal
    if temporal is None or temporal.mode != "axis" or len(visible) == 0:
        return None
    upper = max_instant(visible, temporal.field)
    minutes = temporal.window_minutes
    if minutes is not None:
        lower = upper - minutes * MINUTE_MS
    else:
        lower = min_instant(visible, temporal.field)
    mask = _declared_mask(spec) or time_mask(lower, upper)
    return (lower, upper, mask)


def _attach_sliding_domain(spec: Spec, options: dict[str, Any], visible: Sequence[Row]) -> None:
    domain = sliding_domain(spec, visible)
    assert domain is not None and spec.temporal is not None
    lower, upper, mask = domain
    time_field = spec.temporal.field

    for child in options.get("children", []):
        if child.get("type") == INTERVAL_MARK:
            continue
        encode = child.get("encode") or {}
        if encode.get("x") == time_field:
            channel = "x"
        elif encode.get("y") == time_field:
            channel = "y"
        else:
            continue
        scale = child.setdefault("scale", {})
        declared = spec.scales.get(channel)
        existing_type = scale.get(channel, {}).get("type") or (declared.type if declared is not None else None)
        if existing_type == "band":
            continue
        scale[channel] = {
            **scale.get(channel, {}),
            "type": "time",
            "domainMin": to_datetime(lower),
            "domainMax": to_datetime(upper),
            "mask": mask,
        }


def _declared_mask(spec: Spec) -> str | None:
    for channel in ("x", "y"):
        scale = spec.scales.get(channel)
        if scale is not None and scale.mask:
            return scale.mask
    return None

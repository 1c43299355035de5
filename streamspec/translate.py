from __future__ import annotations

from dataclasses import replace
from typing import Any, Mapping, TypeVar

from streamspec.spec import (
    Annotation,
    AxisChannel,
    Axes,
    Coordinate,
    Interaction,
    Label,
    Legend,
    Mark,
    Scale,
    Spec,
    ensure_spec,
    merge_scales,
)
from streamspec.theme import ThemeTokens, theme_tokens, validate_theme_tokens

INTERVAL_MARK = "interval"
CONTINUOUS_SCALE_TYPES: tuple[str, ...] = ("linear", "time", "log", "pow", "sqrt")
DISCRETE_SCALE_TYPES: tuple[str, ...] = ("band", "ordinal", "point")

_T = TypeVar("_T")


def spec_tokens(spec: Spec) -> ThemeTokens:
    return validate_theme_tokens(theme_tokens(spec.theme), spec.theme_overrides)


def translate(spec: Spec | Mapping[str, Any]) -> dict[str, Any]:
    """Compile a spec into the renderer's configuration tree.

    Data independent and side-effect free: the same spec always yields an
    equal tree. Children are the marks in order, then the annotations.
    """
    spec = ensure_spec(spec)
    colors = spec_tokens(spec)
    out: dict[str, Any] = {"type": "view"}

    transpose = spec.coordinate is None and needs_transpose(spec)
    if spec.coordinate is not None:
        out["coordinate"] = translate_coordinate(spec.coordinate)
    elif transpose:
        out["coordinate"] = {"transform": [{"type": "transpose"}]}

    if spec.axes is not None:
        out["axis"] = translate_axes(spec.axes.swapped() if transpose else spec.axes, colors)

    if spec.legend is not None:
        out["legend"] = False if spec.legend is False else translate_legend(spec.legend, colors)

    if spec.tooltip is not None:
        out["tooltip"] = False if spec.tooltip is False else spec.tooltip.to_config()

    if spec.interactions:
        out["interaction"] = translate_interactions(spec.interactions)

    children: list[dict[str, Any]] = []
    for mark in spec.marks:
        if transpose and mark.type == INTERVAL_MARK:
            swapped = replace(mark, encode=_swap_xy(mark.encode), scales=_swap_xy(mark.scales))
            children.append(translate_mark(swapped, spec, spec_scales=_swap_xy(spec.scales)))
        else:
            children.append(translate_mark(mark, spec))
    children.extend(translate_annotation(annotation) for annotation in spec.annotations)
    out["children"] = children
    return out


def translate_mark(mark: Mark, spec: Spec, *, spec_scales: Mapping[str, Scale] | None = None) -> dict[str, Any]:
    child: dict[str, Any] = {"type": mark.type}

    if mark.encode:
        child["encode"] = {channel: value.to_config() for channel, value in mark.encode.items()}

    scales = mark_scales(mark, spec.scales if spec_scales is None else spec_scales)
    if scales:
        child["scale"] = {channel: scale.to_config() for channel, scale in scales.items()}

    transforms = (*spec.transforms, *mark.transforms)
    if transforms:
        child["transform"] = [t.to_config() for t in transforms]

    if mark.style is not None:
        child["style"] = dict(mark.style)

    if mark.labels is not None:
        child["labels"] = [translate_label(label) for label in mark.labels]

    if mark.tooltip is not None:
        child["tooltip"] = False if mark.tooltip is False else mark.tooltip.to_config()

    animate = mark.animate if mark.animate is not None else spec.animate
    if animate is not None:
        child["animate"] = animate

    return child


def mark_scales(mark: Mark, spec_scales: Mapping[str, Scale] | None) -> dict[str, Scale]:
    """Scales as the renderer sees them for ``mark``: merged, then promoted."""
    scales = merge_scales(spec_scales, mark.scales)
    if mark.type == INTERVAL_MARK:
        # Interval bandwidth is only defined on band scales.
        scales = {
            channel: scale.with_type("band") if scale.type == "ordinal" else scale
            for channel, scale in scales.items()
        }
    return scales


def translate_label(label: Label) -> dict[str, Any]:
    out: dict[str, Any] = dict(label.options)
    if label.text is not None:
        out["text"] = label.text.to_config()
    if label.format is not None:
        out["format"] = label.format
    if label.selector is not None:
        out["selector"] = label.selector
    if label.style is not None:
        out["style"] = dict(label.style)
    if label.overlap_hide:
        out["transform"] = [{"type": "overlapHide"}]
    return out


def translate_annotation(annotation: Annotation) -> dict[str, Any]:
    child: dict[str, Any] = {"type": annotation.type}
    if annotation.encode:
        child["encode"] = {channel: value.to_config() for channel, value in annotation.encode.items()}
    if annotation.style is not None:
        child["style"] = dict(annotation.style)
    if annotation.value is not None:
        child["data"] = [annotation.value]
    if annotation.label is not None:
        child["labels"] = [{"text": annotation.label}]
    return child


def translate_coordinate(coordinate: Coordinate) -> dict[str, Any]:
    out: dict[str, Any] = dict(coordinate.options)
    if coordinate.type is not None:
        out["type"] = coordinate.type
    if coordinate.transforms:
        out["transform"] = [t.to_config() for t in coordinate.transforms]
    return out


def translate_axes(axes: Axes, colors: ThemeTokens) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for channel, value in (("x", axes.x), ("y", axes.y)):
        if value is None:
            continue
        out[channel] = False if value is False else translate_axis_channel(value, colors)
    return out


def translate_axis_channel(axis: AxisChannel, colors: ThemeTokens) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if axis.title is not None:
        out["title"] = axis.title
        out["titleFill"] = colors.text
        out["titleFillOpacity"] = 1
    if axis.grid is not None:
        out["grid"] = axis.grid
        out["gridStroke"] = colors.gridline
        out["gridStrokeOpacity"] = 1
    if axis.line is not None:
        out["line"] = axis.line
        out["lineStroke"] = colors.line
        out["lineStrokeOpacity"] = 1

    # Ticks and labels are always colored from the theme, requested or not.
    out["tick"] = True
    out["tickStroke"] = colors.line
    out["tickStrokeOpacity"] = 1
    out["labelFill"] = colors.text
    out["labelFillOpacity"] = 1

    labels = axis.labels
    if labels is not None:
        if labels.format is not None:
            out["labelFormatter"] = labels.format
        if labels.rotate is not None:
            out["labelTransform"] = [{"type": "rotate", "angle": labels.rotate}]
        if labels.max_length is not None:
            out["labelAutoEllipsis"] = {"type": "ellipsis", "maxLength": labels.max_length}
    return out


def translate_legend(legend: Legend, colors: ThemeTokens) -> dict[str, Any]:
    color: dict[str, Any] = {}
    if legend.position is not None:
        color["position"] = legend.position
    color.update(
        {
            "itemLabelFill": colors.text,
            "itemLabelFillOpacity": 1,
            "itemNameFill": colors.text,
            "itemNameFillOpacity": 1,
            "titleFill": colors.text,
            "titleFillOpacity": 1,
            "itemLabel": {"fill": colors.text, "fillOpacity": 1, "fontSize": 12},
            "itemName": {"fill": colors.text, "fillOpacity": 1, "fontSize": 12},
        }
    )
    return {"color": color}


def translate_interactions(interactions: tuple[Interaction, ...]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for interaction in interactions:
        out[interaction.type] = dict(interaction.options)
    return out


def needs_transpose(spec: Spec) -> bool:
    """True when an interval mark reads as a horizontal bar (continuous x, discrete y)."""
    for mark in spec.marks:
        if mark.type != INTERVAL_MARK:
            continue
        scales = merge_scales(spec.scales, mark.scales)
        x_type = _scale_type(scales.get("x")) or "linear"
        y_type = _scale_type(scales.get("y")) or "linear"
        if x_type in CONTINUOUS_SCALE_TYPES and y_type in DISCRETE_SCALE_TYPES:
            return True
    return False


def _scale_type(scale: Scale | None) -> str | None:
    return None if scale is None else scale.type


def _swap_xy(mapping: Mapping[str, _T]) -> dict[str, _T]:
    out = {k: v for k, v in mapping.items() if k not in ("x", "y")}
    if "y" in mapping:
        out["x"] = mapping["y"]
    if "x" in mapping:
        out["y"] = mapping["x"]
    return out

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from streamspec.spec import (
    DEFAULT_MAX_ITEMS,
    TEMPORAL_MODES,
    AxisChannel,
    Axes,
    Coordinate,
    FieldRef,
    Label,
    Legend,
    Mark,
    Scale,
    Spec,
    Streaming,
    Temporal,
    Transform,
)


@dataclass(frozen=True)
class TemporalConfig:
    mode: Literal["axis", "frame", "key"]
    field: str = ""
    range: float | str | None = None
    key_field: str | None = None

    def __post_init__(self) -> None:
        if self.mode not in TEMPORAL_MODES:
            raise ValueError(f"Unsupported temporal mode: {self.mode}")


@dataclass(frozen=True)
class TimeSeriesConfig:
    chart_type: Literal["line", "area"]
    x_axis: str
    y_axis: str
    color: str | None = None
    x_title: str | None = None
    y_title: str | None = None
    y_min: float | None = None
    y_max: float | None = None
    data_label: bool = False
    show_all: bool = True
    legend: bool = True
    gridlines: bool = True
    points: bool = False
    line_style: Literal["curve", "straight"] = "straight"
    x_format: str | None = None
    temporal: TemporalConfig | None = None
    max_items: int | None = None

    def __post_init__(self) -> None:
        if self.chart_type not in ("line", "area"):
            raise ValueError(f"Unsupported time series chart type: {self.chart_type}")
        if not self.x_axis.strip() or not self.y_axis.strip():
            raise ValueError("TimeSeriesConfig.x_axis and y_axis must be non-empty")


@dataclass(frozen=True)
class BarColumnConfig:
    chart_type: Literal["bar", "column"]
    x_axis: str
    y_axis: str
    color: str | None = None
    group_type: Literal["stack", "dodge"] = "stack"
    x_title: str | None = None
    y_title: str | None = None
    data_label: bool = False
    legend: bool = True
    gridlines: bool = True
    temporal: TemporalConfig | None = None
    max_items: int | None = None

    def __post_init__(self) -> None:
        if self.chart_type not in ("bar", "column"):
            raise ValueError(f"Unsupported bar chart type: {self.chart_type}")
        if self.group_type not in ("stack", "dodge"):
            raise ValueError(f"Unsupported group type: {self.group_type}")
        if not self.x_axis.strip() or not self.y_axis.strip():
            raise ValueError("BarColumnConfig.x_axis and y_axis must be non-empty")


def compile_time_series_config(config: TimeSeriesConfig, theme: str = "dark") -> Spec:
    encode = _xy_encode(config.x_axis, config.y_axis, config.color)

    style: dict[str, object] = {"connect": True}
    if config.chart_type == "line":
        style["shape"] = "smooth" if config.line_style == "curve" else "line"
    elif config.line_style == "curve":
        style["shape"] = "smooth"

    labels = None
    if config.data_label:
        labels = (
            Label(
                text=FieldRef(config.y_axis),
                overlap_hide=True,
                selector=None if config.show_all else "last",
            ),
        )

    marks = [Mark(type=config.chart_type, encode=encode, style=style, labels=labels)]
    if config.points:
        marks.append(Mark(type="point", encode=dict(encode), tooltip=False))

    transforms: tuple[Transform, ...] = ()
    if config.chart_type == "area" and config.color:
        transforms = (Transform("stackY"),)

    y_domain = None
    if config.y_min is not None and config.y_max is not None:
        y_domain = (config.y_min, config.y_max)

    return Spec(
        marks=tuple(marks),
        scales={
            "x": Scale(type="time", mask=config.x_format),
            "y": Scale(type="linear", nice=True, domain=y_domain),
        },
        transforms=transforms,
        temporal=_map_temporal(config.temporal, config.x_axis),
        streaming=Streaming(max_items=config.max_items or DEFAULT_MAX_ITEMS),
        axes=_default_axes(config.x_title, config.y_title, config.gridlines),
        legend=Legend(position="bottom", interactive=True) if config.legend else False,
        theme=theme,
        animate=False,
    )


def compile_bar_column_config(config: BarColumnConfig, theme: str = "dark") -> Spec:
    # x is the category axis (band); bars flip it with a transpose.
    labels = None
    if config.data_label:
        labels = (Label(text=FieldRef(config.y_axis), overlap_hide=True),)
    mark = Mark(
        type="interval",
        encode=_xy_encode(config.x_axis, config.y_axis, config.color),
        labels=labels,
    )

    transforms: tuple[Transform, ...] = ()
    if config.color:
        transforms = (Transform("stackY" if config.group_type == "stack" else "dodgeX"),)

    coordinate = None
    if config.chart_type == "bar":
        coordinate = Coordinate(transforms=(Transform("transpose"),))

    return Spec(
        marks=(mark,),
        scales={
            "x": Scale(type="band", padding=0.5),
            "y": Scale(type="linear", nice=True),
        },
        transforms=transforms,
        coordinate=coordinate,
        temporal=_map_temporal(config.temporal, config.x_axis),
        streaming=Streaming(max_items=config.max_items or DEFAULT_MAX_ITEMS),
        axes=_default_axes(config.x_title, config.y_title, config.gridlines),
        legend=Legend(position="bottom", interactive=True) if config.legend else False,
        theme=theme,
        animate=False,
    )


def _xy_encode(x: str, y: str, color: str | None) -> dict[str, FieldRef]:
    encode = {"x": FieldRef(x), "y": FieldRef(y)}
    if color:
        encode["color"] = FieldRef(color)
    return encode


def _map_temporal(temporal: TemporalConfig | None, default_field: str) -> Temporal | None:
    if temporal is None:
        return None
    return Temporal(
        mode=temporal.mode,
        field=temporal.field or default_field,
        range=temporal.range,
        key_field=temporal.key_field,
    )


def _default_axes(x_title: str | None, y_title: str | None, gridlines: bool) -> Axes:
    return Axes(
        x=AxisChannel(title=x_title or False, grid=False),
        y=AxisChannel(title=y_title or False, grid=gridlines),
    )

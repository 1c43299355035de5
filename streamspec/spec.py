from __future__ import annotations

from dataclasses import dataclass, field, replace
import math
from typing import Any, Callable, Literal, Mapping, Union

from streamspec.errors import SpecError

Row = Mapping[str, Any]
TemporalMode = Literal["axis", "frame", "key"]
StreamingMode = Literal["append", "replace"]

TEMPORAL_MODES: tuple[str, ...] = ("axis", "frame", "key")
STREAMING_MODES: tuple[str, ...] = ("append", "replace")
THEME_NAMES: tuple[str, ...] = ("dark", "light")
UNBOUNDED = "Infinity"
DEFAULT_MAX_ITEMS = 1000


@dataclass(frozen=True)
class FieldRef:
    name: str

    def __post_init__(self) -> None:
        if not isinstance(self.name, str):
            raise ValueError("FieldRef.name must be a string")

    def resolve(self, row: Row) -> Any:
        return row.get(self.name)

    def to_config(self) -> Any:
        return self.name


@dataclass(frozen=True)
class Accessor:
    fn: Callable[[Row], Any]

    def __post_init__(self) -> None:
        if not callable(self.fn):
            raise ValueError("Accessor.fn must be callable")

    def resolve(self, row: Row) -> Any:
        return self.fn(row)

    def to_config(self) -> Any:
        return self.fn


Field = Union[FieldRef, Accessor]


def as_field(value: Any, path: str = "field") -> Field:
    if isinstance(value, (FieldRef, Accessor)):
        return value
    if isinstance(value, str):
        return FieldRef(value)
    if callable(value):
        return Accessor(value)
    raise SpecError(f"{path} must be a field name or a callable")


def field_name(value: Field | None) -> str | None:
    if isinstance(value, FieldRef):
        return value.name
    return None


@dataclass(frozen=True)
class Scale:
    type: str | None = None
    domain: tuple[Any, ...] | None = None
    range: tuple[Any, ...] | None = None
    nice: bool | None = None
    clamp: bool | None = None
    padding: float | None = None
    mask: str | None = None
    options: Mapping[str, Any] = field(default_factory=dict)

    def with_type(self, scale_type: str) -> "Scale":
        return replace(self, type=scale_type)

    def to_config(self) -> dict[str, Any]:
        out: dict[str, Any] = dict(self.options)
        if self.type is not None:
            out["type"] = self.type
        if self.domain is not None:
            out["domain"] = list(self.domain)
        if self.range is not None:
            out["range"] = list(self.range)
        if self.nice is not None:
            out["nice"] = self.nice
        if self.clamp is not None:
            out["clamp"] = self.clamp
        if self.padding is not None:
            out["padding"] = self.padding
        if self.mask is not None:
            out["mask"] = self.mask
        return out


def merge_scales(
    base: Mapping[str, Scale] | None,
    override: Mapping[str, Scale] | None,
) -> dict[str, Scale]:
    # Shallow per-channel merge: an override replaces the whole channel entry.
    return {**(base or {}), **(override or {})}


@dataclass(frozen=True)
class Transform:
    type: str
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.type, str) or not self.type.strip():
            raise ValueError("Transform.type must be a non-empty string")

    def to_config(self) -> dict[str, Any]:
        return {"type": self.type, **self.options}


@dataclass(frozen=True)
class Coordinate:
    type: str | None = None
    transforms: tuple[Transform, ...] = ()
    options: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AxisLabels:
    format: str | Callable[[Any], str] | None = None
    rotate: float | None = None
    max_length: int | None = None


@dataclass(frozen=True)
class AxisChannel:
    title: str | Literal[False] | None = None
    grid: bool | None = None
    line: bool | None = None
    labels: AxisLabels | None = None


@dataclass(frozen=True)
class Axes:
    x: AxisChannel | Literal[False] | None = None
    y: AxisChannel | Literal[False] | None = None

    def swapped(self) -> "Axes":
        return Axes(x=self.y, y=self.x)


@dataclass(frozen=True)
class Legend:
    position: Literal["top", "bottom", "left", "right"] | None = None
    interactive: bool | None = None


@dataclass(frozen=True)
class TooltipItem:
    field: str
    name: str | None = None
    format: Callable[[Any], str] | None = None

    def to_config(self) -> dict[str, Any]:
        out: dict[str, Any] = {"field": self.field}
        if self.name is not None:
            out["name"] = self.name
        if self.format is not None:
            out["format"] = self.format
        return out


@dataclass(frozen=True)
class Tooltip:
    title: str | Callable[[Row], str] | None = None
    items: tuple[TooltipItem, ...] | None = None

    def to_config(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.title is not None:
            out["title"] = self.title
        if self.items is not None:
            out["items"] = [item.to_config() for item in self.items]
        return out


@dataclass(frozen=True)
class Label:
    text: Field | None = None
    format: str | Callable[[Any], str] | None = None
    overlap_hide: bool = False
    selector: str | None = None
    style: Mapping[str, Any] | None = None
    options: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Mark:
    type: str
    encode: Mapping[str, Field] = field(default_factory=dict)
    scales: Mapping[str, Scale] = field(default_factory=dict)
    transforms: tuple[Transform, ...] = ()
    style: Mapping[str, Any] | None = None
    labels: tuple[Label, ...] | None = None
    tooltip: Tooltip | Literal[False] | None = None
    animate: bool | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.type, str) or not self.type.strip():
            raise ValueError("Mark.type must be a non-empty string")

    def channel_field(self, channel: str) -> str | None:
        return field_name(self.encode.get(channel))

    def channels_for(self, name: str) -> tuple[str, ...]:
        return tuple(channel for channel, value in self.encode.items() if field_name(value) == name)


@dataclass(frozen=True)
class Annotation:
    type: str
    value: Any = None
    style: Mapping[str, Any] | None = None
    label: str | None = None
    encode: Mapping[str, Field] | None = None


@dataclass(frozen=True)
class Interaction:
    type: str
    options: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Temporal:
    mode: TemporalMode
    field: str
    range: float | str | None = None
    key_field: str | None = None

    def __post_init__(self) -> None:
        if self.mode not in TEMPORAL_MODES:
            raise ValueError(f"Unsupported temporal mode: {self.mode}")
        if not isinstance(self.field, str) or not self.field.strip():
            raise ValueError("Temporal.field must be a non-empty string")
        if isinstance(self.range, str):
            if self.range != UNBOUNDED:
                raise ValueError(f"Temporal.range must be a number or {UNBOUNDED!r}")
        elif self.range is not None:
            if isinstance(self.range, bool) or not isinstance(self.range, (int, float)):
                raise ValueError("Temporal.range must be a number of minutes")
            if math.isnan(self.range) or self.range < 0:
                raise ValueError("Temporal.range must be >= 0")

    @property
    def window_minutes(self) -> float | None:
        """Finite window size, or None when the range is unbounded."""
        if self.range is None or isinstance(self.range, str):
            return None
        if math.isinf(self.range):
            return None
        return float(self.range)


@dataclass(frozen=True)
class Streaming:
    max_items: int | None = None
    mode: StreamingMode | None = None
    throttle: float | None = None

    def __post_init__(self) -> None:
        if self.max_items is not None and self.max_items < 1:
            raise ValueError("Streaming.max_items must be >= 1")
        if self.mode is not None and self.mode not in STREAMING_MODES:
            raise ValueError(f"Unsupported streaming mode: {self.mode}")
        if self.throttle is not None and self.throttle < 0:
            raise ValueError("Streaming.throttle must be >= 0")


@dataclass(frozen=True)
class Spec:
    marks: tuple[Mark, ...] = ()
    scales: Mapping[str, Scale] = field(default_factory=dict)
    transforms: tuple[Transform, ...] = ()
    coordinate: Coordinate | None = None
    axes: Axes | None = None
    legend: Legend | Literal[False] | None = None
    tooltip: Tooltip | Literal[False] | None = None
    annotations: tuple[Annotation, ...] = ()
    interactions: tuple[Interaction, ...] = ()
    streaming: Streaming | None = None
    temporal: Temporal | None = None
    theme: str | None = None
    theme_overrides: Mapping[str, str] | None = None
    animate: bool | None = None

    def __post_init__(self) -> None:
        if self.theme is not None and self.theme not in THEME_NAMES:
            raise ValueError(f"Unsupported theme: {self.theme}")


# ---------------------------------------------------------------------------
# Plain-data parsing
# ---------------------------------------------------------------------------


def ensure_spec(value: Spec | Mapping[str, Any]) -> Spec:
    if isinstance(value, Spec):
        return value
    return spec_from_dict(value)


def spec_from_dict(payload: Mapping[str, Any]) -> Spec:
    obj = _expect_obj(payload, "spec")
    marks_raw = _expect_list(obj.get("marks", []), "marks")
    legend_raw = obj.get("legend")
    tooltip_raw = obj.get("tooltip")
    theme = obj.get("theme")
    if theme is not None and theme not in THEME_NAMES:
        raise SpecError(f"theme must be one of {', '.join(THEME_NAMES)}")
    try:
        return Spec(
            marks=tuple(_mark_from_dict(m, f"marks[{i}]") for i, m in enumerate(marks_raw)),
            scales=_scales_from_dict(obj.get("scales"), "scales"),
            transforms=_transforms_from_list(obj.get("transforms"), "transforms"),
            coordinate=_coordinate_from_dict(obj.get("coordinate"), "coordinate"),
            axes=_axes_from_dict(obj.get("axes"), "axes"),
            legend=False if legend_raw is False else _legend_from_dict(legend_raw, "legend"),
            tooltip=False if tooltip_raw is False else _tooltip_from_dict(tooltip_raw, "tooltip"),
            annotations=tuple(
                _annotation_from_dict(a, f"annotations[{i}]")
                for i, a in enumerate(_expect_list(obj.get("annotations", []), "annotations"))
            ),
            interactions=tuple(
                _interaction_from_dict(a, f"interactions[{i}]")
                for i, a in enumerate(_expect_list(obj.get("interactions", []), "interactions"))
            ),
            streaming=_streaming_from_dict(obj.get("streaming"), "streaming"),
            temporal=_temporal_from_dict(obj.get("temporal"), "temporal"),
            theme=theme,
            theme_overrides=_optional_obj(_pick(obj, "theme_overrides", "themeOverrides"), "themeOverrides"),
            animate=_optional_bool(obj.get("animate"), "animate"),
        )
    except SpecError:
        raise
    except ValueError as exc:
        raise SpecError(str(exc)) from exc


def _mark_from_dict(raw: Any, path: str) -> Mark:
    obj = _expect_obj(raw, path)
    tooltip_raw = obj.get("tooltip")
    labels_raw = obj.get("labels")
    return Mark(
        type=_require_str(obj.get("type"), f"{path}.type"),
        encode=_encode_from_dict(obj.get("encode"), f"{path}.encode"),
        scales=_scales_from_dict(obj.get("scales"), f"{path}.scales"),
        transforms=_transforms_from_list(obj.get("transforms"), f"{path}.transforms"),
        style=_optional_obj(obj.get("style"), f"{path}.style"),
        labels=None
        if labels_raw is None
        else tuple(
            _label_from_dict(item, f"{path}.labels[{i}]")
            for i, item in enumerate(_expect_list(labels_raw, f"{path}.labels"))
        ),
        tooltip=False if tooltip_raw is False else _tooltip_from_dict(tooltip_raw, f"{path}.tooltip"),
        animate=_optional_bool(obj.get("animate"), f"{path}.animate"),
    )


def _encode_from_dict(raw: Any, path: str) -> dict[str, Field]:
    if raw is None:
        return {}
    obj = _expect_obj(raw, path)
    return {
        str(channel): as_field(value, f"{path}.{channel}")
        for channel, value in obj.items()
        if value is not None
    }


def _scales_from_dict(raw: Any, path: str) -> dict[str, Scale]:
    if raw is None:
        return {}
    obj = _expect_obj(raw, path)
    return {str(channel): _scale_from_dict(value, f"{path}.{channel}") for channel, value in obj.items()}


_SCALE_KEYS = ("type", "domain", "range", "nice", "clamp", "padding", "mask")


def _scale_from_dict(raw: Any, path: str) -> Scale:
    if isinstance(raw, Scale):
        return raw
    obj = _expect_obj(raw, path)
    domain = obj.get("domain")
    scale_range = obj.get("range")
    return Scale(
        type=_optional_str(obj.get("type"), f"{path}.type"),
        domain=None if domain is None else tuple(_expect_list(domain, f"{path}.domain")),
        range=None if scale_range is None else tuple(_expect_list(scale_range, f"{path}.range")),
        nice=_optional_bool(obj.get("nice"), f"{path}.nice"),
        clamp=_optional_bool(obj.get("clamp"), f"{path}.clamp"),
        padding=obj.get("padding"),
        mask=_optional_str(obj.get("mask"), f"{path}.mask"),
        options={k: v for k, v in obj.items() if k not in _SCALE_KEYS},
    )


def _transforms_from_list(raw: Any, path: str) -> tuple[Transform, ...]:
    if raw is None:
        return ()
    return tuple(_transform_from_dict(item, f"{path}[{i}]") for i, item in enumerate(_expect_list(raw, path)))


def _transform_from_dict(raw: Any, path: str) -> Transform:
    if isinstance(raw, Transform):
        return raw
    obj = _expect_obj(raw, path)
    return Transform(
        type=_require_str(obj.get("type"), f"{path}.type"),
        options={k: v for k, v in obj.items() if k != "type"},
    )


def _coordinate_from_dict(raw: Any, path: str) -> Coordinate | None:
    if raw is None:
        return None
    obj = _expect_obj(raw, path)
    return Coordinate(
        type=_optional_str(obj.get("type"), f"{path}.type"),
        transforms=_transforms_from_list(obj.get("transforms"), f"{path}.transforms"),
        options={k: v for k, v in obj.items() if k not in ("type", "transforms")},
    )


def _axes_from_dict(raw: Any, path: str) -> Axes | None:
    if raw is None:
        return None
    obj = _expect_obj(raw, path)
    return Axes(
        x=_axis_channel_from_dict(obj.get("x"), f"{path}.x"),
        y=_axis_channel_from_dict(obj.get("y"), f"{path}.y"),
    )


def _axis_channel_from_dict(raw: Any, path: str) -> AxisChannel | Literal[False] | None:
    if raw is None or raw is False:
        return raw
    obj = _expect_obj(raw, path)
    title = obj.get("title")
    if title is not None and title is not False and not isinstance(title, str):
        raise SpecError(f"{path}.title must be a string or false")
    labels_raw = obj.get("labels")
    labels = None
    if labels_raw is not None:
        labels_obj = _expect_obj(labels_raw, f"{path}.labels")
        labels = AxisLabels(
            format=labels_obj.get("format"),
            rotate=labels_obj.get("rotate"),
            max_length=_pick(labels_obj, "max_length", "maxLength"),
        )
    return AxisChannel(
        title=title,
        grid=_optional_bool(obj.get("grid"), f"{path}.grid"),
        line=_optional_bool(obj.get("line"), f"{path}.line"),
        labels=labels,
    )


def _legend_from_dict(raw: Any, path: str) -> Legend | None:
    if raw is None:
        return None
    obj = _expect_obj(raw, path)
    return Legend(
        position=obj.get("position"),
        interactive=_optional_bool(obj.get("interactive"), f"{path}.interactive"),
    )


def _tooltip_from_dict(raw: Any, path: str) -> Tooltip | None:
    if raw is None:
        return None
    obj = _expect_obj(raw, path)
    items_raw = obj.get("items")
    items = None
    if items_raw is not None:
        parsed: list[TooltipItem] = []
        for i, item in enumerate(_expect_list(items_raw, f"{path}.items")):
            item_obj = _expect_obj(item, f"{path}.items[{i}]")
            parsed.append(
                TooltipItem(
                    field=_require_str(item_obj.get("field"), f"{path}.items[{i}].field"),
                    name=_optional_str(item_obj.get("name"), f"{path}.items[{i}].name"),
                    format=item_obj.get("format"),
                )
            )
        items = tuple(parsed)
    return Tooltip(title=obj.get("title"), items=items)


_LABEL_KEYS = ("text", "format", "overlapHide", "overlap_hide", "selector", "style")


def _label_from_dict(raw: Any, path: str) -> Label:
    obj = _expect_obj(raw, path)
    text = obj.get("text")
    return Label(
        text=None if text is None else as_field(text, f"{path}.text"),
        format=obj.get("format"),
        overlap_hide=bool(_pick(obj, "overlap_hide", "overlapHide")),
        selector=_optional_str(obj.get("selector"), f"{path}.selector"),
        style=_optional_obj(obj.get("style"), f"{path}.style"),
        options={k: v for k, v in obj.items() if k not in _LABEL_KEYS},
    )


def _annotation_from_dict(raw: Any, path: str) -> Annotation:
    obj = _expect_obj(raw, path)
    encode_raw = obj.get("encode")
    return Annotation(
        type=_require_str(obj.get("type"), f"{path}.type"),
        value=obj.get("value"),
        style=_optional_obj(obj.get("style"), f"{path}.style"),
        label=_optional_str(obj.get("label"), f"{path}.label"),
        encode=None if encode_raw is None else _encode_from_dict(encode_raw, f"{path}.encode"),
    )


def _interaction_from_dict(raw: Any, path: str) -> Interaction:
    obj = _expect_obj(raw, path)
    return Interaction(
        type=_require_str(obj.get("type"), f"{path}.type"),
        options={k: v for k, v in obj.items() if k != "type"},
    )


def _streaming_from_dict(raw: Any, path: str) -> Streaming | None:
    if raw is None:
        return None
    obj = _expect_obj(raw, path)
    max_items = _pick(obj, "max_items", "maxItems")
    if max_items is not None and (isinstance(max_items, bool) or not isinstance(max_items, int)):
        raise SpecError(f"{path}.maxItems must be an integer")
    throttle = obj.get("throttle")
    if throttle is not None and (isinstance(throttle, bool) or not isinstance(throttle, (int, float))):
        raise SpecError(f"{path}.throttle must be a number of milliseconds")
    return Streaming(max_items=max_items, mode=obj.get("mode"), throttle=throttle)


def _temporal_from_dict(raw: Any, path: str) -> Temporal | None:
    if raw is None:
        return None
    obj = _expect_obj(raw, path)
    mode = obj.get("mode")
    if mode not in TEMPORAL_MODES:
        raise SpecError(f"{path}.mode must be one of {', '.join(TEMPORAL_MODES)}")
    return Temporal(
        mode=mode,
        field=_require_str(obj.get("field"), f"{path}.field"),
        range=obj.get("range"),
        key_field=_optional_str(_pick(obj, "key_field", "keyField"), f"{path}.keyField"),
    )


def _pick(obj: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        if name in obj:
            return obj[name]
    return None


def _expect_obj(value: Any, name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise SpecError(f"{name} must be an object")
    return value


def _optional_obj(value: Any, name: str) -> Mapping[str, Any] | None:
    if value is None:
        return None
    return dict(_expect_obj(value, name))


def _expect_list(value: Any, name: str) -> list[Any]:
    if not isinstance(value, (list, tuple)):
        raise SpecError(f"{name} must be a list")
    return list(value)


def _require_str(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise SpecError(f"{name} must be a non-empty string")
    return value


def _optional_str(value: Any, name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise SpecError(f"{name} must be a string")
    return value


def _optional_bool(value: Any, name: str) -> bool | None:
    if value is None:
        return None
    if not isinstance(value, bool):
        raise SpecError(f"{name} must be a boolean")
    return value

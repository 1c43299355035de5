from streamspec.adapters import ColumnDefinition, DataSource, normalize_rows
from streamspec.buffer import AsyncioScheduler, ManualScheduler, RenderThrottle, StreamBuffer
from streamspec.chart import RenderOutcome, Renderer, StreamChart
from streamspec.coerce import coerce_time_fields, collect_time_fields
from streamspec.config import StreamingDefaults
from streamspec.errors import RenderError, RowDataError, SpecError
from streamspec.instants import parse_instant, time_mask
from streamspec.pipeline import build_options
from streamspec.spec import (
    Accessor,
    Annotation,
    AxisChannel,
    AxisLabels,
    Axes,
    Coordinate,
    FieldRef,
    Interaction,
    Label,
    Legend,
    Mark,
    Scale,
    Spec,
    Streaming,
    Temporal,
    Tooltip,
    TooltipItem,
    Transform,
    spec_from_dict,
)
from streamspec.temporal import filter_rows, inject_temporal_transforms
from streamspec.theme import ThemeTokens, theme_config, theme_tokens
from streamspec.translate import translate

__all__ = [
    "Accessor",
    "Annotation",
    "AsyncioScheduler",
    "AxisChannel",
    "AxisLabels",
    "Axes",
    "ColumnDefinition",
    "Coordinate",
    "DataSource",
    "FieldRef",
    "Interaction",
    "Label",
    "Legend",
    "ManualScheduler",
    "Mark",
    "RenderError",
    "RenderOutcome",
    "RenderThrottle",
    "Renderer",
    "RowDataError",
    "Scale",
    "Spec",
    "SpecError",
    "StreamBuffer",
    "StreamChart",
    "Streaming",
    "StreamingDefaults",
    "Temporal",
    "ThemeTokens",
    "Tooltip",
    "TooltipItem",
    "Transform",
    "build_options",
    "coerce_time_fields",
    "collect_time_fields",
    "filter_rows",
    "inject_temporal_transforms",
    "normalize_rows",
    "parse_instant",
    "spec_from_dict",
    "theme_config",
    "theme_tokens",
    "time_mask",
    "translate",
]

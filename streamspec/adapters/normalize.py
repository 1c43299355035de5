from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np

from streamspec.errors import RowDataError


try:
    import pandas as pd
except Exception:  # pragma: no cover - optional dependency
    pd = None  # type: ignore[assignment]

try:
    import torch
except Exception:  # pragma: no cover - optional dependency
    torch = None  # type: ignore[assignment]


@dataclass(frozen=True)
class ColumnDefinition:
    name: str
    type: str = "string"

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise ValueError("ColumnDefinition.name must be a non-empty string")


@dataclass(frozen=True)
class DataSource:
    columns: tuple[ColumnDefinition, ...] = ()
    data: Any = ()
    is_streaming: bool = False


def as_columns(columns: Any) -> tuple[ColumnDefinition, ...]:
    if columns is None:
        return ()
    out: list[ColumnDefinition] = []
    for i, col in enumerate(columns):
        if isinstance(col, ColumnDefinition):
            out.append(col)
        elif isinstance(col, str):
            out.append(ColumnDefinition(name=col))
        elif isinstance(col, Mapping):
            name = col.get("name")
            if not isinstance(name, str) or not name:
                raise RowDataError(f"columns[{i}].name must be a non-empty string")
            out.append(ColumnDefinition(name=name, type=str(col.get("type", "string"))))
        else:
            raise RowDataError(f"unsupported column definition at index {i}: {col!r}")
    return tuple(out)


def normalize_rows(rows: Any, columns: Sequence[ColumnDefinition] = ()) -> list[dict[str, Any]]:
    """Turn incoming rows into keyed records.

    Mappings pass through (copied). Positional rows are keyed by ``columns``;
    without column metadata they fall back to ``col_0``, ``col_1``, ...
    DataFrames keep their own column names.
    """
    if rows is None:
        return []
    if pd is not None and isinstance(rows, pd.DataFrame):
        return [{str(k): v for k, v in record.items()} for record in rows.to_dict(orient="records")]
    if torch is not None and isinstance(rows, torch.Tensor):
        tensor = rows.detach()
        if tensor.ndim != 2:
            raise RowDataError("tensor rows must be 2-D")
        if tensor.is_cuda:
            tensor = tensor.cpu()
        return [_positional_to_record(row, columns) for row in tensor.tolist()]
    if isinstance(rows, np.ndarray):
        if rows.ndim != 2:
            raise RowDataError("array rows must be 2-D")
        return [_positional_to_record(row, columns) for row in rows.tolist()]
    if isinstance(rows, Mapping) or isinstance(rows, (str, bytes, bytearray)):
        raise RowDataError(f"rows must be a sequence of rows, got {type(rows)!r}")

    out: list[dict[str, Any]] = []
    for i, row in enumerate(rows):
        if isinstance(row, Mapping):
            out.append(dict(row))
        elif isinstance(row, np.ndarray):
            if row.ndim != 1:
                raise RowDataError(f"row {i} must be 1-D")
            out.append(_positional_to_record(row.tolist(), columns))
        elif isinstance(row, Sequence) and not isinstance(row, (str, bytes, bytearray)):
            out.append(_positional_to_record(row, columns))
        else:
            raise RowDataError(f"unsupported row type at index {i}: {type(row)!r}")
    return out


def normalize_source(source: DataSource | Mapping[str, Any] | None) -> tuple[tuple[ColumnDefinition, ...], list[dict[str, Any]]]:
    if source is None:
        return (), []
    if isinstance(source, DataSource):
        columns = as_columns(source.columns)
        data = source.data
    else:
        columns = as_columns(source.get("columns"))
        data = source.get("data")
    return columns, normalize_rows(data, columns)


def _positional_to_record(row: Sequence[Any], columns: Sequence[ColumnDefinition]) -> dict[str, Any]:
    if columns:
        # Short rows leave trailing columns unset.
        return {col.name: (row[i] if i < len(row) else None) for i, col in enumerate(columns)}
    return {f"col_{i}": value for i, value in enumerate(row)}

from .normalize import ColumnDefinition, DataSource, as_columns, normalize_rows, normalize_source

__all__ = [
    "ColumnDefinition",
    "DataSource",
    "as_columns",
    "normalize_rows",
    "normalize_source",
]

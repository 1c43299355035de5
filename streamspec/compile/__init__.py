from .configs import (
    BarColumnConfig,
    TemporalConfig,
    TimeSeriesConfig,
    compile_bar_column_config,
    compile_time_series_config,
)

__all__ = [
    "BarColumnConfig",
    "TemporalConfig",
    "TimeSeriesConfig",
    "compile_bar_column_config",
    "compile_time_series_config",
]

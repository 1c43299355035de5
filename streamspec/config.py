from __future__ import annotations

from dataclasses import dataclass
import logging
import math
import os

from streamspec.spec import DEFAULT_MAX_ITEMS, STREAMING_MODES, Streaming

LOGGER = logging.getLogger(__name__)

MAX_ITEMS_ENV_VAR = "STREAMSPEC_MAX_ITEMS"
THROTTLE_ENV_VAR = "STREAMSPEC_THROTTLE_MS"
MODE_ENV_VAR = "STREAMSPEC_STREAMING_MODE"


@dataclass(frozen=True)
class StreamingDefaults:
    """Buffer policy used wherever a spec leaves its streaming section unset."""

    max_items: int = DEFAULT_MAX_ITEMS
    mode: str = "append"
    throttle_ms: float = 0.0

    def __post_init__(self) -> None:
        if self.max_items < 1:
            raise ValueError("max_items must be >= 1")
        if self.mode not in STREAMING_MODES:
            raise ValueError(f"Unsupported streaming mode: {self.mode}")
        if self.throttle_ms < 0:
            raise ValueError("throttle_ms must be >= 0")

    @classmethod
    def from_env(
        cls,
        *,
        max_items_env_var: str = MAX_ITEMS_ENV_VAR,
        throttle_env_var: str = THROTTLE_ENV_VAR,
        mode_env_var: str = MODE_ENV_VAR,
    ) -> "StreamingDefaults":
        max_items = _parse_max_items(max_items_env_var)
        throttle = _parse_throttle(throttle_env_var)
        mode = os.getenv(mode_env_var, "").strip()
        if mode and mode not in STREAMING_MODES:
            LOGGER.warning("ignoring %s=%r: expected one of %s", mode_env_var, mode, ", ".join(STREAMING_MODES))
            mode = ""
        return cls(
            max_items=DEFAULT_MAX_ITEMS if max_items is None else max_items,
            mode=mode or "append",
            throttle_ms=0.0 if throttle is None else throttle,
        )

    def resolve(self, streaming: Streaming | None) -> Streaming:
        declared = streaming or Streaming()
        return Streaming(
            max_items=self.max_items if declared.max_items is None else declared.max_items,
            mode=self.mode if declared.mode is None else declared.mode,  # type: ignore[arg-type]
            throttle=self.throttle_ms if declared.throttle is None else declared.throttle,
        )


def _parse_max_items(env_var: str) -> int | None:
    raw = os.getenv(env_var, "").strip()
    if raw == "":
        return None
    try:
        value = int(raw)
    except ValueError:
        LOGGER.warning("ignoring %s=%r: not an integer", env_var, raw)
        return None
    if value < 1:
        LOGGER.warning("ignoring %s=%r: must be >= 1", env_var, raw)
        return None
    return value


def _parse_throttle(env_var: str) -> float | None:
    raw = os.getenv(env_var, "").strip()
    if raw == "":
        return None
    try:
        value = float(raw)
    except ValueError:
        LOGGER.warning("ignoring %s=%r: not a number", env_var, raw)
        return None
    if not math.isfinite(value) or value < 0:
        LOGGER.warning("ignoring %s=%r: must be a finite number >= 0", env_var, raw)
        return None
    return value

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Callable, Literal, Mapping, Protocol

from streamspec.adapters.normalize import DataSource, normalize_source
from streamspec.buffer import RenderThrottle, Scheduler, StreamBuffer
from streamspec.config import StreamingDefaults
from streamspec.errors import RenderError
from streamspec.pipeline import build_options
from streamspec.spec import Spec, Streaming, ensure_spec

LOGGER = logging.getLogger(__name__)


class Renderer(Protocol):
    """The external drawing backend; it only ever sees plain configuration."""

    def options(self, config: dict[str, Any]) -> Any:
        ...

    def render(self) -> Any:
        ...

    def destroy(self) -> Any:
        ...


@dataclass(frozen=True)
class RenderOutcome:
    status: Literal["ok", "error"]
    configuration: dict[str, Any] | None = None
    error: RenderError | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @classmethod
    def success(cls, configuration: dict[str, Any]) -> "RenderOutcome":
        return cls(status="ok", configuration=configuration)

    @classmethod
    def failure(cls, error: RenderError) -> "RenderOutcome":
        return cls(status="error", error=error)


class StreamChart:
    """Single owner of a live chart: row buffer, redraw throttle and renderer.

    All mutations go through ``append``/``replace``/``clear``/``push`` and are
    expected from one caller at a time.
    """

    def __init__(
        self,
        spec: Spec | Mapping[str, Any],
        renderer: Renderer,
        *,
        source: DataSource | Mapping[str, Any] | None = None,
        scheduler: Scheduler | None = None,
        defaults: StreamingDefaults | None = None,
        width: int | None = None,
        height: int | None = None,
        on_outcome: Callable[[RenderOutcome], None] | None = None,
    ) -> None:
        self._spec = ensure_spec(spec)
        self._defaults = defaults if defaults is not None else StreamingDefaults.from_env()
        streaming = self.streaming
        assert streaming.max_items is not None and streaming.throttle is not None
        columns, rows = normalize_source(source)
        self._buffer = StreamBuffer(streaming.max_items, columns)
        if rows:
            self._buffer.replace(rows)
        self._renderer = renderer
        self._throttle = RenderThrottle(streaming.throttle, self._render_once, scheduler)
        self.width = width
        self.height = height
        self._on_outcome = on_outcome
        self._last_outcome: RenderOutcome | None = None
        self._destroyed = False

    @property
    def spec(self) -> Spec:
        return self._spec

    @property
    def streaming(self) -> Streaming:
        return self._defaults.resolve(self._spec.streaming)

    @property
    def renderer(self) -> Renderer:
        return self._renderer

    @property
    def rows(self) -> list[dict[str, Any]]:
        return self._buffer.snapshot()

    @property
    def throttle(self) -> RenderThrottle:
        return self._throttle

    @property
    def last_outcome(self) -> RenderOutcome | None:
        return self._last_outcome

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def append(self, rows: Any) -> None:
        self._ensure_live()
        self._buffer.append(rows)
        self._throttle.request()

    def replace(self, rows: Any) -> None:
        self._ensure_live()
        self._buffer.replace(rows)
        self._throttle.request()

    def clear(self) -> None:
        self._ensure_live()
        self._buffer.clear()
        self._throttle.request()

    def push(self, rows: Any) -> None:
        """Append or replace according to the resolved streaming mode."""
        self._ensure_live()
        mode = self.streaming.mode
        assert mode is not None
        self._buffer.push(rows, mode)
        self._throttle.request()

    def set_spec(self, spec: Spec | Mapping[str, Any]) -> None:
        self._ensure_live()
        self._spec = ensure_spec(spec)
        streaming = self.streaming
        assert streaming.max_items is not None and streaming.throttle is not None
        self._buffer.resize(streaming.max_items)
        self._throttle.set_interval(streaming.throttle)
        self._throttle.request()

    def set_source(self, source: DataSource | Mapping[str, Any] | None) -> None:
        self._ensure_live()
        columns, rows = normalize_source(source)
        self._buffer.set_columns(columns)
        self._buffer.replace(rows)
        self._throttle.request()

    def render_now(self) -> RenderOutcome:
        """Render the current buffer immediately, bypassing the throttle."""
        self._ensure_live()
        return self._render_once()

    def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True
        self._throttle.cancel()
        self._buffer.clear()
        self._renderer.destroy()

    def __enter__(self) -> "StreamChart":
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.destroy()

    def _ensure_live(self) -> None:
        if self._destroyed:
            raise RuntimeError("chart has been destroyed")

    def _render_once(self) -> RenderOutcome:
        if self._destroyed:
            raise RuntimeError("chart has been destroyed")
        try:
            config = build_options(self._spec, self._buffer.snapshot())
            if self.width is not None:
                config["width"] = self.width
            if self.height is not None:
                config["height"] = self.height
            self._renderer.options(config)
            self._renderer.render()
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("chart render failed: %s", exc)
            outcome = RenderOutcome.failure(RenderError(f"render failed: {exc}", cause=exc))
        else:
            outcome = RenderOutcome.success(config)
        self._last_outcome = outcome
        if self._on_outcome is not None:
            self._on_outcome(outcome)
        return outcome

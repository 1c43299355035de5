from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
import logging
from typing import Any, Callable, Literal, Protocol, Sequence

from streamspec.adapters.normalize import ColumnDefinition, as_columns, normalize_rows
from streamspec.spec import DEFAULT_MAX_ITEMS, STREAMING_MODES

LOGGER = logging.getLogger(__name__)

ThrottleState = Literal["idle", "scheduled"]


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class AsyncioScheduler:
    """Defers callbacks to a later turn of an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop if self._loop is not None else asyncio.get_running_loop()
        return loop.call_later(delay, callback)


@dataclass
class ManualTimer:
    due_at: float
    callback: Callable[[], None]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Timers driven by a host-owned clock; ``advance`` fires what came due."""

    def __init__(self, now: float = 0.0) -> None:
        self._now = float(now)
        self._timers: list[ManualTimer] = []

    @property
    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(due_at=self._now + max(0.0, float(delay)), callback=callback)
        self._timers.append(timer)
        return timer

    def pending(self) -> int:
        return sum(1 for t in self._timers if not t.cancelled)

    def advance(self, seconds: float) -> int:
        if seconds < 0:
            raise ValueError("seconds must be >= 0")
        target = self._now + float(seconds)
        fired = 0
        while True:
            due = [t for t in self._timers if not t.cancelled and t.due_at <= target]
            if not due:
                break
            # Callbacks may arm new timers; re-scan after each one.
            timer = min(due, key=lambda t: t.due_at)
            self._timers.remove(timer)
            self._now = max(self._now, timer.due_at)
            timer.callback()
            fired += 1
        self._now = target
        self._timers = [t for t in self._timers if not t.cancelled]
        return fired


class StreamBuffer:
    """Bounded row store; the newest ``max_items`` rows are retained."""

    def __init__(self, max_items: int = DEFAULT_MAX_ITEMS, columns: Sequence[ColumnDefinition] | Any = ()) -> None:
        if max_items < 1:
            raise ValueError("max_items must be >= 1")
        self._rows: deque[dict[str, Any]] = deque(maxlen=max_items)
        self.columns = as_columns(columns)

    @property
    def max_items(self) -> int:
        assert self._rows.maxlen is not None
        return self._rows.maxlen

    def __len__(self) -> int:
        return len(self._rows)

    def snapshot(self) -> list[dict[str, Any]]:
        return list(self._rows)

    def set_columns(self, columns: Sequence[ColumnDefinition] | Any) -> None:
        self.columns = as_columns(columns)

    def resize(self, max_items: int) -> None:
        if max_items < 1:
            raise ValueError("max_items must be >= 1")
        if max_items == self.max_items:
            return
        self._rows = deque(self._rows, maxlen=max_items)

    def append(self, rows: Any) -> int:
        """Append rows, dropping the oldest beyond capacity. Returns the drop count."""
        records = normalize_rows(rows, self.columns)
        dropped = max(0, len(self._rows) + len(records) - self.max_items)
        self._rows.extend(records)
        if dropped:
            LOGGER.debug("stream buffer full: dropped %d oldest rows", dropped)
        return dropped

    def replace(self, rows: Any) -> int:
        records = normalize_rows(rows, self.columns)
        dropped = max(0, len(records) - self.max_items)
        self._rows = deque(records, maxlen=self.max_items)
        if dropped:
            LOGGER.debug("replacement exceeds buffer: kept newest %d of %d rows", self.max_items, len(records))
        return dropped

    def push(self, rows: Any, mode: str = "append") -> int:
        if mode not in STREAMING_MODES:
            raise ValueError(f"Unsupported streaming mode: {mode}")
        if mode == "replace":
            return self.replace(rows)
        return self.append(rows)

    def clear(self) -> None:
        self._rows.clear()


class RenderThrottle:
    """Coalesces render requests to at most one per interval.

    ``idle``: a request renders immediately and arms one timer
    (-> ``scheduled``). ``scheduled``: requests only raise the pending flag.
    On expiry a raised flag produces exactly one render and re-arms the
    timer; otherwise the machine returns to ``idle``. A zero interval renders
    synchronously on every request.
    """

    def __init__(
        self,
        interval_ms: float,
        render: Callable[[], object],
        scheduler: Scheduler | None = None,
    ) -> None:
        if interval_ms < 0:
            raise ValueError("interval_ms must be >= 0")
        self.interval_ms = float(interval_ms)
        self._render = render
        self._scheduler: Scheduler = scheduler if scheduler is not None else AsyncioScheduler()
        self._state: ThrottleState = "idle"
        self._pending = False
        self._timer: TimerHandle | None = None

    @property
    def state(self) -> ThrottleState:
        return self._state

    @property
    def pending(self) -> bool:
        return self._pending

    def request(self) -> bool:
        """Ask for a render. Returns True when it happened synchronously."""
        if self.interval_ms <= 0:
            self._render()
            return True
        if self._state == "scheduled":
            self._pending = True
            LOGGER.debug("render request coalesced into pending redraw")
            return False
        self._arm()
        self._pending = False
        self._render()
        return True

    def set_interval(self, interval_ms: float) -> None:
        if interval_ms < 0:
            raise ValueError("interval_ms must be >= 0")
        if float(interval_ms) == self.interval_ms:
            return
        self.cancel()
        self.interval_ms = float(interval_ms)

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._state = "idle"
        self._pending = False

    def _arm(self) -> None:
        # Only "scheduled" while a live timer exists.
        self._timer = self._scheduler.call_later(self.interval_ms / 1000.0, self._on_timer)
        self._state = "scheduled"

    def _on_timer(self) -> None:
        self._timer = None
        self._state = "idle"
        if not self._pending:
            return
        self._arm()
        self._pending = False
        self._render()

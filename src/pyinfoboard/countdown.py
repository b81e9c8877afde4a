"""Countdown timers for time-bounded display entries.

Each registered :class:`TimerWindow` gets its own asyncio task that
recomputes a label from wall-clock ``now`` every tick. State is never
carried between ticks: the label is a pure function of
``(now, start, end)``.

A timer stops itself when:

* its window has ended (the ``"Event Ended"`` label is written once),
* its display target no longer exists, or
* computing its label fails (logged, and the target shows
  ``"Time display temporarily unavailable"``; sibling timers keep running).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Protocol

from pyinfoboard.exceptions import TimerComputeError
from pyinfoboard.models._base import parse_epoch

_logger = logging.getLogger(__name__)

EVENT_ENDED_LABEL = "Event Ended"
TIMER_UNAVAILABLE_LABEL = "Time display temporarily unavailable"

_MS_PER_MINUTE = 60 * 1000
_MS_PER_HOUR = 60 * _MS_PER_MINUTE
_MS_PER_DAY = 24 * _MS_PER_HOUR

# Display form produced by the presentation layer's date formatter.
_DISPLAY_DATE_FORMAT = "%Y/%m/%d, %H:%M"


def _now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


class TimerState(StrEnum):
    PENDING = "pending"
    ACTIVE = "active"
    ENDED = "ended"


def format_time_remaining(duration_ms: float) -> str:
    """Format a duration as ``"[Nd ]Nh Nm"`` using floor division.

    The day part is omitted when zero; seconds are never shown.
    """
    duration = int(duration_ms)
    days = duration // _MS_PER_DAY
    hours = (duration % _MS_PER_DAY) // _MS_PER_HOUR
    minutes = (duration % _MS_PER_HOUR) // _MS_PER_MINUTE
    prefix = f"{days}d " if days > 0 else ""
    return f"{prefix}{hours}h {minutes}m"


def evaluate_window(now_ms: int, start_ms: int, end_ms: int) -> tuple[TimerState, str]:
    """Return the state and label of a window at ``now_ms``."""
    if now_ms < start_ms:
        return TimerState.PENDING, f"Starts in: {format_time_remaining(start_ms - now_ms)}"
    if now_ms < end_ms:
        return TimerState.ACTIVE, f"Time Left: {format_time_remaining(end_ms - now_ms)}"
    return TimerState.ENDED, EVENT_ENDED_LABEL


def to_epoch_ms(value: Any) -> int:
    """Convert a window bound to epoch milliseconds.

    Accepts aware or naive (taken as UTC) datetimes, epoch seconds or
    milliseconds, ISO 8601 strings and the ``"YYYY/MM/DD, HH:MM"`` display
    form. Anything else raises :class:`TimerComputeError`.
    """
    if isinstance(value, bool) or value is None:
        raise TimerComputeError(f"Invalid window bound: {value!r}")
    if isinstance(value, str):
        with contextlib.suppress(ValueError):
            parsed = datetime.strptime(value.strip(), _DISPLAY_DATE_FORMAT)
            return int(parsed.replace(tzinfo=UTC).timestamp() * 1000)
    if isinstance(value, (int, float)):
        # Keep millisecond precision that parse_epoch would truncate.
        try:
            ms = int(value)
        except (ValueError, OverflowError) as exc:
            raise TimerComputeError(f"Invalid window bound: {value!r}") from exc
        return ms if abs(ms) >= 1_000_000_000_000 else ms * 1000
    try:
        parsed_dt = parse_epoch(value)
    except (TypeError, ValueError, OverflowError, OSError) as exc:
        raise TimerComputeError(f"Invalid window bound: {value!r}") from exc
    if parsed_dt is None:
        raise TimerComputeError(f"Invalid window bound: {value!r}")
    return int(parsed_dt.timestamp() * 1000)


class DisplayTarget(Protocol):
    """Where countdown labels are written.

    Supplied by the presentation layer; ``exists`` must answer at tick
    time so detached targets can be detected.
    """

    def exists(self, target_id: str) -> bool:
        ...

    def write(self, target_id: str, text: str) -> None:
        ...


@dataclass(frozen=True)
class TimerWindow:
    """A countdown window and the display target it writes to."""

    start: Any
    end: Any
    target_id: str


class TimerHandle:
    """A registered countdown. Obtain one from :meth:`CountdownRegistry.register`."""

    def __init__(self, registry: CountdownRegistry, window: TimerWindow) -> None:
        self._registry = registry
        self.window = window
        self.task: asyncio.Task[None] | None = None
        self.closed = False
        self.last_label: str | None = None

    def __repr__(self) -> str:
        return f"TimerHandle(target_id={self.window.target_id!r}, closed={self.closed})"

    def tick(self) -> bool:
        """Recompute and write the label once.

        Returns ``True`` while the timer should keep ticking. A closed
        handle does nothing and returns ``False``.
        """
        if self.closed:
            return False
        registry = self._registry
        target_id = self.window.target_id
        try:
            if not registry.target.exists(target_id):
                _logger.debug("Countdown target %s is gone; stopping timer", target_id)
                registry.cleanup(self)
                return False
            state, label = evaluate_window(
                registry.clock(),
                to_epoch_ms(self.window.start),
                to_epoch_ms(self.window.end),
            )
            registry.target.write(target_id, label)
        except Exception:
            _logger.exception("Countdown update failed for %s; stopping timer", target_id)
            registry.cleanup(self)
            registry.show_unavailable(target_id)
            return False

        self.last_label = label
        if state is TimerState.ENDED:
            registry.cleanup(self)
            return False
        return True


class CountdownRegistry:
    """Owns every active countdown and guarantees their cleanup.

    Usage::

        async with CountdownRegistry(target) as registry:
            registry.register(TimerWindow(start, end, "event-timer-0"))
            ...
    """

    def __init__(
        self,
        target: DisplayTarget,
        *,
        clock: Callable[[], int] = _now_ms,
        tick_interval: float = 1.0,
        setup_delay: float = 0.1,
    ) -> None:
        self.target = target
        self.clock = clock
        self._tick_interval = tick_interval
        self._setup_delay = setup_delay
        self._handles: list[TimerHandle] = []

    @property
    def active(self) -> list[TimerHandle]:
        return list(self._handles)

    def __len__(self) -> int:
        return len(self._handles)

    async def __aenter__(self) -> CountdownRegistry:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    def register(self, window: TimerWindow, tick_interval: float | None = None) -> TimerHandle:
        """Start a countdown for *window*. Must be called from a running loop."""
        interval = self._tick_interval if tick_interval is None else tick_interval
        if interval <= 0:
            raise ValueError("tick_interval must be > 0")
        handle = TimerHandle(self, window)
        self._handles.append(handle)
        handle.task = asyncio.get_running_loop().create_task(
            self._run(handle, interval),
            name=f"countdown:{window.target_id}",
        )
        return handle

    async def _run(self, handle: TimerHandle, interval: float) -> None:
        await asyncio.sleep(self._setup_delay)
        while handle.tick():
            await asyncio.sleep(interval)

    def cleanup(self, handle: TimerHandle) -> None:
        """Cancel *handle* and stop tracking it. Safe to call more than once."""
        handle.closed = True
        with contextlib.suppress(ValueError):
            self._handles.remove(handle)
        task = handle.task
        if task is not None and not task.done():
            try:
                current = asyncio.current_task()
            except RuntimeError:
                current = None
            if task is not current:
                task.cancel()

    def show_unavailable(self, target_id: str) -> None:
        """Replace a failed timer's stale label, if its target is still there."""
        try:
            if self.target.exists(target_id):
                self.target.write(target_id, TIMER_UNAVAILABLE_LABEL)
        except Exception:
            _logger.debug("Could not write fallback label to %s", target_id, exc_info=True)

    def shutdown(self) -> None:
        """Cancel every outstanding countdown."""
        for handle in list(self._handles):
            self.cleanup(handle)

    async def aclose(self) -> None:
        """Cancel every outstanding countdown and wait for the tasks to finish."""
        tasks = [h.task for h in self._handles if h.task is not None]
        self.shutdown()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

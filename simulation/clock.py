"""Simulated clock and fixed-delay ticker that drives a ``WorldMap``.

The ticker runs on a daemon thread. Every tick binds the clock's current
time to the map, notifies an optional callback (typically a redraw), and
then advances the clock, so the first tick shows the start time.
"""

from __future__ import annotations

import calendar
import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta

from compositing.world import WorldMap

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Calendar helpers
# ---------------------------------------------------------------------------


def add_months(dt: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the target month's length."""
    index = dt.year * 12 + (dt.month - 1) + months
    year, month0 = divmod(index, 12)
    day = min(dt.day, calendar.monthrange(year, month0 + 1)[1])
    return dt.replace(year=year, month=month0 + 1, day=day)


def format_time_label(dt: datetime) -> str:
    """Title label such as ``"June @ 12:00:00"``."""
    return f"{calendar.month_name[dt.month]} @ {dt:%H:%M:%S}"


# ---------------------------------------------------------------------------
# Simulation Clock
# ---------------------------------------------------------------------------


class SimulationClock:
    """Thread-safe simulated UTC clock advancing in fixed steps.

    Parameters
    ----------
    start : datetime
        Initial simulated time (naive = UTC).
    step_months : int
        Calendar months added per ``advance``.
    step : timedelta
        Duration added per ``advance`` after the month step.
    """

    def __init__(
        self,
        start: datetime,
        step_months: int = 0,
        step: timedelta = timedelta(0),
    ) -> None:
        if step_months < 0 or step < timedelta(0):
            raise ValueError("Clock steps cannot be negative.")
        self._start = start
        self._now = start
        self._step_months = step_months
        self._step = step
        self._lock = threading.Lock()

    @property
    def now(self) -> datetime:
        """Current simulated time."""
        with self._lock:
            return self._now

    def advance(self) -> datetime:
        """Move one step forward and return the new time."""
        with self._lock:
            now = self._now
            if self._step_months:
                now = add_months(now, self._step_months)
            self._now = now + self._step
            return self._now

    def reset(self) -> None:
        """Return to the start time."""
        with self._lock:
            self._now = self._start


# ---------------------------------------------------------------------------
# Periodic Ticker
# ---------------------------------------------------------------------------


class PeriodicTicker:
    """Fixed-delay background ticker binding simulated time to a map.

    Parameters
    ----------
    world : WorldMap
        Map whose timestamp is updated on every tick.
    clock : SimulationClock
        Source of simulated time.
    interval_s : float
        Delay between the end of one tick and the start of the next [s].
    on_tick : callable, optional
        Called with the bound time after each ``set_time``.
    """

    def __init__(
        self,
        world: WorldMap,
        clock: SimulationClock,
        interval_s: float,
        on_tick: Callable[[datetime], None] | None = None,
    ) -> None:
        if interval_s <= 0:
            raise ValueError(f"interval_s must be positive, got {interval_s}")
        self._world = world
        self._clock = clock
        self._interval_s = interval_s
        self._on_tick = on_tick
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.ticks = 0

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start ticking on a daemon thread (no-op if already running)."""
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="sunclock-ticker", daemon=True
        )
        self._thread.start()
        logger.info("Ticker started (interval=%.2f s)", self._interval_s)

    def stop(self, timeout: float | None = 2.0) -> None:
        """Signal the thread to stop and wait for it."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
        self._thread = None
        logger.info("Ticker stopped after %d ticks", self.ticks)

    def tick(self) -> datetime:
        """Run one tick synchronously; returns the time that was bound."""
        now = self._clock.now
        self._world.set_time(now)
        if self._on_tick is not None:
            self._on_tick(now)
        self._clock.advance()
        self.ticks += 1
        return now

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                now = self.tick()
            except Exception:
                logger.exception("Tick failed; stopping ticker")
                self._stop.set()
                return
            logger.debug("Tick %d: %s", self.ticks, now.isoformat())
            self._stop.wait(self._interval_s)

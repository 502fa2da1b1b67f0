"""Tests for the simulated clock, the ticker and frame-sequence rendering."""

from __future__ import annotations

import json
import threading
from datetime import datetime, timedelta
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from compositing.clouds import CloudLayer
from compositing.world import WorldMap
from simulation.clock import (
    PeriodicTicker,
    SimulationClock,
    add_months,
    format_time_label,
)
from simulation.runner import render_frame, render_sequence
from solar_engine.timebase import to_epoch_millis


@pytest.fixture
def small_world(noon_j2000: datetime) -> WorldMap:
    day = np.full((18, 36, 3), 255, dtype=np.uint8)
    night = np.zeros((18, 36, 3), dtype=np.uint8)
    return WorldMap(day, night, time=noon_j2000)


# ===================================================================
# CALENDAR HELPERS
# ===================================================================


class TestAddMonths:
    """Month arithmetic with day clamping."""

    def test_simple(self) -> None:
        assert add_months(datetime(2000, 1, 15, 8), 1) == datetime(2000, 2, 15, 8)

    def test_year_rollover(self) -> None:
        assert add_months(datetime(2000, 12, 15), 1) == datetime(2001, 1, 15)

    def test_clamps_to_month_end(self) -> None:
        assert add_months(datetime(2001, 1, 31), 1) == datetime(2001, 2, 28)
        assert add_months(datetime(2000, 1, 31), 1) == datetime(2000, 2, 29)

    def test_many_months(self) -> None:
        assert add_months(datetime(2000, 6, 21, 12), 30) == datetime(2002, 12, 21, 12)


def test_format_time_label() -> None:
    assert format_time_label(datetime(2000, 6, 21, 12)) == "June @ 12:00:00"
    assert format_time_label(datetime(2010, 1, 5, 7, 3, 9)) == "January @ 07:03:09"


# ===================================================================
# SIMULATION CLOCK
# ===================================================================


class TestSimulationClock:
    """Stepping and reset."""

    def test_starts_at_start(self, noon_j2000: datetime) -> None:
        assert SimulationClock(noon_j2000).now == noon_j2000

    def test_month_then_duration(self, noon_j2000: datetime) -> None:
        clock = SimulationClock(noon_j2000, step_months=1, step=timedelta(hours=6))
        assert clock.advance() == datetime(2000, 2, 1, 18)
        assert clock.now == datetime(2000, 2, 1, 18)

    def test_reset(self, noon_j2000: datetime) -> None:
        clock = SimulationClock(noon_j2000, step=timedelta(days=1))
        clock.advance()
        clock.advance()
        clock.reset()
        assert clock.now == noon_j2000

    def test_negative_steps_rejected(self, noon_j2000: datetime) -> None:
        with pytest.raises(ValueError):
            SimulationClock(noon_j2000, step_months=-1)
        with pytest.raises(ValueError):
            SimulationClock(noon_j2000, step=timedelta(hours=-1))


# ===================================================================
# TICKER
# ===================================================================


class TestPeriodicTicker:
    """Binding simulated time to a map."""

    def test_tick_binds_then_advances(
        self, small_world: WorldMap, noon_j2000: datetime
    ) -> None:
        clock = SimulationClock(noon_j2000, step_months=1)
        seen: list[datetime] = []
        ticker = PeriodicTicker(small_world, clock, 1.0, on_tick=seen.append)

        assert ticker.tick() == noon_j2000
        assert small_world.time == to_epoch_millis(noon_j2000)
        assert seen == [noon_j2000]
        assert clock.now == datetime(2000, 2, 1, 12)
        assert ticker.ticks == 1

    def test_invalid_interval(self, small_world: WorldMap, noon_j2000: datetime) -> None:
        with pytest.raises(ValueError):
            PeriodicTicker(small_world, SimulationClock(noon_j2000), 0.0)

    def test_background_thread(self, small_world: WorldMap, noon_j2000: datetime) -> None:
        clock = SimulationClock(noon_j2000, step=timedelta(hours=1))
        done = threading.Event()
        frames: list[Image.Image] = []

        def redraw(now: datetime) -> None:
            frames.append(small_world.render(36, 18))
            if len(frames) >= 3:
                done.set()

        ticker = PeriodicTicker(small_world, clock, 0.01, on_tick=redraw)
        ticker.start()
        try:
            assert done.wait(timeout=10.0)
            assert ticker.is_running
        finally:
            ticker.stop()

        assert not ticker.is_running
        assert ticker.ticks >= 3
        assert clock.now >= noon_j2000 + timedelta(hours=3)

    def test_failing_callback_stops_thread(
        self, small_world: WorldMap, noon_j2000: datetime
    ) -> None:
        def boom(now: datetime) -> None:
            raise RuntimeError("redraw failed")

        ticker = PeriodicTicker(small_world, SimulationClock(noon_j2000), 0.01, on_tick=boom)
        ticker.start()
        ticker._thread.join(timeout=5.0)
        assert not ticker.is_running
        assert ticker.ticks == 0
        ticker.stop()


# ===================================================================
# RUNNER
# ===================================================================


class TestRenderSequence:
    """Frames and metadata written to disk."""

    def test_writes_frames_and_metadata(
        self, small_world: WorldMap, noon_j2000: datetime, tmp_path: Path
    ) -> None:
        clock = SimulationClock(noon_j2000, step_months=1)
        saved = render_sequence(small_world, clock, 3, 72, 36, tmp_path / "seq")

        assert [p.name for p in saved] == [
            "frame_0000.png",
            "frame_0001.png",
            "frame_0002.png",
            "frames.json",
        ]
        with Image.open(saved[0]) as img:
            assert img.size == (72, 36)

        with open(saved[-1], "r", encoding="utf-8") as f:
            meta = json.load(f)
        assert (meta["width"], meta["height"]) == (72, 36)
        labels = [frame["label"] for frame in meta["frames"]]
        assert labels == ["January @ 12:00:00", "February @ 12:00:00", "March @ 12:00:00"]
        assert meta["frames"][0]["subsolar_longitude_west_deg"] == pytest.approx(
            -0.4289, abs=1e-3
        )
        assert clock.now == datetime(2000, 4, 1, 12)

    def test_zero_frames_rejected(
        self, small_world: WorldMap, noon_j2000: datetime, tmp_path: Path
    ) -> None:
        with pytest.raises(ValueError):
            render_sequence(small_world, SimulationClock(noon_j2000), 0, 10, 5, tmp_path)

    def test_render_frame_with_clouds(self, small_world: WorldMap, tmp_path: Path) -> None:
        clouds = CloudLayer(np.full((18, 36, 3), 255, dtype=np.uint8), alpha=1.0)
        path = render_frame(small_world, 36, 18, tmp_path / "out" / "world.png", clouds)
        assert path.exists()
        with Image.open(path) as img:
            # Opaque white clouds cover everything
            assert np.all(np.array(img.convert("RGB")) == 255)

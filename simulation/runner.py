"""Frame-sequence runner — step a simulated clock and save rendered frames.

Writes under ``output_dir/``:
    frame_0000.png ...  — rendered world map per step
    frames.json         — per-frame time, label and sub-solar point

Only rendered images are written; masks are recomputed on every run.
"""

from __future__ import annotations

import json
import logging
import math
import time
from datetime import datetime
from pathlib import Path

from compositing.clouds import CloudLayer
from compositing.world import WorldMap
from simulation.clock import SimulationClock, format_time_label
from solar_engine.ephemeris import solar_position, subsolar_longitude

logger = logging.getLogger(__name__)


def render_frame(
    world: WorldMap,
    width: int,
    height: int,
    output_path: Path | str,
    clouds: CloudLayer | None = None,
) -> Path:
    """Render the map's current frame and save it as PNG."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    image = world.render(width, height)
    if clouds is not None:
        image = clouds.overlay(image)
    image.save(output_path)

    logger.debug("Saved frame %s (%dx%d)", output_path, width, height)
    return output_path


def render_sequence(
    world: WorldMap,
    clock: SimulationClock,
    num_frames: int,
    width: int,
    height: int,
    output_dir: Path | str,
    clouds: CloudLayer | None = None,
) -> list[Path]:
    """Render ``num_frames`` consecutive clock steps to PNG files.

    Parameters
    ----------
    world : WorldMap
        Map to render.
    clock : SimulationClock
        Simulated clock; advanced once per frame.
    num_frames : int
        Number of frames (>= 1).
    width, height : int
        Display size of each frame.
    output_dir : Path or str
        Output directory (created if needed).
    clouds : CloudLayer, optional
        Cloud overlay drawn over every frame.

    Returns
    -------
    list[Path]
        Saved frame paths followed by ``frames.json``.
    """
    if num_frames < 1:
        raise ValueError(f"num_frames must be >= 1, got {num_frames}")

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    saved: list[Path] = []
    frames: list[dict] = []
    t0 = time.perf_counter()

    for index in range(num_frames):
        now = clock.now
        world.set_time(now)
        path = render_frame(
            world, width, height, output_dir / f"frame_{index:04d}.png", clouds
        )
        saved.append(path)
        frames.append(_frame_record(index, now, path))
        logger.info("Frame %d/%d: %s", index + 1, num_frames, frames[-1]["label"])
        clock.advance()

    meta_path = output_dir / "frames.json"
    with open(meta_path, "w", encoding="utf-8") as f:
        json.dump(
            {"width": width, "height": height, "frames": frames},
            f,
            indent=2,
            ensure_ascii=False,
        )
    saved.append(meta_path)

    logger.info(
        "Rendered %d frames to %s in %.1f s",
        num_frames, output_dir, time.perf_counter() - t0,
    )
    return saved


def _frame_record(index: int, now: datetime, path: Path) -> dict:
    """JSON-ready description of one frame."""
    pos = solar_position(now)
    return {
        "index": index,
        "file": path.name,
        "time": now.isoformat(),
        "label": format_time_label(now),
        "subsolar_longitude_west_deg": round(subsolar_longitude(now), 4),
        "declination_deg": round(math.degrees(pos.declination_rad), 4),
    }

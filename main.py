"""Sunclock — CLI entry point.

Renders a day/night world map whose terminator follows the real Sun.

Usage
-----
    python main.py --day maps/world.jpg --night maps/world_night.jpg
    python main.py --day d.jpg --night n.jpg --time 2024-06-21T12:00
    python main.py --day d.jpg --night n.jpg --frames 12 --step-months 1
    python main.py --plot-mask --time 2000-01-01T12:00   # mask only, no images
    python main.py --day d.jpg --night n.jpg --live --step-hours 1   # Ctrl-C to stop
"""

from __future__ import annotations

import argparse
import logging
import sys
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path


def setup_logging(level: str = "INFO") -> None:
    """Configure structured logging."""
    fmt = "%(name)s [%(levelname)s] %(message)s"
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=fmt,
        stream=sys.stdout,
    )


def _positive_int(value: str) -> int:
    """argparse type for counts and pixel sizes."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}") from None
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {number}")
    return number


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        prog="sunclock",
        description="Sunclock — day/night world map with a real solar terminator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python main.py --day world.jpg --night world_night.jpg\n"
            "  python main.py --day d.jpg --night n.jpg --time 2024-12-21T06:00\n"
            "  python main.py --day d.jpg --night n.jpg --frames 12\n"
            "  python main.py --plot-mask --width 720 --height 360\n"
            "  python main.py --day d.jpg --night n.jpg --live --interval 1\n"
        ),
    )
    parser.add_argument(
        "--config",
        type=str,
        default="config/default_config.yaml",
        help="Path to config YAML (default: config/default_config.yaml)",
    )
    parser.add_argument("--day", type=str, default=None, help="Day map image")
    parser.add_argument("--night", type=str, default=None, help="Night map image")
    parser.add_argument(
        "--clouds", type=str, default=None, help="Optional cloud map overlay"
    )
    parser.add_argument(
        "--cloud-alpha",
        type=float,
        default=None,
        help="Peak cloud opacity in [0, 1] (default: from config)",
    )
    parser.add_argument(
        "--time",
        type=str,
        default=None,
        help="UTC time, ISO-8601 (default: now)",
    )
    parser.add_argument(
        "--width",
        type=_positive_int,
        default=None,
        help="Display width (default: from config)",
    )
    parser.add_argument(
        "--height",
        type=_positive_int,
        default=None,
        help="Display height (default: from config)",
    )
    parser.add_argument(
        "--frames",
        type=_positive_int,
        default=None,
        help="Number of frames to render (default: 1; with --live, until Ctrl-C)",
    )
    parser.add_argument(
        "--live",
        action="store_true",
        default=False,
        help="Advance the clock on a background ticker, re-rendering world.png",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between live ticks (default: from config)",
    )
    parser.add_argument(
        "--step-months",
        type=int,
        default=None,
        help="Months between frames (default: from config)",
    )
    parser.add_argument(
        "--step-hours",
        type=float,
        default=None,
        help="Hours between frames (default: from config)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="output",
        help="Output directory (default: output/)",
    )
    parser.add_argument(
        "--plot-mask",
        action="store_true",
        default=False,
        help="Also save a matplotlib plot of the illumination mask",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO)",
    )

    return parser.parse_args(argv)


def _parse_time(value: str | None) -> datetime:
    """Parse an ISO-8601 time; naive values are UTC, result is naive UTC."""
    if value is None:
        return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _run_live(world, clock, interval_s, frames, width, height, output_dir, clouds) -> bool:
    """Drive ``world`` from a :class:`PeriodicTicker` until done.

    Each tick re-renders ``world.png``. Stops after ``frames`` ticks (or on
    Ctrl-C when ``frames`` is None). Returns False if the ticker died.
    """
    from simulation.clock import PeriodicTicker, format_time_label
    from simulation.runner import render_frame

    logger = logging.getLogger("sunclock")
    done = threading.Event()
    rendered = 0

    def on_tick(now: datetime) -> None:
        nonlocal rendered
        if done.is_set():
            return
        render_frame(world, width, height, output_dir / "world.png", clouds)
        rendered += 1
        logger.info("Tick %d: %s UTC", rendered, format_time_label(now))
        if frames is not None and rendered >= frames:
            done.set()

    ticker = PeriodicTicker(world, clock, interval_s, on_tick=on_tick)
    ticker.start()
    interrupted = False
    try:
        while not done.wait(0.1):
            if not ticker.is_running:
                break
    except KeyboardInterrupt:
        interrupted = True
        logger.info("Interrupted after %d ticks", rendered)
    finally:
        ticker.stop()

    return done.is_set() or interrupted


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    logger = logging.getLogger("sunclock")
    logger.info("=" * 60)
    logger.info("  Sunclock — Solar Terminator World Map")
    logger.info("=" * 60)

    from compositing.clouds import CloudLayer
    from compositing.images import load_image
    from compositing.world import WorldMap
    from simulation.clock import SimulationClock, format_time_label
    from simulation.runner import render_frame, render_sequence
    from solar_engine.constants import hash_array, load_config, log_platform_info
    from solar_engine.ephemeris import solar_position, subsolar_longitude
    from solar_engine.errors import SunclockError
    from solar_engine.mask import compute_mask
    from visualization.plotter import plot_illumination_mask, plot_subsolar_track

    output_dir = Path(args.output)

    try:
        config = load_config(args.config)
        log_platform_info()

        start = _parse_time(args.time)
        width = args.width if args.width is not None else config.render.display_width
        height = (
            args.height if args.height is not None else config.render.display_height
        )
        frames = args.frames if args.frames is not None else 1

        pos = solar_position(start)
        logger.info(
            "Time %s: declination=%.3f°, sub-solar longitude=%.3f° W",
            start.isoformat(), pos.declination_deg, subsolar_longitude(start),
        )

        if args.plot_mask:
            mask = compute_mask(start, width, height, config.engine.bands)
            logger.info("Mask %dx%d sha256=%s", width, height, hash_array(mask))
            plot_illumination_mask(
                mask,
                title=f"Illumination — {format_time_label(start)} UTC",
                output_path=output_dir / "mask.png",
            )

        if args.day is None or args.night is None:
            if not args.plot_mask:
                logger.error("--day and --night are required unless --plot-mask is given")
                return 1
            return 0

        world = WorldMap(
            load_image(args.day),
            load_image(args.night),
            time=start,
            resample=config.render.resample,
            bands=config.engine.bands,
        )

        clouds = None
        if args.clouds:
            alpha = args.cloud_alpha if args.cloud_alpha is not None else config.clouds.alpha
            clouds = CloudLayer(load_image(args.clouds), alpha, config.render.resample)

        step_months = (
            args.step_months if args.step_months is not None
            else config.clock.step_months
        )
        step_hours = (
            args.step_hours if args.step_hours is not None
            else config.clock.step_hours
        )
        clock = SimulationClock(
            start, step_months=step_months, step=timedelta(hours=step_hours)
        )

        if args.live:
            interval = (
                args.interval if args.interval is not None else config.clock.interval_s
            )
            if not _run_live(
                world, clock, interval, args.frames, width, height, output_dir, clouds
            ):
                logger.error("Live rendering stopped on a failed tick")
                return 1
            saved = [output_dir / "world.png"]
        elif frames > 1:
            saved = render_sequence(
                world, clock, frames, width, height, output_dir, clouds
            )
            if args.plot_mask:
                clock.reset()
                times = [clock.now] + [clock.advance() for _ in range(frames - 1)]
                track_path = output_dir / "subsolar_track.png"
                plot_subsolar_track(
                    times,
                    title=f"Sub-solar Point — {frames} frames",
                    output_path=track_path,
                )
                saved.append(track_path)
        else:
            saved = [render_frame(world, width, height, output_dir / "world.png", clouds)]

    except (SunclockError, FileNotFoundError, ValueError) as e:
        logger.error("%s", e)
        return 1

    logger.info("  Output files (%d):", len(saved))
    for p in saved:
        logger.info("    → %s", p)
    logger.info("=" * 60)

    return 0


if __name__ == "__main__":
    sys.exit(main())

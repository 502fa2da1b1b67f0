"""Tests for the plotting helpers and the command-line entry point."""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

import numpy as np
import pytest
from matplotlib.figure import Figure
from PIL import Image

from main import main, parse_args
from solar_engine.mask import compute_mask
from visualization.plotter import plot_illumination_mask, plot_subsolar_track


# ===================================================================
# PLOTTER
# ===================================================================


class TestPlotter:
    """Figures are produced and saved."""

    def test_mask_plot_saved(self, tmp_path: Path, noon_j2000: datetime) -> None:
        mask = compute_mask(noon_j2000, 72, 36)
        out = tmp_path / "plots" / "mask.png"
        fig = plot_illumination_mask(mask, output_path=out)
        assert isinstance(fig, Figure)
        assert out.exists()

    def test_subsolar_track(self, tmp_path: Path) -> None:
        start = datetime(2000, 1, 1)
        times = [start + timedelta(hours=6 * k) for k in range(12)]
        out = tmp_path / "track.png"
        fig = plot_subsolar_track(times, output_path=out)
        assert len(fig.axes) == 2
        assert out.exists()


# ===================================================================
# CLI
# ===================================================================


def _save_map(path: Path, value: int) -> Path:
    Image.fromarray(np.full((36, 72, 3), value, dtype=np.uint8)).save(path)
    return path


class TestCli:
    """``main`` exit codes and outputs."""

    def test_defaults(self) -> None:
        args = parse_args([])
        assert args.frames is None
        assert args.config == "config/default_config.yaml"
        assert not args.plot_mask
        assert not args.live
        assert args.interval is None

    @pytest.mark.parametrize("option", ["--frames", "--width", "--height"])
    @pytest.mark.parametrize("value", ["0", "-3", "ten"])
    def test_counts_must_be_positive(self, option: str, value: str) -> None:
        with pytest.raises(SystemExit):
            parse_args([option, value])

    def test_mask_only(self, tmp_path: Path, default_config_path: Path) -> None:
        code = main([
            "--config", str(default_config_path),
            "--plot-mask",
            "--time", "2000-01-01T12:00",
            "--width", "72", "--height", "36",
            "--output", str(tmp_path),
        ])
        assert code == 0
        assert (tmp_path / "mask.png").exists()

    def test_images_required(self, tmp_path: Path, default_config_path: Path) -> None:
        code = main(["--config", str(default_config_path), "--output", str(tmp_path)])
        assert code == 1

    def test_single_frame(self, tmp_path: Path, default_config_path: Path) -> None:
        day = _save_map(tmp_path / "day.png", 255)
        night = _save_map(tmp_path / "night.png", 0)
        out = tmp_path / "out"
        code = main([
            "--config", str(default_config_path),
            "--day", str(day), "--night", str(night),
            "--time", "2000-01-01T12:00:00Z",
            "--width", "144", "--height", "72",
            "--output", str(out),
        ])
        assert code == 0
        with Image.open(out / "world.png") as img:
            assert img.size == (144, 72)

    def test_sequence(self, tmp_path: Path, default_config_path: Path) -> None:
        day = _save_map(tmp_path / "day.png", 255)
        night = _save_map(tmp_path / "night.png", 0)
        clouds = _save_map(tmp_path / "clouds.png", 128)
        out = tmp_path / "seq"
        code = main([
            "--config", str(default_config_path),
            "--day", str(day), "--night", str(night), "--clouds", str(clouds),
            "--time", "2000-06-21T12:00",
            "--plot-mask",
            "--frames", "2", "--step-hours", "6", "--step-months", "0",
            "--width", "72", "--height", "36",
            "--output", str(out),
        ])
        assert code == 0
        assert (out / "frame_0001.png").exists()
        assert (out / "frames.json").exists()
        assert (out / "subsolar_track.png").exists()

    def test_missing_image(self, tmp_path: Path, default_config_path: Path) -> None:
        night = _save_map(tmp_path / "night.png", 0)
        code = main([
            "--config", str(default_config_path),
            "--day", str(tmp_path / "missing.png"), "--night", str(night),
            "--output", str(tmp_path),
        ])
        assert code == 1

    def test_mismatched_images(self, tmp_path: Path, default_config_path: Path) -> None:
        day = _save_map(tmp_path / "day.png", 255)
        night = tmp_path / "night.png"
        Image.new("RGB", (70, 36)).save(night)
        code = main([
            "--config", str(default_config_path),
            "--day", str(day), "--night", str(night),
            "--output", str(tmp_path),
        ])
        assert code == 1

    def test_explicit_size_overrides_config(
        self, tmp_path: Path, default_config_path: Path
    ) -> None:
        day = _save_map(tmp_path / "day.png", 255)
        night = _save_map(tmp_path / "night.png", 0)
        out = tmp_path / "sized"
        code = main([
            "--config", str(default_config_path),
            "--day", str(day), "--night", str(night),
            "--time", "2000-01-01T12:00",
            "--width", "1", "--height", "1",
            "--output", str(out),
        ])
        assert code == 0
        with Image.open(out / "world.png") as img:
            assert img.size == (1, 1)

    def test_live(self, tmp_path: Path, default_config_path: Path) -> None:
        day = _save_map(tmp_path / "day.png", 255)
        night = _save_map(tmp_path / "night.png", 0)
        out = tmp_path / "live"
        code = main([
            "--config", str(default_config_path),
            "--day", str(day), "--night", str(night),
            "--time", "2000-01-01T12:00",
            "--live", "--frames", "2", "--interval", "0.01",
            "--step-hours", "12", "--step-months", "0",
            "--width", "72", "--height", "36",
            "--output", str(out),
        ])
        assert code == 0
        # Second tick is 2000-01-02 00:00, midnight at Greenwich
        with Image.open(out / "world.png") as img:
            assert img.size == (72, 36)
            assert img.getpixel((36, 17))[:3] == (0, 0, 0)

    def test_live_bad_interval(self, tmp_path: Path, default_config_path: Path) -> None:
        day = _save_map(tmp_path / "day.png", 255)
        night = _save_map(tmp_path / "night.png", 0)
        code = main([
            "--config", str(default_config_path),
            "--day", str(day), "--night", str(night),
            "--live", "--frames", "1", "--interval", "0",
            "--output", str(tmp_path / "live"),
        ])
        assert code == 1

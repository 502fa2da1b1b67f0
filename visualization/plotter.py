"""Visualization module for illumination masks and the sub-solar track.

Generates figures using matplotlib:
- Illumination mask on a longitude/latitude grid (three-level colour map)
- Sub-solar longitude and declination over a sequence of instants
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

import matplotlib

matplotlib.use("Agg")  # Non-interactive backend for headless rendering

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.colors import BoundaryNorm, ListedColormap
from matplotlib.patches import Patch

from solar_engine.ephemeris import solar_position, subsolar_longitude

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Color Configuration
# ---------------------------------------------------------------------------

_MASK_COLORS = ("#f2d16b", "#3b5b92", "#0b1026")  # day, civil night, twilight night
_MASK_LABELS = ("Day", "Below sea-level horizon", "Below twilight horizon")
_MASK_LEVELS = (0x00, 0x80, 0xFF)
_BACKGROUND = "#1a1a2e"
_DPI = 150


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def plot_illumination_mask(
    mask: np.ndarray,
    title: str = "Illumination Mask",
    output_path: Path | str | None = None,
    dpi: int = _DPI,
) -> plt.Figure:
    """Plot a night-layer alpha mask on a longitude/latitude grid.

    Parameters
    ----------
    mask : np.ndarray
        Alpha bytes (0, 0x80, 0xFF). Shape: (height, width).
    title : str
        Figure title.
    output_path : Path or str, optional
        If provided, save figure to this path.
    dpi : int
        Figure resolution.

    Returns
    -------
    matplotlib.figure.Figure
        The generated figure.
    """
    levels = np.searchsorted(_MASK_LEVELS, mask)
    cmap = ListedColormap(_MASK_COLORS)
    norm = BoundaryNorm([-0.5, 0.5, 1.5, 2.5], cmap.N)

    fig, ax = plt.subplots(1, 1, figsize=(12, 6), facecolor=_BACKGROUND)
    ax.set_facecolor(_BACKGROUND)

    ax.imshow(
        levels,
        cmap=cmap,
        norm=norm,
        extent=(-180.0, 180.0, -90.0, 90.0),
        aspect="auto",
        interpolation="nearest",
    )

    ax.legend(
        handles=[Patch(color=c, label=l) for c, l in zip(_MASK_COLORS, _MASK_LABELS)],
        loc="lower left",
        fontsize=8,
        framealpha=0.8,
    )
    ax.set_xlabel("Longitude [deg]", color="white")
    ax.set_ylabel("Latitude [deg]", color="white")
    ax.set_title(title, fontsize=14, fontweight="bold", color="white")
    ax.set_xticks(np.arange(-180, 181, 60))
    ax.set_yticks(np.arange(-90, 91, 30))
    ax.tick_params(colors="white")

    for spine in ax.spines.values():
        spine.set_edgecolor("#444")

    fig.tight_layout()

    if output_path is not None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path, dpi=dpi, facecolor=fig.get_facecolor())
        logger.info("Illumination mask plot saved: %s", output_path)

    plt.close(fig)
    return fig


def plot_subsolar_track(
    times: Sequence[datetime],
    title: str = "Sub-solar Point",
    output_path: Path | str | None = None,
    dpi: int = _DPI,
) -> plt.Figure:
    """Plot sub-solar longitude and solar declination over time.

    The CLI writes this as ``subsolar_track.png`` for multi-frame runs
    with ``--plot-mask``, one point per rendered frame.

    Parameters
    ----------
    times : sequence of datetime
        Instants to evaluate (UTC).
    title : str
        Figure title.
    output_path : Path or str, optional
        If provided, save figure to this path.
    dpi : int
        Figure resolution.

    Returns
    -------
    matplotlib.figure.Figure
        The generated figure.
    """
    longitudes = [subsolar_longitude(t) for t in times]
    declinations = [math.degrees(solar_position(t).declination_rad) for t in times]

    fig, (ax_lon, ax_dec) = plt.subplots(2, 1, figsize=(10, 6), sharex=True)

    ax_lon.plot(times, longitudes, color="#e07a5f", linewidth=1.2)
    ax_lon.set_ylabel("Longitude [deg W]")
    ax_lon.set_ylim(-180, 180)
    ax_lon.grid(True, alpha=0.3)

    ax_dec.plot(times, declinations, color="#3d405b", linewidth=1.2)
    ax_dec.set_ylabel("Declination [deg]")
    ax_dec.set_xlabel("Time (UTC)")
    ax_dec.grid(True, alpha=0.3)

    fig.suptitle(title, fontsize=13, fontweight="bold")
    fig.autofmt_xdate()
    fig.tight_layout()

    if output_path is not None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path, dpi=dpi)
        logger.info("Sub-solar track plot saved: %s", output_path)

    plt.close(fig)
    return fig

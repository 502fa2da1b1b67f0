"""Day/night illumination mask for equirectangular world maps.

For every pixel of a ``width × height`` map the analytic sunrise/sunset
test is evaluated against one or more horizon bands. A pixel whose local
time falls outside the band's rise/set window (or that never rises above
the band's altitude today) is marked with the band's classification.

Pipeline
--------
1. Solar position (α, δ, θ) and fractional UTC day f from the timestamp.
2. Row i → latitude ``90 − i·180/height``; column j → west-positive
   longitude ``180 − j·360/width``.
3. Per band: ``cos H0 = (sin h0 − sin φ sin δ) / (cos φ cos δ)``.
   - ``cos H0 > 1``: the Sun never climbs above h0 → marked.
   - ``cos H0 < −1``: the Sun never sinks below h0 → untouched.
   - otherwise transit/rise/set day fractions m0, m1, m2 decide.
4. Row i is written to output row ``height − i − 1``.

Bands are evaluated in order and a later band overwrites an earlier one,
so the twilight band (stored last) wins where both mark a pixel.

Notes
-----
The per-pixel loops are compiled with Numba ``@njit(cache=True)``; rows are
split across threads with ``prange`` and each row writes only its own
output row. ``cos H0`` depends on latitude alone and is evaluated once per
row and band.
"""

from __future__ import annotations

import logging
import math
import operator
import time
from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum

import numpy as np
from numba import njit, prange

from solar_engine.ephemeris import solar_position
from solar_engine.errors import InvalidArgumentError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Horizon Altitudes [deg]
# ---------------------------------------------------------------------------

HORIZON_SEA_LEVEL_DEG: float = -50.0 / 60.0
HORIZON_TWILIGHT_DEG: float = -360.0 / 45.0


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class Illumination(IntEnum):
    """Per-pixel illumination class."""

    DAY = 0
    CIVIL_NIGHT = 1
    TWILIGHT_NIGHT = 2

    @property
    def alpha(self) -> int:
        """Night-layer opacity byte for this class."""
        return int(ALPHA_BY_CLASS[self])


# Indexed by Illumination value
ALPHA_BY_CLASS: np.ndarray = np.array([0x00, 0x80, 0xFF], dtype=np.uint8)


@dataclass(frozen=True)
class HorizonBand:
    """An altitude threshold and the class given to pixels below it.

    Attributes
    ----------
    name : str
        Label used in logs and configuration.
    altitude_deg : float
        Solar altitude h0 of the horizon [deg]; negative = below the
        geometric horizon.
    classification : Illumination
        Class written to pixels where the Sun is below ``altitude_deg``.
    """

    name: str
    altitude_deg: float
    classification: Illumination


DEFAULT_BANDS: tuple[HorizonBand, ...] = (
    HorizonBand("sea_level", HORIZON_SEA_LEVEL_DEG, Illumination.CIVIL_NIGHT),
    HorizonBand("twilight", HORIZON_TWILIGHT_DEG, Illumination.TWILIGHT_NIGHT),
)


# ===================================================================
# PER-PIXEL KERNELS — Numba JIT
# ===================================================================


@njit(cache=True, fastmath=False)
def cos_hour_angle(
    sin_h0: float,
    sin_lat: float,
    cos_lat: float,
    sin_dec: float,
    cos_dec: float,
) -> float:
    """Cosine of the hour angle at which the Sun crosses altitude h0.

    A zero denominator (pole or δ = ±90°) returns a signed infinity
    following IEEE division, so the caller's ``> 1`` / ``< -1`` branches
    apply. ``0 / 0`` returns ``-inf`` (never marked).
    """
    numerator = sin_h0 - sin_lat * sin_dec
    denominator = cos_lat * cos_dec
    if denominator == 0.0:
        if numerator == 0.0:
            return -np.inf
        return math.copysign(np.inf, numerator) * math.copysign(1.0, denominator)
    return numerator / denominator


@njit(cache=True, fastmath=False)
def wrap_day_fraction(value: float) -> float:
    """Bring a day fraction into [0, 1) by repeated ±1 steps."""
    while value < 0.0:
        value += 1.0
    while value >= 1.0:
        value -= 1.0
    return value


@njit(cache=True, fastmath=False)
def is_below_horizon(ftime: float, m1: float, m2: float) -> bool:
    """Dark test for rise fraction ``m1`` and set fraction ``m2``.

    Strict comparisons throughout; ``m1 == m2`` is never dark.
    """
    if m1 < m2:
        return ftime < m1 or ftime > m2
    if m1 > m2:
        return ftime > m2 and ftime < m1
    return False


@njit(cache=True, parallel=True, fastmath=False)
def _classify_grid(
    width: int,
    height: int,
    alpha_deg: float,
    sin_dec: float,
    cos_dec: float,
    theta_deg: float,
    ftime: float,
    sin_horizons: np.ndarray,
    band_codes: np.ndarray,
) -> np.ndarray:
    """Classify every pixel of a ``height × width`` map.

    Parameters
    ----------
    width, height : int
        Grid size (both > 0).
    alpha_deg : float
        Apparent right ascension [deg].
    sin_dec, cos_dec : float
        Sine and cosine of the apparent declination.
    theta_deg : float
        Mean Greenwich sidereal time [deg].
    ftime : float
        UTC time of day as a fraction of 24 h.
    sin_horizons : np.ndarray
        ``sin(h0)`` per band, in evaluation order. Shape: (num_bands,).
    band_codes : np.ndarray
        Class written by each band. Shape: (num_bands,), uint8.

    Returns
    -------
    grid : np.ndarray
        Illumination class per pixel. Shape: (height, width), uint8.
    """
    grid = np.zeros((height, width), dtype=np.uint8)
    num_bands = sin_horizons.shape[0]

    for row in prange(height):
        i = np.int64(row)  # prange may yield an unsigned index
        latitude = 90.0 - i * 180.0 / height
        lat_rad = math.radians(latitude)
        sin_lat = math.sin(lat_rad)
        cos_lat = math.cos(lat_rad)
        y = height - i - 1

        for k in range(num_bands):
            code = band_codes[k]
            cos_h0 = cos_hour_angle(sin_horizons[k], sin_lat, cos_lat, sin_dec, cos_dec)

            if cos_h0 > 1.0:
                # Never above this horizon today
                for j in range(width):
                    grid[y, j] = code
            elif cos_h0 >= -1.0:
                h0 = math.degrees(math.acos(cos_h0))
                for j in range(width):
                    longitude = 180.0 - j * 360.0 / width
                    m0 = wrap_day_fraction((alpha_deg + longitude - theta_deg) / 360.0)
                    m1 = wrap_day_fraction(m0 - h0 / 360.0)
                    m2 = wrap_day_fraction(m0 + h0 / 360.0)
                    if is_below_horizon(ftime, m1, m2):
                        grid[y, j] = code

    return grid


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def compute_classification(
    timestamp: datetime | int | float,
    width: int,
    height: int,
    bands: tuple[HorizonBand, ...] = DEFAULT_BANDS,
) -> np.ndarray:
    """Classify every pixel of a world map as day, civil night or twilight night.

    Parameters
    ----------
    timestamp : datetime, int or float
        Instant (epoch milliseconds or ``datetime``, read as UTC).
    width, height : int
        Map size in pixels. Zero yields an empty grid.
    bands : tuple[HorizonBand, ...]
        Horizon bands in evaluation order.

    Returns
    -------
    np.ndarray
        :class:`Illumination` codes. Shape: (height, width), uint8, row 0 at
        the top of the delivered map.

    Raises
    ------
    InvalidArgumentError
        If a dimension is negative or not an integer.
    """
    width = _grid_dimension("width", width)
    height = _grid_dimension("height", height)

    if width == 0 or height == 0:
        return np.zeros((height, width), dtype=np.uint8)

    pos = solar_position(timestamp)
    sin_horizons = np.array(
        [math.sin(math.radians(b.altitude_deg)) for b in bands], dtype=np.float64
    )
    band_codes = np.array([int(b.classification) for b in bands], dtype=np.uint8)

    t0 = time.perf_counter()
    grid = _classify_grid(
        width,
        height,
        pos.right_ascension_deg,
        math.sin(pos.declination_rad),
        math.cos(pos.declination_rad),
        pos.sidereal_time_deg,
        pos.fractional_day,
        sin_horizons,
        band_codes,
    )
    logger.debug(
        "Classified %dx%d grid in %.3f s (%d bands, night fraction=%.3f)",
        width, height, time.perf_counter() - t0, len(bands),
        float(np.count_nonzero(grid)) / grid.size,
    )
    return grid


def classification_to_alpha(grid: np.ndarray) -> np.ndarray:
    """Map :class:`Illumination` codes to night-layer alpha bytes."""
    return ALPHA_BY_CLASS[grid]


def compute_mask(
    timestamp: datetime | int | float,
    width: int,
    height: int,
    bands: tuple[HorizonBand, ...] = DEFAULT_BANDS,
) -> np.ndarray:
    """Compute the night-layer alpha mask for a world map.

    Parameters
    ----------
    timestamp : datetime, int or float
        Instant (epoch milliseconds or ``datetime``, read as UTC).
    width, height : int
        Map size in pixels.
    bands : tuple[HorizonBand, ...]
        Horizon bands in evaluation order.

    Returns
    -------
    np.ndarray
        One alpha byte per pixel: 0 (day), 0x80 (civil night) or 0xFF
        (twilight night). Shape: (height, width), uint8, row-major.
    """
    return classification_to_alpha(compute_classification(timestamp, width, height, bands))


def _grid_dimension(name: str, value: int) -> int:
    """Validate a grid dimension as a non-negative integer."""
    if isinstance(value, bool):
        raise InvalidArgumentError(f"{name} must be an integer, got {value!r}")
    try:
        value = operator.index(value)
    except TypeError as e:
        raise InvalidArgumentError(f"{name} must be an integer, got {value!r}") from e
    if value < 0:
        raise InvalidArgumentError(f"{name} must be >= 0, got {value}")
    return value

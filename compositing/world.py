"""World map composite cache — day/night blend with two cache slots.

``WorldMap`` binds a day image, a night image and a timestamp. ``render``
produces the blended map at a requested display size and keeps two
single-slot caches:

1. **Composite** (full source resolution), keyed by the timestamp whose
   mask produced it. Rebuilt when the bound timestamp changes.
2. **Scaled instance**, keyed by the composite entry it was scaled from
   and the requested size. Rebuilt when either changes.

Concurrency
-----------
A producer thread may call ``set_time`` while a consumer renders. Each slot
holds an immutable entry object and is published with a single attribute
store, and ``render`` reads the bound timestamp exactly once, so a race
yields either the previous or the next frame, never a composite built
from one timestamp and cached under another. Concurrent ``render`` calls
may overwrite each other's entries (latest wins).
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime

import numpy as np
from PIL import Image

from compositing.images import (
    apply_alpha_mask,
    ensure_rgba,
    resample_filter,
    scale,
    validate_dimensions,
)
from solar_engine.errors import ConfigurationError
from solar_engine.mask import DEFAULT_BANDS, HorizonBand, compute_mask
from solar_engine.timebase import now_millis, to_epoch_millis

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Cache Entries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CompositeEntry:
    """Full-resolution composite and the timestamp it was built for.

    Attributes
    ----------
    timestamp : int
        Epoch milliseconds used for the mask.
    mask : np.ndarray
        Night-layer alpha mask. Shape: (height, width), uint8.
    image : PIL.Image.Image
        Day image with the masked night image drawn over it (RGBA).
    """

    timestamp: int
    mask: np.ndarray
    image: Image.Image


@dataclass(frozen=True)
class ScaledEntry:
    """Display-size copy of a composite.

    Attributes
    ----------
    source : CompositeEntry
        Composite this instance was scaled from.
    width, height : int
        Requested display size.
    image : PIL.Image.Image
        Scaled image.
    """

    source: CompositeEntry
    width: int
    height: int
    image: Image.Image


# ---------------------------------------------------------------------------
# World Map
# ---------------------------------------------------------------------------


class WorldMap:
    """Day/night world map with lazy, timestamp-keyed recomposition.

    Parameters
    ----------
    day : PIL.Image.Image or np.ndarray
        Daylight map (equirectangular, 180°W at the left edge).
    night : PIL.Image.Image or np.ndarray
        Night map with the same pixel dimensions as ``day``.
    time : datetime, int or float, optional
        Initial timestamp; defaults to the current time.
    resample : str
        Pillow filter used to scale the composite to the display size.
    bands : tuple[HorizonBand, ...]
        Horizon bands passed to the mask engine.

    Raises
    ------
    ConfigurationError
        If the day and night images differ in size.
    """

    def __init__(
        self,
        day: Image.Image | np.ndarray,
        night: Image.Image | np.ndarray,
        time: datetime | int | float | None = None,
        resample: str = "bilinear",
        bands: tuple[HorizonBand, ...] = DEFAULT_BANDS,
    ) -> None:
        day = ensure_rgba(day)
        night = ensure_rgba(night)

        if day.size != night.size:
            raise ConfigurationError(
                f"Day image {day.width}x{day.height} and night image "
                f"{night.width}x{night.height} must have identical dimensions"
            )

        resample_filter(resample)

        self._day = day.copy()
        self._night = night.copy()
        self._resample = resample
        self._bands = bands
        self._time = now_millis() if time is None else to_epoch_millis(time)

        self._composite: CompositeEntry | None = None
        self._scaled: ScaledEntry | None = None

        logger.info(
            "WorldMap initialized: %dx%d source, %d bands, resample=%s",
            day.width, day.height, len(bands), resample,
        )

    @property
    def size(self) -> tuple[int, int]:
        """Source image size (width, height)."""
        return self._day.size

    @property
    def time(self) -> int:
        """Bound timestamp (epoch milliseconds)."""
        return self._time

    def set_time(self, timestamp: datetime | int | float) -> None:
        """Bind a new timestamp. The cache is checked on the next render."""
        self._time = to_epoch_millis(timestamp)

    def composite(self) -> Image.Image:
        """Full-resolution composite for the bound timestamp."""
        return self._current_composite(self._time).image

    def mask(self) -> np.ndarray:
        """Night-layer alpha mask for the bound timestamp."""
        return self._current_composite(self._time).mask

    def render(self, width: float, height: float) -> Image.Image:
        """Render the map at the requested display size.

        Parameters
        ----------
        width, height : int or float
            Display size in pixels (non-negative, finite).

        Returns
        -------
        PIL.Image.Image
            The scaled composite. Returned from cache (same object) when
            neither the timestamp nor the size changed since the last call.

        Raises
        ------
        InvalidArgumentError
            If the size is negative or non-finite.
        """
        width, height = validate_dimensions(width, height)

        composite = self._current_composite(self._time)

        scaled = self._scaled
        if (
            scaled is None
            or scaled.source is not composite
            or scaled.width != width
            or scaled.height != height
        ):
            scaled = ScaledEntry(
                source=composite,
                width=width,
                height=height,
                image=scale(composite.image, width, height, self._resample),
            )
            self._scaled = scaled
            logger.debug("Scaled composite to %dx%d", width, height)
        else:
            logger.debug("Scaled cache hit (%dx%d)", width, height)

        return scaled.image

    def _current_composite(self, timestamp: int) -> CompositeEntry:
        """Return the composite for ``timestamp``, rebuilding if stale."""
        composite = self._composite
        if composite is None or composite.timestamp != timestamp:
            composite = self._build_composite(timestamp)
            self._composite = composite
        return composite

    def _build_composite(self, timestamp: int) -> CompositeEntry:
        """Blend the night image over the day image through a fresh mask."""
        t0 = time.perf_counter()
        width, height = self._day.size

        mask = compute_mask(timestamp, width, height, self._bands)
        night = apply_alpha_mask(self._night, mask)
        image = Image.alpha_composite(self._day, night)

        logger.info(
            "Built %dx%d composite for t=%d ms in %.3f s",
            width, height, timestamp, time.perf_counter() - t0,
        )
        return CompositeEntry(timestamp=timestamp, mask=mask, image=image)

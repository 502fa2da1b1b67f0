"""Cloud overlay drawn on top of a rendered world map."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from PIL import Image

from compositing.images import brightness_to_alpha, scale, validate_dimensions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _ScaledClouds:
    width: int
    height: int
    image: Image.Image


class CloudLayer:
    """Semi-transparent cloud map with a size-keyed scaled cache.

    Parameters
    ----------
    clouds : PIL.Image.Image or np.ndarray
        Cloud map (bright clouds on a dark background).
    alpha : float or int
        Opacity of the brightest pixel: float in [0, 1] or int in [0, 255].
    resample : str
        Pillow filter used for scaling.
    """

    def __init__(
        self,
        clouds: Image.Image | np.ndarray,
        alpha: float | int = 0.4,
        resample: str = "bilinear",
    ) -> None:
        if clouds is None:
            raise TypeError("clouds must not be None")
        self._clouds = brightness_to_alpha(clouds, alpha)
        self._resample = resample
        self._scaled: _ScaledClouds | None = None

        logger.info(
            "CloudLayer initialized: %dx%d, alpha=%s",
            self._clouds.width, self._clouds.height, alpha,
        )

    @property
    def size(self) -> tuple[int, int]:
        """Source cloud map size (width, height)."""
        return self._clouds.size

    def render(self, width: float, height: float) -> Image.Image:
        """Cloud layer scaled to ``width × height`` (cached per size)."""
        width, height = validate_dimensions(width, height)

        scaled = self._scaled
        if scaled is None or scaled.width != width or scaled.height != height:
            scaled = _ScaledClouds(
                width, height, scale(self._clouds, width, height, self._resample)
            )
            self._scaled = scaled
        return scaled.image

    def overlay(self, base: Image.Image) -> Image.Image:
        """Draw the clouds over ``base``; returns a new RGBA image."""
        clouds = self.render(base.width, base.height)
        return Image.alpha_composite(base.convert("RGBA"), clouds)

"""Image helpers for the compositing layer (Pillow + NumPy).

Images travel as RGBA :class:`PIL.Image.Image` objects. Helpers never
mutate their inputs; every transformation returns a new image.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path

import numpy as np
from PIL import Image

from solar_engine.errors import ConfigurationError, InvalidArgumentError

logger = logging.getLogger(__name__)

_RESAMPLE = {
    "nearest": Image.Resampling.NEAREST,
    "bilinear": Image.Resampling.BILINEAR,
    "bicubic": Image.Resampling.BICUBIC,
    "lanczos": Image.Resampling.LANCZOS,
}


def resample_filter(name: str) -> Image.Resampling:
    """Look up a Pillow resampling filter by name."""
    try:
        return _RESAMPLE[name.lower()]
    except KeyError as e:
        raise InvalidArgumentError(
            f"Unknown resample filter '{name}', expected one of {sorted(_RESAMPLE)}"
        ) from e


def validate_dimensions(width: float, height: float) -> tuple[int, int]:
    """Check a requested display size and return it as integers.

    Raises
    ------
    InvalidArgumentError
        If a dimension is not a real number, is non-finite, or negative.
    """
    result = []
    for name, value in (("width", width), ("height", height)):
        if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
            raise InvalidArgumentError(f"{name} must be a number, got {value!r}")
        if not math.isfinite(value):
            raise InvalidArgumentError(f"{name} must be finite, got {value!r}")
        if value < 0:
            raise InvalidArgumentError(f"{name} must be >= 0, got {value!r}")
        result.append(int(value))
    return result[0], result[1]


def ensure_rgba(image: Image.Image | np.ndarray) -> Image.Image:
    """Return ``image`` as an RGBA Pillow image.

    Parameters
    ----------
    image : PIL.Image.Image or np.ndarray
        Pillow image of any mode, or a ``uint8`` array of shape
        (H, W), (H, W, 3) or (H, W, 4).

    Returns
    -------
    PIL.Image.Image
        RGBA image; opaque alpha is added when the source has none.
    """
    if isinstance(image, np.ndarray):
        if image.dtype != np.uint8 or image.ndim not in (2, 3):
            raise InvalidArgumentError(
                f"Image arrays must be uint8 with 2 or 3 dims, got "
                f"{image.dtype} {image.shape}"
            )
        if image.ndim == 3 and image.shape[2] not in (3, 4):
            raise InvalidArgumentError(f"Unsupported channel count: {image.shape[2]}")
        image = Image.fromarray(image)

    if not isinstance(image, Image.Image):
        raise InvalidArgumentError(f"Expected a PIL image or array, got {type(image).__name__}")

    if image.mode == "RGBA":
        return image
    return image.convert("RGBA")


def load_image(path: str | Path) -> Image.Image:
    """Load an image file as RGBA."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")

    with Image.open(path) as img:
        rgba = ensure_rgba(img)
        rgba.load()

    logger.info("Loaded image %s: %dx%d", path, rgba.width, rgba.height)
    return rgba


def apply_alpha_mask(image: Image.Image, mask: np.ndarray) -> Image.Image:
    """Return a copy of ``image`` whose alpha channel is ``mask``.

    Parameters
    ----------
    image : PIL.Image.Image
        Source image (left untouched).
    mask : np.ndarray
        Alpha bytes. Shape: (image.height, image.width), uint8.
    """
    if mask.shape != (image.height, image.width):
        raise ConfigurationError(
            f"Mask shape {mask.shape} does not match image size "
            f"{image.width}x{image.height}"
        )
    masked = ensure_rgba(image).copy()
    masked.putalpha(Image.fromarray(np.ascontiguousarray(mask, dtype=np.uint8)))
    return masked


def brightness_to_alpha(image: Image.Image, alpha: float | int) -> Image.Image:
    """Turn image brightness into an alpha channel.

    Each pixel keeps its colour and gets ``alpha × brightness`` as opacity,
    with brightness the HSB value ``max(r, g, b) / 255``.

    Parameters
    ----------
    image : PIL.Image.Image
        Source image (e.g. a cloud map, white on black).
    alpha : float or int
        Peak opacity: a float in [0, 1] or an int in [0, 255].

    Raises
    ------
    InvalidArgumentError
        If ``alpha`` is out of range.
    """
    if isinstance(alpha, (float, np.floating)):
        if not (0.0 <= alpha <= 1.0):
            raise InvalidArgumentError(f"alpha={alpha}")
        alpha = int(255.0 * float(alpha))
    if isinstance(alpha, bool) or not (0 <= alpha <= 255):
        raise InvalidArgumentError(f"alpha={alpha}")

    rgba = np.array(ensure_rgba(image), dtype=np.uint8)
    brightness = rgba[..., :3].max(axis=2).astype(np.float32) / np.float32(255.0)
    rgba[..., 3] = (brightness * np.float32(alpha)).astype(np.uint8)
    return Image.fromarray(rgba)


def scale(
    image: Image.Image,
    width: float,
    height: float,
    resample: str = "bilinear",
) -> Image.Image:
    """Scale ``image`` to ``width × height``.

    Zero-area requests return an empty image instead of failing.
    """
    width, height = validate_dimensions(width, height)
    if width == 0 or height == 0:
        return Image.new(image.mode, (width, height))
    return image.resize((width, height), resample=resample_filter(resample))

"""Configuration dataclasses and YAML loader.

Tunable values (horizon bands, display size, cloud opacity, clock step)
are loaded from a YAML configuration file into frozen dataclasses. The
astronomical series coefficients live with the formulas in
:mod:`solar_engine.ephemeris`; everything an operator may want to change
lives here.
"""

from __future__ import annotations

import hashlib
import logging
import platform
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import matplotlib
import numba
import numpy as np
import PIL
import yaml

from solar_engine.errors import ConfigurationError
from solar_engine.mask import DEFAULT_BANDS, HorizonBand, Illumination

logger = logging.getLogger(__name__)

_RESAMPLE_FILTERS = ("nearest", "bilinear", "bicubic", "lanczos")


# ---------------------------------------------------------------------------
# Configuration Data Classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EngineConfig:
    """Mask engine configuration.

    Attributes
    ----------
    bands : tuple[HorizonBand, ...]
        Horizon bands in evaluation order.
    """

    bands: tuple[HorizonBand, ...] = DEFAULT_BANDS


@dataclass(frozen=True)
class RenderConfig:
    """Display configuration.

    Attributes
    ----------
    display_width : int
        Default output width [px].
    display_height : int
        Default output height [px].
    resample : str
        Pillow resampling filter name used when scaling the composite.
    """

    display_width: int = 1000
    display_height: int = 500
    resample: str = "bilinear"


@dataclass(frozen=True)
class CloudConfig:
    """Cloud overlay configuration.

    Attributes
    ----------
    alpha : float
        Opacity of the brightest cloud pixel, in [0, 1].
    """

    alpha: float = 0.4


@dataclass(frozen=True)
class ClockConfig:
    """Simulated clock configuration.

    Attributes
    ----------
    step_months : int
        Calendar months added per tick.
    step_hours : float
        Hours added per tick (after the month step).
    interval_s : float
        Wall-clock delay between ticks [s].
    """

    step_months: int = 1
    step_hours: float = 0.0
    interval_s: float = 3.0


@dataclass
class SunclockConfig:
    """Top-level configuration loaded from YAML.

    Attributes
    ----------
    engine : EngineConfig
        Mask engine configuration.
    render : RenderConfig
        Display configuration.
    clouds : CloudConfig
        Cloud overlay configuration.
    clock : ClockConfig
        Simulated clock configuration.
    source : Path or None
        File the configuration was read from.
    """

    engine: EngineConfig = field(default_factory=EngineConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    clouds: CloudConfig = field(default_factory=CloudConfig)
    clock: ClockConfig = field(default_factory=ClockConfig)
    source: Path | None = None


# ---------------------------------------------------------------------------
# Configuration Loader
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path) -> SunclockConfig:
    """Load and validate a configuration from a YAML file.

    Parameters
    ----------
    config_path : str or Path
        Path to the YAML configuration file.

    Returns
    -------
    SunclockConfig
        Fully populated, typed configuration object.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist.
    ConfigurationError
        If required keys are missing or values are invalid.
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        raw: dict[str, Any] = yaml.safe_load(f) or {}

    logger.info("Loading configuration from: %s", config_path)

    try:
        config = _parse_config(raw)
    except (KeyError, TypeError, ValueError) as e:
        if isinstance(e, ConfigurationError):
            raise
        raise ConfigurationError(f"Invalid configuration in {config_path}: {e!r}") from e

    config.source = config_path
    _validate_config(config)
    logger.info(
        "Configuration loaded: %d horizon bands, display %dx%d",
        len(config.engine.bands),
        config.render.display_width,
        config.render.display_height,
    )
    return config


def _parse_config(raw: dict[str, Any]) -> SunclockConfig:
    """Build the dataclass tree from the raw YAML mapping."""
    # --- Parse horizon bands ---
    eng = raw["engine"]
    bands = tuple(
        HorizonBand(
            name=str(h["name"]),
            altitude_deg=float(h["altitude_arcmin"]) / 60.0,
            classification=_parse_classification(h["classification"]),
        )
        for h in eng["horizons"]
    )

    # --- Parse render config ---
    ren = raw["render"]
    render = RenderConfig(
        display_width=int(ren["display_width"]),
        display_height=int(ren["display_height"]),
        resample=str(ren["resample"]).lower(),
    )

    # --- Parse optional sections ---
    cld = raw.get("clouds") or {}
    clouds = CloudConfig(alpha=float(cld.get("alpha", CloudConfig.alpha)))

    clk = raw.get("clock") or {}
    clock = ClockConfig(
        step_months=int(clk.get("step_months", ClockConfig.step_months)),
        step_hours=float(clk.get("step_hours", ClockConfig.step_hours)),
        interval_s=float(clk.get("interval_s", ClockConfig.interval_s)),
    )

    return SunclockConfig(
        engine=EngineConfig(bands=bands),
        render=render,
        clouds=clouds,
        clock=clock,
    )


def _parse_classification(value: str) -> Illumination:
    """Parse a band classification name (e.g. ``civil_night``)."""
    try:
        return Illumination[str(value).upper()]
    except KeyError as e:
        raise ConfigurationError(f"Unknown band classification: {value!r}") from e


def _validate_config(config: SunclockConfig) -> None:
    """Validate value ranges on a parsed configuration.

    Raises
    ------
    ConfigurationError
        If any value is invalid.
    """
    if not config.engine.bands:
        raise ConfigurationError("At least one horizon band is required.")
    for band in config.engine.bands:
        if not (-90.0 <= band.altitude_deg <= 90.0):
            raise ConfigurationError(
                f"Horizon '{band.name}' altitude must be in [-90, 90] deg, "
                f"got {band.altitude_deg}"
            )
        if band.classification is Illumination.DAY:
            raise ConfigurationError(f"Horizon '{band.name}' cannot classify as day.")
    if config.render.display_width <= 0 or config.render.display_height <= 0:
        raise ConfigurationError("Display size must be positive.")
    if config.render.resample not in _RESAMPLE_FILTERS:
        raise ConfigurationError(
            f"Resample filter must be one of {_RESAMPLE_FILTERS}, "
            f"got '{config.render.resample}'"
        )
    if not (0.0 <= config.clouds.alpha <= 1.0):
        raise ConfigurationError(f"Cloud alpha must be in [0, 1], got {config.clouds.alpha}")
    if config.clock.interval_s <= 0:
        raise ConfigurationError("Clock interval must be positive.")
    if config.clock.step_months < 0 or config.clock.step_hours < 0:
        raise ConfigurationError("Clock steps cannot be negative.")

    logger.debug("Configuration validation passed.")


def log_platform_info() -> None:
    """Log platform and library version information for reproducibility."""
    logger.info("=" * 70)
    logger.info("PLATFORM INFORMATION (for reproducibility)")
    logger.info("=" * 70)
    logger.info("  Python:    %s", sys.version)
    logger.info("  Platform:  %s", platform.platform())
    logger.info("  Processor: %s", platform.processor() or "unknown")
    logger.info("  NumPy:     %s", np.__version__)
    logger.info("  Numba:     %s", numba.__version__)
    logger.info("  Pillow:    %s", PIL.__version__)
    logger.info("  Matplotlib: %s", matplotlib.__version__)
    logger.info("=" * 70)


def hash_array(arr: np.ndarray) -> str:
    """SHA-256 hex digest of an array's bytes (mask reproducibility checks)."""
    return hashlib.sha256(np.ascontiguousarray(arr).tobytes()).hexdigest()

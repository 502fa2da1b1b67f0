"""Low-precision solar ephemeris (~0.01° class).

Computes the Sun's apparent geocentric right ascension and declination and
the mean Greenwich sidereal time from a Julian century, following the
abridged series of Meeus ch. 25 and ch. 12. The results feed the per-pixel
sunrise/sunset test in :mod:`solar_engine.mask`.

Conventions
-----------
- Angles are in degrees except where a name ends in ``_rad``.
- ``reduce_angle`` brings L0, M, α and θ into ``[0, 360)``; the result is
  identical to repeated addition/subtraction of the period, so values
  straddling zero round exactly as the reference series do.
- Longitudes on the map are west-positive (Meeus convention), which is
  what makes the terminator move in the right screen direction.

References
----------
- Meeus, J. (1998). *Astronomical Algorithms*, 2nd ed., ch. 12, 15, 25.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime

from solar_engine.timebase import (
    calendar_fields,
    fractional_time,
    julian_century,
    julian_day,
    to_epoch_millis,
)

logger = logging.getLogger(__name__)

# Low-accuracy nutation/aberration correction of the obliquity [deg]
_OBLIQUITY_CORRECTION_DEG: float = 0.00256


# ---------------------------------------------------------------------------
# Range Reduction
# ---------------------------------------------------------------------------


def reduce_angle(value: float, period: float = 360.0) -> float:
    """Bring ``value`` into ``[0, period)``.

    ``math.fmod`` is exact, so the result equals that of repeated ±period
    steps (including the final rounding of a tiny negative remainder up to
    ``period``, which folds back to 0) without looping on huge inputs.
    """
    value = math.fmod(value, period)
    if value < 0.0:
        value += period
    if value >= period:
        value -= period
    return value


# ---------------------------------------------------------------------------
# Solar Series
# ---------------------------------------------------------------------------


def mean_longitude(t: float) -> float:
    """Geometric mean longitude of the Sun, L0 [deg]."""
    return reduce_angle(280.46646 + 36000.76983 * t + (0.0003032 * t) ** 2.0)


def mean_anomaly(t: float) -> float:
    """Mean anomaly of the Sun, M [deg]."""
    return reduce_angle(357.52911 + 35999.05029 * t - (0.0001537 * t) ** 2.0)


def center_equation(m_rad: float, t: float) -> float:
    """Equation of center, C [deg], for mean anomaly ``m_rad`` [rad]."""
    return (
        (1.914602 - 0.004817 * t - 0.000014 * (t * t)) * math.sin(m_rad)
        + (0.019993 - 0.000101 * t) * math.sin(2.0 * m_rad)
        + 0.000289 * math.sin(3.0 * m_rad)
    )


def true_longitude(l0: float, c: float) -> float:
    """True longitude of the Sun [deg]."""
    return l0 + c


def ascending_node(t: float) -> float:
    """Longitude of the Moon's ascending node, Ω [deg] (unreduced)."""
    return 125.04 - 1934.136 * t


def apparent_longitude(true_lon: float, omega: float) -> float:
    """Apparent longitude λ [deg], corrected for nutation and aberration."""
    return true_lon - 0.00569 - 0.00478 * math.sin(math.radians(omega))


def ecliptic_obliquity(t: float) -> float:
    """Mean obliquity of the ecliptic, ε0 [deg]."""
    return 23.0 + (
        26.0 + (21.448 - t * (46.8150 + t * (0.00059 - t * 0.001813))) / 60.0
    ) / 60.0


def apparent_right_ascension(
    epsilon_rad: float, omega_rad: float, lambda_rad: float
) -> float:
    """Apparent right ascension α [deg], in ``[0, 360)``."""
    epsilon_rad += math.radians(_OBLIQUITY_CORRECTION_DEG) * math.cos(omega_rad)
    alpha = math.degrees(
        math.atan2(math.cos(epsilon_rad) * math.sin(lambda_rad), math.cos(lambda_rad))
    )
    return reduce_angle(alpha)


def apparent_declination(
    epsilon_rad: float, omega_rad: float, lambda_rad: float
) -> float:
    """Apparent declination δ [rad]."""
    epsilon_rad += math.radians(_OBLIQUITY_CORRECTION_DEG) * math.cos(omega_rad)
    return math.asin(math.sin(epsilon_rad) * math.sin(lambda_rad))


def mean_sidereal_time(t: float) -> float:
    """Mean Greenwich sidereal time θ [deg], in ``[0, 360)``."""
    theta = (
        100.46061837
        + 36000.770053608 * t
        + 0.000387933 * (t * t)
        - (t * t * t) / 38710000.0
    )
    return reduce_angle(theta)


# ---------------------------------------------------------------------------
# Solar Position
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SolarPosition:
    """Apparent solar position and sidereal time for one calendar date.

    Attributes
    ----------
    right_ascension_deg : float
        Apparent right ascension α [deg], in [0, 360).
    declination_rad : float
        Apparent declination δ [rad]; usable directly in sin/cos.
    sidereal_time_deg : float
        Mean Greenwich sidereal time θ [deg], in [0, 360).
    fractional_day : float
        UTC time of day of the instant as a fraction of 24 h.
    julian_day : float
        Julian day of the calendar date (0h UT).
    julian_century : float
        Julian centuries since J2000.0.
    """

    right_ascension_deg: float
    declination_rad: float
    sidereal_time_deg: float
    fractional_day: float
    julian_day: float
    julian_century: float

    @property
    def declination_deg(self) -> float:
        """Apparent declination in degrees."""
        return math.degrees(self.declination_rad)


def equatorial_coordinates(t: float) -> tuple[float, float]:
    """Apparent (α [deg], δ [rad]) of the Sun at Julian century ``t``."""
    l0 = mean_longitude(t)
    m = mean_anomaly(t)
    c = center_equation(math.radians(m), t)
    omega = ascending_node(t)
    lambda_rad = math.radians(apparent_longitude(true_longitude(l0, c), omega))
    epsilon_rad = math.radians(ecliptic_obliquity(t))
    omega_rad = math.radians(omega)

    return (
        apparent_right_ascension(epsilon_rad, omega_rad, lambda_rad),
        apparent_declination(epsilon_rad, omega_rad, lambda_rad),
    )


def solar_position(timestamp: datetime | int | float) -> SolarPosition:
    """Compute the solar position for an instant.

    Parameters
    ----------
    timestamp : datetime, int or float
        Instant, as accepted by :func:`solar_engine.timebase.to_epoch_millis`.

    Returns
    -------
    SolarPosition
        α, δ and θ of the instant's UTC calendar date, plus its time of day.
    """
    fields = calendar_fields(to_epoch_millis(timestamp))

    jd = julian_day(fields.day, fields.month, fields.year)
    t = julian_century(jd)
    alpha, delta = equatorial_coordinates(t)
    theta = mean_sidereal_time(t)

    position = SolarPosition(
        right_ascension_deg=alpha,
        declination_rad=delta,
        sidereal_time_deg=theta,
        fractional_day=fractional_time(fields.hour, fields.minute, fields.second),
        julian_day=jd,
        julian_century=t,
    )
    logger.debug(
        "Solar position %04d-%02d-%02d %02d:%02d:%02d: "
        "alpha=%.4f° delta=%.4f° theta=%.4f°",
        fields.year, fields.month, fields.day,
        fields.hour, fields.minute, fields.second,
        alpha, position.declination_deg, theta,
    )
    return position


def subsolar_longitude(timestamp: datetime | int | float) -> float:
    """West-positive longitude where the Sun transits at ``timestamp``.

    Solves ``(α + L − θ) / 360 = f`` for L and wraps it to (-180, 180].
    """
    pos = solar_position(timestamp)
    lon = reduce_angle(
        pos.sidereal_time_deg + 360.0 * pos.fractional_day - pos.right_ascension_deg
    )
    if lon > 180.0:
        lon -= 360.0
    return lon


def longitude_to_column(longitude: float, width: int) -> int:
    """Mask column of a west-positive longitude (inverse of the scan)."""
    column = int(round((180.0 - longitude) * width / 360.0))
    return min(max(column, 0), width - 1)

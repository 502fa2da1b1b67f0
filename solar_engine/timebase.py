"""Timestamps, calendar fields, and Julian day arithmetic.

All instants are carried as integer epoch milliseconds and read as UTC
wall-clock time. Calendar fields follow a Julian/Gregorian cutover calendar:
instants from 1582-10-15 onward are expressed in the Gregorian calendar,
earlier instants in the proleptic Julian calendar. Years use astronomical
numbering (year 0 = 1 BC).

Notes
-----
``julian_day`` reproduces the low-precision day-count formula used by the
rest of the engine term by term, including its month/year shift and its
truncating arithmetic. It is NOT a general-purpose Julian day converter:
dates in January and February, and every date through the truncated
``365.25`` factor, land on shifted day numbers. The solar position and the
mask depend on these exact values.

References
----------
- Meeus, J. (1998). *Astronomical Algorithms*, 2nd ed., ch. 7.
- Richards, E.G. (2013). "Calendars." In *Explanatory Supplement to the
  Astronomical Almanac*, 3rd ed., ch. 15 (JDN → calendar date).
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from solar_engine.errors import InvalidArgumentError

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MILLIS_PER_SECOND = 1_000
MILLIS_PER_MINUTE = 60 * MILLIS_PER_SECOND
MILLIS_PER_HOUR = 60 * MILLIS_PER_MINUTE
MILLIS_PER_DAY = 24 * MILLIS_PER_HOUR

J2000_JD: float = 2451545.0
DAYS_PER_CENTURY: float = 36525.0

# First Gregorian date (year, month, day)
GREGORIAN_CUTOVER: tuple[int, int, int] = (1582, 10, 15)

# Julian day number of 1970-01-01 and of 1582-10-15 (Gregorian)
_EPOCH_JDN = 2_440_588
_CUTOVER_JDN = 2_299_161

# Accepted timestamp range (signed 64-bit milliseconds)
MIN_TIMESTAMP = -(2**63)
MAX_TIMESTAMP = 2**63 - 1

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MILLI = timedelta(milliseconds=1)


# ---------------------------------------------------------------------------
# Data Containers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CalendarFields:
    """UTC calendar fields of an instant.

    Attributes
    ----------
    year : int
        Astronomical year (0 = 1 BC, -1 = 2 BC, ...).
    month : int
        Month of year, 1-12.
    day : int
        Day of month, 1-31.
    hour, minute, second : int
        Time of day (24-hour clock).
    """

    year: int
    month: int
    day: int
    hour: int
    minute: int
    second: int

    @property
    def is_gregorian(self) -> bool:
        """True on or after the Gregorian cutover date."""
        return (self.year, self.month, self.day) >= GREGORIAN_CUTOVER


# ---------------------------------------------------------------------------
# Timestamp Conversion
# ---------------------------------------------------------------------------


def now_millis() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return time.time_ns() // 1_000_000


def to_epoch_millis(value: datetime | int | float) -> int:
    """Normalize a timestamp to integer epoch milliseconds.

    Parameters
    ----------
    value : datetime, int or float
        A ``datetime`` (naive values are read as UTC wall clock, aware
        values are converted to UTC) or epoch milliseconds. Fractional
        milliseconds are floored.

    Returns
    -------
    int
        Milliseconds since 1970-01-01T00:00:00 UTC.

    Raises
    ------
    InvalidArgumentError
        If the value is not a timestamp, is not finite, or lies outside the
        signed 64-bit millisecond range.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return (value - _EPOCH) // _ONE_MILLI

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArgumentError(
            f"Timestamp must be a datetime or epoch milliseconds, got {value!r}"
        )
    if isinstance(value, float):
        if not math.isfinite(value):
            raise InvalidArgumentError(f"Timestamp must be finite, got {value!r}")
        value = math.floor(value)
    value = int(value)

    if not (MIN_TIMESTAMP <= value <= MAX_TIMESTAMP):
        raise InvalidArgumentError(
            "Timestamp is outside the signed 64-bit millisecond range"
        )
    return value


def calendar_fields(timestamp: int) -> CalendarFields:
    """Split epoch milliseconds into UTC calendar fields.

    Parameters
    ----------
    timestamp : int
        Epoch milliseconds (any sign).

    Returns
    -------
    CalendarFields
        Julian-calendar fields before 1582-10-15, Gregorian from then on.
    """
    days, millis = divmod(timestamp, MILLIS_PER_DAY)
    year, month, day = _date_from_jdn(days + _EPOCH_JDN)

    return CalendarFields(
        year=year,
        month=month,
        day=day,
        hour=millis // MILLIS_PER_HOUR,
        minute=(millis // MILLIS_PER_MINUTE) % 60,
        second=(millis // MILLIS_PER_SECOND) % 60,
    )


def _date_from_jdn(jdn: int) -> tuple[int, int, int]:
    """Convert a Julian day number to (year, month, day).

    Richards' integer algorithm; the Gregorian correction is applied only
    from the cutover day number onward.
    """
    f = jdn + 1401
    if jdn >= _CUTOVER_JDN:
        f += (((4 * jdn + 274277) // 146097) * 3) // 4 - 38
    e = 4 * f + 3
    g = (e % 1461) // 4
    h = 5 * g + 2
    day = (h % 153) // 5 + 1
    month = (h // 153 + 2) % 12 + 1
    year = e // 1461 - 4716 + (12 + 2 - month) // 12
    return year, month, day


# ---------------------------------------------------------------------------
# Julian Day / Century
# ---------------------------------------------------------------------------


def julian_day(day: int, month: int, year: int) -> float:
    """Low-precision Julian day of a calendar date at 0h UT.

    Parameters
    ----------
    day : int
        Day of month.
    month : int
        Month, 1-12.
    year : int
        Astronomical year.

    Returns
    -------
    float
        Day count ending in .5 (midnight).
    """
    gregorian = (year, month, day) >= GREGORIAN_CUTOVER

    if month < 3:
        year -= 1
        month += 3

    b = 0
    if gregorian:
        a = math.trunc(year / 100)
        b = 2 - a + math.trunc(a / 4)

    # Truncation binds to the 365.25 factor, not to the product
    return (
        int(365.25) * (year + 4716)
        + int(30.6001 * (month + 1))
        + day
        + float(b)
        - 1524.5
    )


def julian_century(jd: float) -> float:
    """Julian centuries elapsed since J2000.0."""
    return (jd - J2000_JD) / DAYS_PER_CENTURY


def fractional_time(hour: int, minute: int, second: int) -> float:
    """Time of day as a fraction of 24 hours."""
    return hour / 24.0 + minute / (24.0 * 60.0) + second / (24.0 * 60.0 * 60.0)

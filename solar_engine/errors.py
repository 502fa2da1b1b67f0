"""Exception hierarchy shared by the engine and the compositing layer."""

from __future__ import annotations


class SunclockError(Exception):
    """Base class for all errors raised by this project."""


class ConfigurationError(SunclockError, ValueError):
    """Inconsistent inputs or configuration detected at construction time."""


class InvalidArgumentError(SunclockError, ValueError):
    """A call argument is out of range, non-finite, or of the wrong type."""

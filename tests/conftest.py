"""Pytest configuration and shared fixtures for Sunclock tests."""

from __future__ import annotations

import logging
import sys
from datetime import datetime
from pathlib import Path

import numpy as np
import pytest


# Add project root to path so imports work
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


def pytest_configure(config: pytest.Config) -> None:
    """Configure logging for tests."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s [%(levelname)s] %(message)s",
    )


@pytest.fixture
def default_config_path() -> Path:
    """Path to the shipped default configuration."""
    return PROJECT_ROOT / "config" / "default_config.yaml"


@pytest.fixture
def noon_j2000() -> datetime:
    """2000-01-01 12:00:00 UTC."""
    return datetime(2000, 1, 1, 12, 0, 0)


@pytest.fixture
def white_day() -> np.ndarray:
    """Opaque white 360×180 day map."""
    return np.full((180, 360, 3), 255, dtype=np.uint8)


@pytest.fixture
def black_night() -> np.ndarray:
    """Opaque black 360×180 night map."""
    return np.zeros((180, 360, 3), dtype=np.uint8)

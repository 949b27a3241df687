"""Pytest configuration and fixtures.

Integration tests (marked ``integration``) need optional native libraries,
e.g. the Cairo library behind CairoSVG for PNG export.
"""

from datetime import datetime, timezone

import pytest


UTC = timezone.utc


def pytest_addoption(parser):
    """Add --integration CLI option."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="Run integration tests that need optional native libraries",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --integration is passed."""
    if config.getoption("--integration"):
        # --integration given in CLI: do not skip integration tests
        return

    skip_integration = pytest.mark.skip(
        reason="need --integration option to run"
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


def utc_ms(year: int, month: int, day: int, hour: int = 12, minute: int = 0) -> int:
    """Epoch milliseconds for a UTC wall-clock time."""
    return int(datetime(year, month, day, hour, minute, tzinfo=UTC).timestamp() * 1000)


# Thursday 2024-03-07 15:00 UTC
NOW = utc_ms(2024, 3, 7, 15)

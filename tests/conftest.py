"""Shared test fixtures."""

import pytest

from py_fortune.utils import configure_logging

FIXTURE_SITES = [(2, 9), (3, 7), (3, 2), (5, 2), (5, 5), (6, 6), (7, 1), (8, 4), (8, 8)]


@pytest.fixture(autouse=True)
def quiet_logging():
    """Keep per-event debug logging out of test output."""
    configure_logging("WARNING", "console")


@pytest.fixture
def fixture_sites():
    return list(FIXTURE_SITES)

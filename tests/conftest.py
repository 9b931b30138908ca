"""
Pytest configuration for rating tests.
"""

import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from glicko_ratings import Glicko2Config, RatingEngine


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (large or heavily threaded runs)"
    )


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--run-slow", action="store_true", default=False, help="Run slow tests"
    )


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is specified."""
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="Need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def config() -> Glicko2Config:
    """Standard Glicko-2 settings (τ = 0.5)."""
    return Glicko2Config()


@pytest.fixture
def engine(config: Glicko2Config) -> RatingEngine:
    return RatingEngine(config)

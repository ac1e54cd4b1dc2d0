"""Shared pytest fixtures for optrader tests."""

import sys
from pathlib import Path

import pytest

# Add src and the project root to path for imports
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT))

# Import all fixtures for global availability
from tests.fixtures.ib_fixtures import *  # noqa: E402,F401,F403
from tests.fixtures.market_fixtures import *  # noqa: E402,F401,F403
from tests.fixtures.orchestration_fixtures import *  # noqa: E402,F401,F403
from tests.fixtures.store_fixtures import *  # noqa: E402,F401,F403


@pytest.fixture
def lake_path(tmp_path):
    """
    Create a fresh Delta Lake directory for each test.

    Returns:
        Path: Path to temporary Delta Lake directory

    Example:
        def test_with_lake(lake_path):
            positions_path = lake_path / "positions"
    """
    return tmp_path / "lake"

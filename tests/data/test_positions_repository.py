"""
Tests for PositionsRepository

Unit tests for the Delta Lake positions table.
"""

import pytest

from optrader.core.errors import StoreError
from optrader.core.models import CLOSED, Position
from optrader.data import PositionStore, PositionsRepository


@pytest.fixture
def sample_position():
    """Create sample option position."""
    return Position(
        symbol="SPY_052021C425",
        quantity=2,
        buy_price=1.05,
        last_price=1.05,
        buy_notional=210.0,
        current_notional=210.0,
        delta=0.8,
        volatility=0.3,
        commission=1.3,
        date_captured="20210510",
    )


class TestPositionsRepository:
    """Test CRUD on the positions table."""

    def test_creates_table(self, lake_path):
        """Test the table is created on first use."""
        path = lake_path / "positions" / "new"
        repo = PositionsRepository(str(path))

        assert (path / "_delta_log").exists()
        assert repo.find_all() == []
        assert isinstance(repo, PositionStore)

    def test_insert_and_find(self, positions_repo, sample_position):
        """Test an inserted record reads back unchanged."""
        positions_repo.insert(sample_position)

        assert positions_repo.find(sample_position.symbol) == sample_position
        assert positions_repo.find("SPY_052021C999") is None

    def test_duplicate_insert_rejected(self, positions_repo, sample_position):
        """Test one record per symbol."""
        positions_repo.insert(sample_position)

        with pytest.raises(StoreError):
            positions_repo.insert(sample_position)

    def test_update(self, positions_repo, sample_position):
        """Test update replaces fields and keeps a single row."""
        positions_repo.insert(sample_position)

        updated = positions_repo.update(sample_position.symbol, quantity=0, status=CLOSED)

        assert updated.quantity == 0
        assert updated.status == CLOSED
        assert updated.buy_price == pytest.approx(1.05)
        assert positions_repo.find(sample_position.symbol) == updated
        assert len(positions_repo.find_all()) == 1

    def test_update_missing_or_unknown_field(self, positions_repo, sample_position):
        """Test updating a missing record or an unknown field raises."""
        with pytest.raises(StoreError):
            positions_repo.update("SPY_EQUITY", quantity=1)

        positions_repo.insert(sample_position)
        with pytest.raises(StoreError):
            positions_repo.update(sample_position.symbol, strike=420.0)

    def test_find_open(self, positions_repo, sample_position):
        """Test closed records are excluded from open positions."""
        positions_repo.insert(sample_position)
        positions_repo.insert(Position(
            symbol="SPY_EQUITY", quantity=0, buy_price=420.0, last_price=420.0, status=CLOSED
        ))

        open_positions = positions_repo.find_open()

        assert [p.symbol for p in open_positions] == [sample_position.symbol]
        assert len(positions_repo.find_all()) == 2

    def test_version_increases_on_write(self, positions_repo, sample_position):
        version = positions_repo.get_version()
        positions_repo.insert(sample_position)
        assert positions_repo.get_version() > version

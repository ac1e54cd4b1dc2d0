"""
optrader data package: position store contract, Delta Lake positions
repository and the snapshot archive.
"""

from optrader.data.base import PositionStore
from optrader.data.repositories import PositionsRepository
from optrader.data.snapshot_archive import (
    REPLAY_CURSOR_KEY,
    SEQUENCE_NUM_KEY,
    SequenceCounter,
    SnapshotArchive,
    archive_date,
)

__all__ = [
    "PositionStore",
    "PositionsRepository",
    "REPLAY_CURSOR_KEY",
    "SEQUENCE_NUM_KEY",
    "SequenceCounter",
    "SnapshotArchive",
    "archive_date",
]

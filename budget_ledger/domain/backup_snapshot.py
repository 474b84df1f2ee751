"""This module contains the BackupSnapshot class."""
from datetime import datetime
from typing import NamedTuple

from budget_ledger.core.types import SnapshotId


class BackupSnapshot(NamedTuple):
    """A versioned, timestamped serialization of the ledger state.

    Snapshots are append-only: once stored, a snapshot is never modified.
    """

    id: SnapshotId
    timestamp: datetime
    version: int
    payload: str
    encrypted: bool = False

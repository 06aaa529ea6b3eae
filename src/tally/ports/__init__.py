"""Ports - interfaces/protocols for external dependencies."""

from .snapshot_store import SnapshotStore

__all__ = [
    "SnapshotStore",
]

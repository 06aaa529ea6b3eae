"""Snapshot storage interface."""

from typing import Protocol


class SnapshotStore(Protocol):
    """Interface for a single-value-per-key durable store."""

    def read(self, key: str) -> str | None:
        """Read the stored value for a key. Returns None if not found."""
        ...

    def write(self, key: str, value: str) -> None:
        """Replace the stored value for a key. Must not leave a partial value behind."""
        ...

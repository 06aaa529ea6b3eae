"""Adapters - I/O implementations of ports."""

from .file_store import FileSnapshotStore

__all__ = [
    "FileSnapshotStore",
]

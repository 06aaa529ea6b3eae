"""Errors raised by the tally store and its adapters."""


class TallyError(Exception):
    """Base class for tally errors."""


class ValidationError(TallyError):
    """Raised when a day entry has an empty/invalid date or a non-numeric count."""


class CorruptStateError(TallyError):
    """Raised when the persisted snapshot cannot be decoded as a tally mapping."""


class PersistenceError(TallyError):
    """
    Raised when the durable read or write of the snapshot fails.

    When raised by the store after a mutation, `snapshot` holds the in-memory
    state, which stays applied until the next successful write.
    """

    def __init__(self, message: str, snapshot=None):
        super().__init__(message)
        self.snapshot = snapshot


class StoreNotLoadedError(TallyError):
    """Raised when a mutation is attempted before load()."""

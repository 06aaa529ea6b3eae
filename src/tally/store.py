"""Daily tally store - the single owner of the date -> count mapping.

Every mutation is applied in memory and then written to the backend as one
full snapshot before the call returns. Mutations are serialized with a lock,
so overlapping callers cannot lose each other's updates.
"""

import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from .core.counts import (
    Count,
    DayRecord,
    compute_average,
    decode_counts,
    encode_counts,
    sort_history,
    today_key,
    validate_entry,
)
from .errors import (
    CorruptStateError,
    PersistenceError,
    StoreNotLoadedError,
    ValidationError,
)
from .ports.snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "chromebook_counts"


@dataclass(frozen=True)
class TallySnapshot:
    """Read-only projection of the store handed to the presentation layer."""

    counts: Mapping[str, Count]
    today: str
    today_count: Count
    average: float
    warning: str | None = None
    pending_write: bool = False

    @property
    def history(self) -> list[DayRecord]:
        """Rows sorted most recent first."""
        return sort_history(self.counts)


Listener = Callable[[TallySnapshot], None]


class DailyTallyStore:
    """
    Owns the tally mapping and keeps it in step with durable storage.

    Uninitialized until load() succeeds; every mutation requires a loaded
    store.
    """

    def __init__(
        self,
        backend: SnapshotStore,
        key: str = DEFAULT_STORAGE_KEY,
        timezone: str = "UTC",
        clock: Callable[[], str] | None = None,
    ):
        self.backend = backend
        self.key = key
        self._clock = clock or (lambda: today_key(timezone))
        self._counts: dict[str, Count] | None = None
        self._today = ""
        self._warning: str | None = None
        self._pending_write = False
        self._lock = threading.Lock()
        self._listeners: list[Listener] = []

    # ============== Read-only views ==============

    @property
    def is_ready(self) -> bool:
        return self._counts is not None

    @property
    def counts(self) -> Mapping[str, Count]:
        self._require_ready()
        return MappingProxyType(dict(self._counts))

    @property
    def today_count(self) -> Count:
        return self.snapshot().today_count

    @property
    def average(self) -> float:
        return self.snapshot().average

    @property
    def pending_write(self) -> bool:
        return self._pending_write

    @staticmethod
    def compute_average(counts: Mapping[str, Count]) -> float:
        return compute_average(counts)

    def snapshot(self) -> TallySnapshot:
        """Current state as a read-only snapshot, with today re-read from the clock."""
        with self._lock:
            self._require_ready()
            self._today = self._clock()
            return self._snapshot()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called with a snapshot after each change. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ============== Operations ==============

    def load(self) -> TallySnapshot:
        """
        Read the persisted snapshot into memory.

        A missing snapshot starts an empty mapping. An unreadable one also
        starts empty, and the snapshot's `warning` says why.
        """
        with self._lock:
            self._warning = None
            try:
                text = self.backend.read(self.key)
                counts = decode_counts(text) if text is not None else {}
            except CorruptStateError as e:
                logger.warning(f"Discarding corrupt tally snapshot {self.key!r}: {e}")
                self._warning = f"Saved counts could not be read and were reset: {e}"
                counts = {}

            self._counts = counts
            self._pending_write = False
            self._today = self._clock()
            logger.info(f"Loaded {len(counts)} day(s) from {self.key!r}")
            snapshot = self._snapshot()

        self._notify(snapshot)
        return snapshot

    def increment(self, today: str | None = None) -> TallySnapshot:
        """Add one to today's count and persist."""

        def apply(counts: dict[str, Count]) -> bool:
            counts[self._today] = counts.get(self._today, 0) + 1
            return True

        return self._mutate(apply, today)

    def upsert(self, date: object, count: object) -> TallySnapshot:
        """
        Set (or overwrite) the count for a day and persist.

        Invalid input leaves the mapping and the stored snapshot untouched:
        an empty date, a count that is not a number, and also any date that
        is not a real YYYY-MM-DD day. Surrounding whitespace is stripped from
        the date before it becomes a key.
        """
        try:
            day, value = validate_entry(date, count)
        except ValidationError as e:
            with self._lock:
                self._require_ready()
                logger.debug(f"Ignoring upsert({date!r}, {count!r}): {e}")
                return self._snapshot()

        def apply(counts: dict[str, Count]) -> bool:
            counts[day] = value
            return True

        return self._mutate(apply)

    def delete(self, date: str) -> TallySnapshot:
        """Remove a day and persist. Absent days leave everything unchanged."""

        def apply(counts: dict[str, Count]) -> bool:
            if date not in counts:
                return False
            del counts[date]
            return True

        return self._mutate(apply)

    def flush(self) -> TallySnapshot:
        """Retry the write after a PersistenceError. No-op when nothing is pending."""
        with self._lock:
            self._require_ready()
            if self._pending_write:
                self._persist()
            snapshot = self._snapshot()

        self._notify(snapshot)
        return snapshot

    # ============== Internals ==============

    def _require_ready(self) -> None:
        if self._counts is None:
            raise StoreNotLoadedError("Tally store used before load()")

    def _snapshot(self) -> TallySnapshot:
        counts = self._counts
        return TallySnapshot(
            counts=MappingProxyType(dict(counts)),
            today=self._today,
            today_count=counts.get(self._today, 0),
            average=compute_average(counts),
            warning=self._warning,
            pending_write=self._pending_write,
        )

    def _persist(self) -> None:
        try:
            self.backend.write(self.key, encode_counts(self._counts))
        except PersistenceError:
            self._pending_write = True
            raise
        self._pending_write = False
        self._warning = None

    def _mutate(
        self, apply: Callable[[dict[str, Count]], bool], today: str | None = None
    ) -> TallySnapshot:
        error: PersistenceError | None = None
        with self._lock:
            self._require_ready()
            self._today = today or self._clock()
            counts = dict(self._counts)
            if not apply(counts):
                return self._snapshot()

            self._counts = counts
            try:
                self._persist()
            except PersistenceError as e:
                logger.warning(f"Tally change kept in memory, write failed: {e}")
                error = e
            snapshot = self._snapshot()

        self._notify(snapshot)
        if error is not None:
            raise PersistenceError(str(error), snapshot=snapshot) from error
        return snapshot

    def _notify(self, snapshot: TallySnapshot) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception(f"Tally listener {listener!r} failed")

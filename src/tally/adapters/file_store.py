"""File-based snapshot storage adapter."""

import logging
import os
import re
import tempfile
from pathlib import Path

from tally.errors import CorruptStateError, PersistenceError

logger = logging.getLogger(__name__)

KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


def is_valid_key(key: str) -> bool:
    """Storage keys become file names: no separators, no leading dot."""
    return bool(KEY_RE.match(key)) and not key.startswith(".")


class FileSnapshotStore:
    """
    File-based key-value storage.

    Implements SnapshotStore protocol. Each key gets a UTF-8 JSON file;
    writes go to a temp file in the same directory and are swapped in with
    os.replace, so a reader never sees a half-written snapshot.
    """

    def __init__(self, data_dir: Path | str):
        self.data_dir = Path(data_dir).expanduser()

    def _path_for_key(self, key: str) -> Path:
        """Get the file path for a storage key."""
        if not is_valid_key(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.data_dir / f"{key}.json"

    def read(self, key: str) -> str | None:
        """Read the stored value for a key. Returns None if not found."""
        path = self._path_for_key(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise CorruptStateError(f"{path} is not UTF-8 text: {e}") from e
        except OSError as e:
            raise PersistenceError(f"Failed to read {path}: {e}") from e

    def write(self, key: str, value: str) -> None:
        """Atomically replace the stored value for a key."""
        path = self._path_for_key(key)
        tmp_name = None
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.data_dir,
                prefix=f".{key}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(value)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            logger.error(f"Failed to write {path}: {e}")
            raise PersistenceError(f"Failed to write {path}: {e}") from e


"""
Key-Value Store Backends

Two implementations of KeyValueStoreInterface:

- InMemoryKeyValueStore: a dict, used by tests and as a fallback
  when the on-disk store cannot be opened.
- JsonFileKeyValueStore: one JSON object on disk, the local-storage
  equivalent for the Streamlit app.

TRADEOFFS:
- The whole file is rewritten on every set (fine for personal data volumes)
- Writes go through a temp file + os.replace so a crash mid-write
  leaves the previous file intact
- No locking: a single process owns the file
- An unreadable file is kept as <name>.bak and replaced on the next write
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from spendsmart.audit.logger import get_logger
from spendsmart.services.storage.interface import (
    KeyValueStoreInterface,
    StorageError,
)


logger = get_logger(__name__)


class InMemoryKeyValueStore(KeyValueStoreInterface):
    """Dict-backed store. Nothing survives the process."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileKeyValueStore(KeyValueStoreInterface):
    """
    File-backed store.

    The file holds a single JSON object mapping keys to their
    serialized string values, exactly like a local storage dump.
    """

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)
        self._data: Optional[dict[str, str]] = None

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        """Read the file once and cache it."""
        if self._data is None:
            if not self._path.exists():
                self._data = {}
                return self._data
            try:
                raw = json.loads(self._path.read_text(encoding="utf-8") or "{}")
            except (OSError, ValueError) as e:
                raise StorageError(f"Failed to read store file {self._path}: {e}")
            if not isinstance(raw, dict):
                raise StorageError(f"Store file {self._path} does not hold a JSON object")
            self._data = {str(k): v for k, v in raw.items() if isinstance(v, str)}
        return self._data

    def _flush(self, data: dict[str, str]) -> None:
        """Atomically replace the file with the given data."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(data, handle, ensure_ascii=False, indent=2)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write store file {self._path}: {e}")

    def _writable_data(self) -> dict[str, str]:
        """
        Current contents for a write.

        An unreadable file is moved aside to <name>.bak and the write
        starts from an empty store, so it never blocks later saves.
        """
        try:
            return self._load()
        except StorageError as e:
            backup = self._path.with_name(self._path.name + ".bak")
            logger.warning(
                "store_file_unreadable_replaced",
                path=str(self._path),
                backup=str(backup),
                error=str(e),
            )
            try:
                os.replace(self._path, backup)
            except OSError as move_error:
                raise StorageError(
                    f"Failed to move unreadable store file {self._path} aside: {move_error}"
                )
            self._data = {}
            return self._data

    def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = dict(self._writable_data())
        data[key] = value
        self._flush(data)
        self._data = data

    def remove_item(self, key: str) -> None:
        data = self._writable_data()
        if key not in data:
            return
        data = {k: v for k, v in data.items() if k != key}
        self._flush(data)
        self._data = data

    def keys(self) -> list[str]:
        return list(self._load())

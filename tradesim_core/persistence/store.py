"""
Key-value store abstraction for ledger persistence.

KeyValueStore ABC: get, set, delete on text values. InMemoryStore for
tests and ephemeral sessions; JsonFileStore keeps one file per key in a
directory, the desktop stand-in for browser local storage.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueStore(ABC):
    """
    Synchronous text key-value store. Implementations raise OSError (or a
    subclass) when a write cannot be completed.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Stored text for key, or None when absent."""
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key. No error when absent."""
        ...


class InMemoryStore(KeyValueStore):
    """Dict-backed store. quota (characters across all keys) simulates a full storage."""

    def __init__(self, initial: dict[str, str] | None = None, *, quota: int | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self.quota = quota

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.quota is not None:
            used = sum(len(v) for k, v in self._data.items() if k != key)
            if used + len(value) > self.quota:
                raise OSError(f"Storage quota exceeded writing {key!r}")
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileStore(KeyValueStore):
    """
    One '<key>.json' file per key under directory. Writes go to a temp file
    first and are moved into place, so a crash never leaves half a record.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key {key!r}")
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise OSError(f"{path} is not valid UTF-8: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(value)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
        logger.debug("Wrote %s (%d chars)", path, len(value))

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

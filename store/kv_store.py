"""String-keyed stores backing the counter and tag collections.

Two implementations share the ``KeyValueStore`` interface: ``MemoryStore``
keeps everything in a dict (tests), ``JsonFileStore`` mirrors the dict into a
single JSON file that is rewritten atomically on every mutation.
"""

from __future__ import annotations

import copy
import json
import os
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any


_MISSING = object()


class StoreError(RuntimeError):
    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = str(code)


class KeyValueStore(ABC):
    """Abstract base class for record stores."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the value stored under key, or None. Never touches disk."""

    @abstractmethod
    def insert(self, key: str, value: Any) -> None:
        """Store value under key and persist the whole map."""

    @abstractmethod
    def remove(self, key: str) -> Any | None:
        """Drop key (if present) and persist the whole map."""

    @abstractmethod
    def keys(self) -> list[str]:
        """Return the stored keys."""

    @abstractmethod
    def snapshot(self) -> dict[str, Any]:
        """Return a deep copy of the full map."""


class MemoryStore(KeyValueStore):
    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def get(self, key: str) -> Any | None:
        return self._data.get(str(key))

    def insert(self, key: str, value: Any) -> None:
        self._data[str(key)] = value

    def remove(self, key: str) -> Any | None:
        return self._data.pop(str(key), None)

    def keys(self) -> list[str]:
        return list(self._data.keys())

    def snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)


class JsonFileStore(KeyValueStore):
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._data: dict[str, Any] = {}
        self._load()

    def _load(self) -> None:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            # No file yet: this is a fresh store.
            print(f"[STORE] fresh store path={self.path}")
            return
        except OSError as exc:
            raise StoreError("load_failed", f"Failed to read store file {self.path}: {exc}") from exc

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StoreError("load_failed", f"Failed to deserialize store file {self.path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise StoreError("load_failed", f"Store file {self.path} must contain a JSON object")

        self._data = payload
        print(f"[STORE] loaded path={self.path} keys={len(self._data)}")

    def _save(self) -> None:
        try:
            encoded = json.dumps(self._data, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise StoreError("save_failed", f"Failed to serialize store {self.path}: {exc}") from exc

        # Unique per save so concurrent writers never share a temp file.
        tmp = self.path.with_name(f"{uuid.uuid4().hex}-{self.path.name}.tmp")
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                f.write(encoded)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except OSError as exc:
            try:
                tmp.unlink()
            except OSError:
                pass
            raise StoreError("save_failed", f"Failed to write store file {self.path}: {exc}") from exc
        print(f"[STORE] saved path={self.path} bytes={len(encoded.encode('utf-8'))}")

    def _restore(self, key: str, previous: Any) -> None:
        if previous is _MISSING:
            self._data.pop(key, None)
        else:
            self._data[key] = previous

    def get(self, key: str) -> Any | None:
        return self._data.get(str(key))

    def insert(self, key: str, value: Any) -> None:
        key = str(key)
        previous = self._data.get(key, _MISSING)
        self._data[key] = value
        try:
            self._save()
        except StoreError:
            self._restore(key, previous)
            raise

    def remove(self, key: str) -> Any | None:
        key = str(key)
        previous = self._data.pop(key, _MISSING)
        # Saved even when nothing was removed.
        try:
            self._save()
        except StoreError:
            self._restore(key, previous)
            raise
        return None if previous is _MISSING else previous

    def keys(self) -> list[str]:
        return list(self._data.keys())

    def snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)

"""Location-aware record collections layered over a ``KeyValueStore``.

Each store key is a location: a guild id rendered as a string, or the
``generic`` marker for records visible everywhere. Each value maps record
names to serialized records.

Nothing here locks; ``records.service.RecordService`` owns the critical
section around these calls.
"""

from __future__ import annotations

from typing import Any

from config.defaults import GENERIC_LOCATION_KEY
from records.errors import RecordError
from store.kv_store import KeyValueStore


def location_key(location: int | str | None) -> str:
    if location is None:
        return GENERIC_LOCATION_KEY
    return str(location)


class RecordCollection:
    def __init__(self, store: KeyValueStore, record_cls: type, *, label: str) -> None:
        self.store = store
        self.record_cls = record_cls
        self.label = str(label)

    def _namespace(self, key: str) -> dict[str, dict[str, Any]]:
        raw = self.store.get(key)
        if not isinstance(raw, dict):
            return {}
        return {str(name): dict(payload) for name, payload in raw.items() if isinstance(payload, dict)}

    def _decode(self, namespace: dict[str, dict[str, Any]]) -> dict[str, Any]:
        return {name: self.record_cls.from_dict(payload) for name, payload in namespace.items()}

    def get_possible_records(self, location: int | str | None) -> dict[str, Any]:
        merged = self._namespace(GENERIC_LOCATION_KEY)
        if location is not None:
            # Location-specific records shadow generic ones with the same name.
            merged.update(self._namespace(location_key(location)))
        return self._decode(merged)

    def create_record(self, location: int | str | None, name: str, record: Any) -> None:
        key = location_key(location)
        namespace = self._namespace(key)
        if name in namespace:
            raise RecordError("duplicate_name", f"{self.label} already exists.")
        namespace[name] = record.to_dict()
        self.store.insert(key, namespace)

    def get_record(self, location: int | str | None, name: str) -> Any:
        record = self.get_possible_records(location).get(name)
        if record is None:
            raise RecordError("not_found", f"{self.label} not found")
        return record

    def put_record(self, location: int | str | None, name: str, record: Any) -> None:
        key = location_key(location)
        namespace = self._namespace(key)
        namespace[name] = record.to_dict()
        self.store.insert(key, namespace)

    def delete_record(self, location: int | str | None, name: str) -> bool:
        key = location_key(location)
        namespace = self._namespace(key)
        removed = namespace.pop(name, None) is not None
        self.store.insert(key, namespace)
        return removed

    def list_names(self, location: int | str | None) -> list[str]:
        return sorted(self.get_possible_records(location).keys())

    def count_records(self) -> int:
        total = 0
        for key in self.store.keys():
            raw = self.store.get(key)
            if isinstance(raw, dict):
                total += len(raw)
        return total

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from config.defaults import GENERIC_LOCATION_KEY


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_created_at(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        dt = raw
    elif raw:
        try:
            dt = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
        except ValueError:
            return _utc_now()
    else:
        return _utc_now()
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_id_set(value: Any) -> set[int]:
    if not isinstance(value, (list, tuple, set)):
        return set()
    out: set[int] = set()
    for item in value:
        try:
            out.add(int(item))
        except (TypeError, ValueError):
            continue
    return out


def _as_location(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(slots=True)
class Counter:
    name: str
    owner_id: int
    location: str | None = None
    created_at: datetime = field(default_factory=_utc_now)
    count: int = 0
    queries: int = 0
    # Whether users other than the owner may increment/decrement.
    public_edit: bool = True
    blacklisted_users: set[int] = field(default_factory=set)
    whitelisted_users: set[int] = field(default_factory=set)

    def is_generic(self) -> bool:
        return self.location is None or self.location == GENERIC_LOCATION_KEY

    def increment(self) -> None:
        self.count += 1

    def decrement(self) -> None:
        self.count -= 1

    def bump_usage(self) -> None:
        self.queries += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "count": int(self.count),
            "owner_id": int(self.owner_id),
            "public_edit": bool(self.public_edit),
            "queries": int(self.queries),
            "location": self.location,
            "created_at": self.created_at.isoformat(),
            "blacklisted_users": sorted(self.blacklisted_users),
            "whitelisted_users": sorted(self.whitelisted_users),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Counter":
        public_edit = payload.get("public_edit")
        return cls(
            name=str(payload.get("name") or ""),
            owner_id=_as_int(payload.get("owner_id")),
            location=_as_location(payload.get("location")),
            created_at=_parse_created_at(payload.get("created_at")),
            count=_as_int(payload.get("count")),
            queries=_as_int(payload.get("queries")),
            public_edit=True if public_edit is None else bool(public_edit),
            blacklisted_users=_as_id_set(payload.get("blacklisted_users")),
            whitelisted_users=_as_id_set(payload.get("whitelisted_users")),
        )


@dataclass(slots=True)
class Tag:
    name: str
    content: str
    owner_id: int
    location: str | None = None
    created_at: datetime = field(default_factory=_utc_now)
    uses: int = 0

    def is_generic(self) -> bool:
        return self.location is None or self.location == GENERIC_LOCATION_KEY

    def bump_usage(self) -> None:
        self.uses += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "content": self.content,
            "owner_id": int(self.owner_id),
            "uses": int(self.uses),
            "location": self.location,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Tag":
        return cls(
            name=str(payload.get("name") or ""),
            content=str(payload.get("content") or ""),
            owner_id=_as_int(payload.get("owner_id")),
            location=_as_location(payload.get("location")),
            created_at=_parse_created_at(payload.get("created_at")),
            uses=_as_int(payload.get("uses")),
        )


RECORD_KINDS: dict[str, type] = {
    "counter": Counter,
    "tag": Tag,
}

RECORD_LABELS: dict[str, str] = {
    "counter": "Counter",
    "tag": "Tag",
}

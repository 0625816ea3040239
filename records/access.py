from __future__ import annotations

from typing import Any, Iterable

from config.defaults import BLOCKED_NAME_TOKENS
from config.defaults import RECORD_NAME_MAX_CHARS
from records.errors import RecordError


def normalize_name(raw: str | None) -> str:
    return str(raw or "").strip().lower()


# Denies certain record names from being used as keys.
def verify_record_name(name: str, label: str = "Record") -> None:
    if not name:
        raise RecordError("missing_argument", f"Please specify a name for the {label.lower()}.")
    if any(token in name for token in BLOCKED_NAME_TOKENS):
        raise RecordError("invalid_name", f"{label} contains blocked words")
    if len(name) > RECORD_NAME_MAX_CHARS:
        raise RecordError("invalid_name", f"{label} name limit is {RECORD_NAME_MAX_CHARS} characters")


def owner_check(actor_id: int, record: Any, admin_ids: Iterable[int] = frozenset()) -> bool:
    actor = int(actor_id)
    if actor in {int(uid) for uid in admin_ids}:
        return True
    return actor == int(record.owner_id)


def edit_check(actor_id: int, counter: Any) -> bool:
    actor = int(actor_id)

    # Not publicly editable: only the owner may edit.
    if not counter.public_edit:
        return owner_check(actor, counter)

    # A non-empty whitelist turns whitelist enforcement on.
    if counter.whitelisted_users and actor not in counter.whitelisted_users:
        return False

    if actor in counter.blacklisted_users:
        return False

    return True

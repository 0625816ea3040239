from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Iterable

from config.defaults import INTERNAL_ERROR_MESSAGE
from records.access import edit_check
from records.access import normalize_name
from records.access import owner_check
from records.access import verify_record_name
from records.collection import RecordCollection
from records.collection import location_key
from records.errors import RecordError
from records.models import Counter
from records.models import Tag
from store.kv_store import StoreError


PERMISSION_DENIED_MESSAGE = "You do not have permission to do that."
ACCESS_LIST_KINDS = ("whitelist", "blacklist")


def _stored_location(location: int | None) -> str | None:
    return None if location is None else str(location)


class RecordService:
    """Serialized access to one record collection.

    One instance exists per collection for the life of the process. Every
    operation holds ``_lock`` across its whole read-modify-write sequence, so
    concurrent commands against the same collection never lose updates. An
    unexpected failure inside the critical section poisons the service: every
    later call raises ``RecordError("internal")`` instead of trusting the
    in-memory map.
    """

    kind = "record"

    def __init__(self, collection: RecordCollection, *, admin_ids: Iterable[int] = ()) -> None:
        self.collection = collection
        self.label = collection.label
        self.admin_ids = frozenset(int(uid) for uid in admin_ids)
        self._lock = asyncio.Lock()
        self._poisoned = False

    @property
    def poisoned(self) -> bool:
        return self._poisoned

    @asynccontextmanager
    async def _critical_section(self, action: str) -> AsyncIterator[None]:
        async with self._lock:
            if self._poisoned:
                raise RecordError("internal", INTERNAL_ERROR_MESSAGE)
            try:
                yield
            except RecordError:
                raise
            except StoreError as exc:
                # The store already rolled its map back; nothing was applied.
                print(f"[RECORDS] kind={self.kind} action={action} result=save_failed err={exc}")
                raise RecordError(
                    "save_failed",
                    f"Failed to save the {self.label.lower()}; the change was not applied.",
                ) from exc
            except Exception as exc:
                self._poisoned = True
                print(f"[RECORDS] kind={self.kind} action={action} result=poisoned err={exc!r}")
                raise RecordError("internal", INTERNAL_ERROR_MESSAGE) from exc

    async def _run_store(self, fn: Callable[..., Any], *args: Any) -> Any:
        """Run a blocking collection write off the event loop.

        A cancelled caller still waits for the worker thread before the
        critical section exits, so the lock covers the whole write.
        """
        task = asyncio.ensure_future(asyncio.to_thread(fn, *args))
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            await asyncio.wait({task})
            if not task.cancelled() and task.exception() is not None:
                print(f"[RECORDS] kind={self.kind} write after cancel failed err={task.exception()!r}")
            raise

    def _lookup_name(self, name: str | None) -> str:
        clean = normalize_name(name)
        if not clean:
            raise RecordError("missing_argument", f"Please specify a name for the {self.label.lower()}.")
        return clean

    def _creation_name(self, name: str | None) -> str:
        clean = normalize_name(name)
        verify_record_name(clean, self.label)
        return clean

    def _can_delete(self, actor_id: int, record: Any) -> bool:
        return owner_check(actor_id, record)

    async def _create(self, location: int | None, name: str, record: Any) -> Any:
        async with self._critical_section("create"):
            await self._run_store(self.collection.create_record, location, name, record)
        print(f"[RECORDS] kind={self.kind} action=create result=ok name={name} location={location_key(location)}")
        return record

    async def info(self, location: int | None, name: str | None) -> Any:
        clean = self._lookup_name(name)
        async with self._critical_section("info"):
            return self.collection.get_record(location, clean)

    async def list_names(self, location: int | None) -> list[str]:
        async with self._critical_section("list"):
            return self.collection.list_names(location)

    async def record_count(self) -> int:
        async with self._critical_section("count"):
            return self.collection.count_records()

    async def invoke(self, location: int | None, name: str | None) -> Any:
        """Look a record up by bare name and bump its usage counter.

        The bumped copy is written under the lookup location, so invoking a
        generic record from inside a guild stores a guild-specific copy.
        """
        clean = self._lookup_name(name)
        async with self._critical_section("invoke"):
            record = self.collection.get_record(location, clean)
            record.bump_usage()
            await self._run_store(self.collection.put_record, location, clean, record)
        return record

    async def delete(self, location: int | None, actor_id: int, name: str | None) -> tuple[str, bool]:
        """Delete a record from the lookup location's namespace.

        Returns the normalized name and whether anything was removed. A generic
        record found from inside a guild is not in the guild namespace, so it
        survives and the second element is False.
        """
        clean = self._lookup_name(name)
        async with self._critical_section("delete"):
            record = self.collection.get_record(location, clean)
            if not self._can_delete(actor_id, record):
                raise RecordError("permission_denied", PERMISSION_DENIED_MESSAGE)
            removed = await self._run_store(self.collection.delete_record, location, clean)
        result = "ok" if removed else "not_in_namespace"
        print(f"[RECORDS] kind={self.kind} action=delete result={result} name={clean} actor={int(actor_id)}")
        return clean, bool(removed)


class CounterService(RecordService):
    kind = "counter"

    async def create(self, location: int | None, actor_id: int, name: str | None) -> Counter:
        clean = self._creation_name(name)
        counter = Counter(name=clean, owner_id=int(actor_id), location=_stored_location(location))
        return await self._create(location, clean, counter)

    async def _edit(self, location: int | None, actor_id: int, name: str | None, step: int) -> Counter:
        clean = self._lookup_name(name)
        async with self._critical_section("increment" if step > 0 else "decrement"):
            counter = self.collection.get_record(location, clean)
            if not edit_check(actor_id, counter):
                raise RecordError("permission_denied", PERMISSION_DENIED_MESSAGE)
            if step > 0:
                counter.increment()
            else:
                counter.decrement()
            await self._run_store(self.collection.put_record, location, clean, counter)
        return counter

    async def increment(self, location: int | None, actor_id: int, name: str | None) -> Counter:
        return await self._edit(location, actor_id, name, 1)

    async def decrement(self, location: int | None, actor_id: int, name: str | None) -> Counter:
        return await self._edit(location, actor_id, name, -1)

    async def set_public_edit(
        self,
        location: int | None,
        actor_id: int,
        name: str | None,
        enabled: bool,
    ) -> Counter:
        clean = self._lookup_name(name)
        async with self._critical_section("public_edit"):
            counter = self.collection.get_record(location, clean)
            if not owner_check(actor_id, counter):
                raise RecordError("permission_denied", PERMISSION_DENIED_MESSAGE)
            counter.public_edit = bool(enabled)
            await self._run_store(self.collection.put_record, location, clean, counter)
        return counter

    async def set_user_access(
        self,
        location: int | None,
        actor_id: int,
        name: str | None,
        list_kind: str,
        user_id: int,
        allowed: bool,
    ) -> Counter:
        list_kind = str(list_kind or "").strip().lower()
        if list_kind not in ACCESS_LIST_KINDS:
            raise RecordError("missing_argument", "Specify either `whitelist` or `blacklist`.")
        clean = self._lookup_name(name)
        async with self._critical_section(list_kind):
            counter = self.collection.get_record(location, clean)
            if not owner_check(actor_id, counter):
                raise RecordError("permission_denied", PERMISSION_DENIED_MESSAGE)
            users = counter.whitelisted_users if list_kind == "whitelist" else counter.blacklisted_users
            if allowed:
                users.add(int(user_id))
            else:
                users.discard(int(user_id))
            await self._run_store(self.collection.put_record, location, clean, counter)
        return counter


class TagService(RecordService):
    kind = "tag"

    def _can_delete(self, actor_id: int, record: Any) -> bool:
        return owner_check(actor_id, record, self.admin_ids)

    @staticmethod
    def _content(content: str | None) -> str:
        text = str(content or "").strip()
        if not text:
            raise RecordError("missing_argument", "Please specify some content for the tag.")
        return text

    async def create(self, location: int | None, actor_id: int, name: str | None, content: str | None) -> Tag:
        clean = self._creation_name(name)
        text = self._content(content)
        tag = Tag(name=clean, content=text, owner_id=int(actor_id), location=_stored_location(location))
        return await self._create(location, clean, tag)

    async def edit_content(
        self,
        location: int | None,
        actor_id: int,
        name: str | None,
        content: str | None,
    ) -> Tag:
        clean = self._lookup_name(name)
        text = self._content(content)
        async with self._critical_section("edit"):
            tag = self.collection.get_record(location, clean)
            if not owner_check(actor_id, tag, self.admin_ids):
                raise RecordError("permission_denied", PERMISSION_DENIED_MESSAGE)
            tag.content = text
            await self._run_store(self.collection.put_record, location, clean, tag)
        return tag

from __future__ import annotations

import asyncio
import tempfile
import threading
import unittest
from pathlib import Path
from unittest import mock

from config.defaults import INTERNAL_ERROR_MESSAGE
from records.collection import RecordCollection
from records.errors import RecordError
from records.models import Counter
from records.models import Tag
from records.service import CounterService
from records.service import TagService
from store.kv_store import JsonFileStore
from store.kv_store import MemoryStore


GUILD = 4242
OWNER = 1
OTHER = 2
ADMIN = 99


def _counter_service(store=None) -> CounterService:
    return CounterService(RecordCollection(store or MemoryStore(), Counter, label="Counter"))


def _tag_service(store=None) -> TagService:
    return TagService(RecordCollection(store or MemoryStore(), Tag, label="Tag"), admin_ids={ADMIN})


class CounterServiceTests(unittest.IsolatedAsyncioTestCase):
    async def test_wins_scenario(self):
        service = _counter_service()
        created = await service.create(GUILD, OWNER, "wins")
        self.assertEqual(created.count, 0)

        await service.increment(GUILD, OWNER, "wins")
        await service.increment(GUILD, OWNER, "wins")
        self.assertEqual((await service.info(GUILD, "wins")).count, 2)

        await service.increment(GUILD, OTHER, "wins")
        self.assertEqual((await service.info(GUILD, "wins")).count, 3)

        await service.set_public_edit(GUILD, OWNER, "wins", False)
        with self.assertRaises(RecordError) as ctx:
            await service.increment(GUILD, OTHER, "wins")
        self.assertEqual(ctx.exception.code, "permission_denied")
        self.assertEqual((await service.info(GUILD, "wins")).count, 3)

        await service.delete(GUILD, OWNER, "wins")
        with self.assertRaises(RecordError) as ctx:
            await service.info(GUILD, "wins")
        self.assertEqual(ctx.exception.code, "not_found")

    async def test_concurrent_increments_are_not_lost(self):
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "counters.json"
            service = _counter_service(JsonFileStore(path))
            await service.create(GUILD, OWNER, "wins")

            await asyncio.gather(*(service.increment(GUILD, OTHER, "wins") for _ in range(25)))

            self.assertEqual((await service.info(GUILD, "wins")).count, 25)
            reloaded = _counter_service(JsonFileStore(path))
            self.assertEqual((await reloaded.info(GUILD, "wins")).count, 25)

    async def test_increment_then_decrement_restores_count(self):
        service = _counter_service()
        await service.create(None, OWNER, "wins")
        await service.increment(None, OWNER, "wins")
        await service.decrement(None, OWNER, "wins")
        self.assertEqual((await service.info(None, "wins")).count, 0)

    async def test_names_are_case_insensitive(self):
        service = _counter_service()
        created = await service.create(GUILD, OWNER, "  Foo ")
        self.assertEqual(created.name, "foo")
        found = await service.info(GUILD, "FOO")
        self.assertEqual(found.name, "foo")
        self.assertEqual(found.created_at, created.created_at)

    async def test_duplicate_create_is_rejected(self):
        service = _counter_service()
        await service.create(GUILD, OWNER, "wins")
        with self.assertRaises(RecordError) as ctx:
            await service.create(GUILD, OTHER, "WINS")
        self.assertEqual(ctx.exception.code, "duplicate_name")
        self.assertEqual((await service.info(GUILD, "wins")).owner_id, OWNER)

    async def test_invalid_names_fail_before_locking(self):
        service = _counter_service()
        with mock.patch.object(service, "_critical_section") as section:
            with self.assertRaises(RecordError) as ctx:
                await service.create(GUILD, OWNER, "@everyone")
        self.assertEqual(ctx.exception.code, "invalid_name")
        section.assert_not_called()

    async def test_generic_counter_has_no_location(self):
        service = _counter_service()
        generic = await service.create(None, OWNER, "wins")
        local = await service.create(GUILD, OWNER, "losses")
        self.assertIsNone(generic.location)
        self.assertTrue(generic.is_generic())
        self.assertEqual(local.location, str(GUILD))

    async def test_invoke_bumps_queries(self):
        service = _counter_service()
        await service.create(GUILD, OWNER, "wins")
        await service.invoke(GUILD, "wins")
        counter = await service.invoke(GUILD, "Wins")
        self.assertEqual(counter.queries, 2)
        self.assertEqual((await service.info(GUILD, "wins")).queries, 2)

    async def test_invoking_generic_record_in_guild_writes_shadow_copy(self):
        store = MemoryStore()
        service = _counter_service(store)
        await service.create(None, OWNER, "wins")

        await service.invoke(GUILD, "wins")
        await service.invoke(GUILD + 1, "wins")

        self.assertEqual(store.get(str(GUILD))["wins"]["queries"], 1)
        self.assertEqual(store.get(str(GUILD + 1))["wins"]["queries"], 1)
        self.assertEqual((await service.info(None, "wins")).queries, 0)

    async def test_whitelist_and_blacklist_management(self):
        service = _counter_service()
        await service.create(GUILD, OWNER, "wins")

        with self.assertRaises(RecordError) as ctx:
            await service.set_user_access(GUILD, OTHER, "wins", "blacklist", OTHER, False)
        self.assertEqual(ctx.exception.code, "permission_denied")

        await service.set_user_access(GUILD, OWNER, "wins", "blacklist", OTHER, True)
        with self.assertRaises(RecordError):
            await service.increment(GUILD, OTHER, "wins")

        await service.set_user_access(GUILD, OWNER, "wins", "blacklist", OTHER, False)
        await service.set_user_access(GUILD, OWNER, "wins", "whitelist", 3, True)
        with self.assertRaises(RecordError):
            await service.increment(GUILD, OTHER, "wins")
        await service.increment(GUILD, 3, "wins")

        counter = await service.info(GUILD, "wins")
        self.assertEqual(counter.count, 1)
        self.assertEqual(counter.whitelisted_users, {3})
        self.assertEqual(counter.blacklisted_users, set())

    async def test_unknown_access_list_is_rejected(self):
        service = _counter_service()
        await service.create(GUILD, OWNER, "wins")
        with self.assertRaises(RecordError) as ctx:
            await service.set_user_access(GUILD, OWNER, "wins", "greylist", OTHER, True)
        self.assertEqual(ctx.exception.code, "missing_argument")

    async def test_delete_reports_whether_anything_was_removed(self):
        service = _counter_service()
        await service.create(None, OWNER, "wins")
        await service.create(GUILD, OWNER, "losses")

        self.assertEqual(await service.delete(GUILD, OWNER, "wins"), ("wins", False))
        self.assertEqual((await service.info(GUILD, "wins")).name, "wins")

        self.assertEqual(await service.delete(GUILD, OWNER, "losses"), ("losses", True))
        self.assertEqual(await service.delete(None, OWNER, "wins"), ("wins", True))
        self.assertEqual(await service.list_names(GUILD), [])

    async def test_only_owner_deletes_counter(self):
        service = _counter_service()
        await service.create(GUILD, OWNER, "wins")
        with self.assertRaises(RecordError) as ctx:
            await service.delete(GUILD, OTHER, "wins")
        self.assertEqual(ctx.exception.code, "permission_denied")
        self.assertEqual(await service.list_names(GUILD), ["wins"])


class ServiceFailureTests(unittest.IsolatedAsyncioTestCase):
    async def test_failed_save_is_reported_and_not_applied(self):
        with tempfile.TemporaryDirectory() as td:
            service = _counter_service(JsonFileStore(Path(td) / "counters.json"))
            await service.create(GUILD, OWNER, "wins")

            with mock.patch("store.kv_store.os.replace", side_effect=OSError("disk full")):
                with self.assertRaises(RecordError) as ctx:
                    await service.increment(GUILD, OWNER, "wins")
            self.assertEqual(ctx.exception.code, "save_failed")

            self.assertFalse(service.poisoned)
            self.assertEqual((await service.info(GUILD, "wins")).count, 0)
            await service.increment(GUILD, OWNER, "wins")
            self.assertEqual((await service.info(GUILD, "wins")).count, 1)

    async def test_unexpected_failure_poisons_service(self):
        service = _counter_service()
        await service.create(GUILD, OWNER, "wins")

        with mock.patch.object(service.collection, "get_record", side_effect=ValueError("boom")):
            with self.assertRaises(RecordError) as ctx:
                await service.increment(GUILD, OWNER, "wins")
        self.assertEqual(ctx.exception.code, "internal")
        self.assertTrue(service.poisoned)

        with self.assertRaises(RecordError) as ctx:
            await service.list_names(GUILD)
        self.assertEqual(ctx.exception.code, "internal")
        self.assertEqual(ctx.exception.message, INTERNAL_ERROR_MESSAGE)

    async def test_cancelled_write_keeps_lock_until_thread_finishes(self):
        service = _counter_service()
        await service.create(GUILD, OWNER, "wins")

        entered = threading.Event()
        release = threading.Event()
        real_put = service.collection.put_record

        def slow_put(*args):
            entered.set()
            release.wait(5)
            real_put(*args)

        with mock.patch.object(service.collection, "put_record", side_effect=slow_put):
            first = asyncio.create_task(service.increment(GUILD, OWNER, "wins"))
            while not entered.is_set():
                await asyncio.sleep(0.01)
            first.cancel()
            await asyncio.sleep(0.05)

            # The worker thread is still writing, so the lock must still be held.
            self.assertTrue(service._lock.locked())
            self.assertFalse(first.done())

            release.set()
            with self.assertRaises(asyncio.CancelledError):
                await first

        self.assertFalse(service._lock.locked())
        self.assertFalse(service.poisoned)
        await service.increment(GUILD, OWNER, "wins")
        self.assertEqual((await service.info(GUILD, "wins")).count, 2)

    async def test_request_errors_do_not_poison(self):
        service = _counter_service()
        with self.assertRaises(RecordError):
            await service.info(GUILD, "missing")
        self.assertFalse(service.poisoned)
        self.assertEqual(await service.list_names(GUILD), [])

    async def test_poisoning_is_per_service(self):
        counters = _counter_service()
        tags = _tag_service()
        with mock.patch.object(counters.collection, "list_names", side_effect=KeyError("x")):
            with self.assertRaises(RecordError):
                await counters.list_names(None)
        self.assertEqual(await tags.list_names(None), [])


class TagServiceTests(unittest.IsolatedAsyncioTestCase):
    async def test_create_requires_content(self):
        service = _tag_service()
        with self.assertRaises(RecordError) as ctx:
            await service.create(GUILD, OWNER, "hello", "   ")
        self.assertEqual(ctx.exception.code, "missing_argument")
        self.assertEqual(await service.list_names(GUILD), [])

    async def test_invoke_returns_content_and_bumps_uses(self):
        service = _tag_service()
        await service.create(GUILD, OWNER, "Hello", "world!")
        tag = await service.invoke(GUILD, "HELLO")
        self.assertEqual(tag.content, "world!")
        self.assertEqual(tag.uses, 1)

    async def test_edit_is_owner_or_admin_only(self):
        service = _tag_service()
        await service.create(GUILD, OWNER, "hello", "v1")

        with self.assertRaises(RecordError) as ctx:
            await service.edit_content(GUILD, OTHER, "hello", "v2")
        self.assertEqual(ctx.exception.code, "permission_denied")

        await service.edit_content(GUILD, ADMIN, "hello", "v2")
        await service.edit_content(GUILD, OWNER, "hello", "v3")
        self.assertEqual((await service.info(GUILD, "hello")).content, "v3")

    async def test_edit_without_content_is_rejected(self):
        service = _tag_service()
        await service.create(GUILD, OWNER, "hello", "v1")
        with self.assertRaises(RecordError) as ctx:
            await service.edit_content(GUILD, OWNER, "hello", "")
        self.assertEqual(ctx.exception.code, "missing_argument")

    async def test_admin_may_delete(self):
        service = _tag_service()
        await service.create(None, OWNER, "hello", "v1")
        await service.delete(None, ADMIN, "hello")
        self.assertEqual(await service.list_names(None), [])

    async def test_record_count(self):
        service = _tag_service()
        await service.create(None, OWNER, "a", "1")
        await service.create(GUILD, OWNER, "b", "2")
        self.assertEqual(await service.record_count(), 2)


if __name__ == "__main__":
    unittest.main()

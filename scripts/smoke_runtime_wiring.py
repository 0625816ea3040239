from __future__ import annotations

import importlib
import tempfile
from datetime import datetime, timezone
from pathlib import Path


async def _noop_async(*args, **kwargs):
    return None


def _try_import_or_skip(module_name: str, pip_name: str | None = None) -> bool:
    try:
        importlib.import_module(module_name)
        return True
    except ModuleNotFoundError:
        install_name = pip_name or module_name
        print(
            f"Smoke wiring check skipped: missing dependency '{module_name}'. "
            f"Install requirements and retry (e.g. `pip install {install_name}` "
            f"or `pip install -e .`)."
        )
        return False


def _main() -> int:
    if not _try_import_or_skip("discord", "discord.py"):
        return 0

    import discord
    from discord.ext import commands
    from misc.runtime_wiring import wire_bot_runtime
    from records.collection import RecordCollection
    from records.models import Counter
    from records.models import Tag
    from records.service import CounterService
    from records.service import TagService
    from store.kv_store import JsonFileStore

    intents = discord.Intents.none()
    bot = commands.Bot(command_prefix="!", intents=intents)

    with tempfile.TemporaryDirectory() as td:
        counter_service = CounterService(
            RecordCollection(JsonFileStore(Path(td) / "counters.json"), Counter, label="Counter"),
        )
        tag_service = TagService(
            RecordCollection(JsonFileStore(Path(td) / "tags.json"), Tag, label="Tag"),
        )

        wire_bot_runtime(
            bot,
            counter_service=counter_service,
            tag_service=tag_service,
            user_is_owner=lambda user: True,
            send_chunked=_noop_async,
            bot_name="Tallybot",
            source_url="https://example.invalid/tallybot",
            started_at=datetime.now(timezone.utc),
        )

    expected_commands = {
        "counter",
        "tag",
        "ping",
        "stats",
        "roll",
    }
    existing_commands = set(bot.all_commands.keys())
    missing = sorted(expected_commands - existing_commands)
    if missing:
        raise RuntimeError(f"Missing expected commands: {missing}")

    if getattr(bot, "on_ready", None) is None or getattr(bot, "_before_invoke", None) is None:
        raise RuntimeError("Runtime events were not registered")

    print("Smoke wiring check passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(_main())

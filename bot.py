import os
from datetime import datetime, timezone

import discord
from discord.ext import commands
from config.defaults import DEFAULT_CONFIG_PATH
from config.defaults import DEFAULT_COUNTERS_PATH
from config.defaults import DEFAULT_TAGS_PATH
from config.settings import load_bot_settings
from config.settings import parse_id_set
from misc.messaging import send_chunked
from misc.runtime_wiring import wire_bot_runtime
from records.collection import RecordCollection
from records.models import RECORD_KINDS
from records.models import RECORD_LABELS
from records.service import CounterService
from records.service import TagService
from store.kv_store import JsonFileStore
from store.kv_store import StoreError

# =========================
# ENV
# =========================
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN")

if not DISCORD_TOKEN:
    raise RuntimeError("Missing DISCORD_TOKEN env var")

STARTED_AT = datetime.now(timezone.utc)

CONFIG_PATH = os.getenv("TALLY_CONFIG_PATH", DEFAULT_CONFIG_PATH)
COUNTERS_PATH = os.getenv("TALLY_COUNTERS_PATH", DEFAULT_COUNTERS_PATH)
TAGS_PATH = os.getenv("TALLY_TAGS_PATH", DEFAULT_TAGS_PATH)

# =========================
# BOT SETTINGS
# =========================
SETTINGS, SETTINGS_WARNING = load_bot_settings(CONFIG_PATH)
if SETTINGS_WARNING:
    print(f"[CFG] {SETTINGS_WARNING}")

COMMAND_PREFIX = os.getenv("TALLY_COMMAND_PREFIX", "").strip() or SETTINGS.command_prefix
OWNER_USER_IDS = set(SETTINGS.owners) | parse_id_set(os.getenv("TALLY_OWNER_USER_IDS"))

print(
    f"[CFG] bot_name={SETTINGS.bot_name!r} prefix={COMMAND_PREFIX!r} "
    f"owner_ids={len(OWNER_USER_IDS)} counters_path={COUNTERS_PATH} tags_path={TAGS_PATH}"
)


def user_is_owner(user: discord.abc.User) -> bool:
    uid = int(getattr(user, "id", 0) or 0)
    return bool(uid) and uid in OWNER_USER_IDS


# =========================
# STORES
# =========================
# A store that exists but cannot be read is fatal: there is no safe default.
try:
    counter_store = JsonFileStore(COUNTERS_PATH)
    tag_store = JsonFileStore(TAGS_PATH)
except StoreError as exc:
    raise SystemExit(f"[STORE] startup aborted code={exc.code}: {exc}") from exc

counter_service = CounterService(
    RecordCollection(counter_store, RECORD_KINDS["counter"], label=RECORD_LABELS["counter"]),
)
tag_service = TagService(
    RecordCollection(tag_store, RECORD_KINDS["tag"], label=RECORD_LABELS["tag"]),
    admin_ids=OWNER_USER_IDS,
)

# =========================
# DISCORD BOT
# =========================
intents = discord.Intents.default()
intents.message_content = True

bot = commands.AutoShardedBot(command_prefix=COMMAND_PREFIX, intents=intents)

wire_bot_runtime(
    bot,
    counter_service=counter_service,
    tag_service=tag_service,
    user_is_owner=user_is_owner,
    send_chunked=send_chunked,
    bot_name=SETTINGS.bot_name,
    source_url=SETTINGS.source_url,
    started_at=STARTED_AT,
)

bot.run(DISCORD_TOKEN)

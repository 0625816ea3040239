from __future__ import annotations

# Storage
DEFAULT_COUNTERS_PATH = "counters.json"
DEFAULT_TAGS_PATH = "tags.json"
DEFAULT_CONFIG_PATH = "config/bot.yml"
GENERIC_LOCATION_KEY = "generic"

# Record names
RECORD_NAME_MAX_CHARS = 100
BLOCKED_NAME_TOKENS = ("@everyone", "@here")

# Bot settings fallbacks
DEFAULT_BOT_NAME = "Tallybot"
DEFAULT_COMMAND_PREFIX = ";"
DEFAULT_SOURCE_URL = "https://github.com/tallybot/tallybot"

DISCORD_MAX_MESSAGE_LEN = 1900  # keep under 2000 hard limit

INTERNAL_ERROR_MESSAGE = "An internal error occurred; please report this to the bot owner."

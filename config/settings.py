from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from config.defaults import DEFAULT_BOT_NAME
from config.defaults import DEFAULT_COMMAND_PREFIX
from config.defaults import DEFAULT_SOURCE_URL


@dataclass(slots=True)
class BotSettings:
    # Name by which the bot refers to itself (e.g. in the stats embed).
    bot_name: str = DEFAULT_BOT_NAME
    command_prefix: str = DEFAULT_COMMAND_PREFIX
    source_url: str = DEFAULT_SOURCE_URL
    # Users who pass every tag owner check.
    owners: set[int] = field(default_factory=set)


def parse_id_set(raw: str | None) -> set[int]:
    if not raw:
        return set()
    out: set[int] = set()
    for tok in re.split(r"[\s,;]+", raw.strip()):
        if not tok:
            continue
        if re.fullmatch(r"\d{8,22}", tok):
            out.add(int(tok))
    return out


def _as_id_set(value: Any) -> set[int]:
    if not isinstance(value, list):
        return set()
    out: set[int] = set()
    for item in value:
        try:
            uid = int(item)
        except (TypeError, ValueError):
            continue
        if uid > 0:
            out.add(uid)
    return out


def load_bot_settings(path: str | Path | None) -> tuple[BotSettings, str | None]:
    """
    Returns (settings, warning_message). warning_message is None on clean load.
    """
    defaults = BotSettings()
    if not path:
        return (defaults, "Bot settings path missing; using built-in defaults.")

    p = Path(path)
    if not p.exists():
        return (defaults, f"Bot settings file not found at {p}; using built-in defaults.")

    try:
        payload = yaml.safe_load(p.read_text(encoding="utf-8"))
    except Exception as exc:
        return (defaults, f"Failed to read bot settings from {p}: {exc}; using built-in defaults.")

    if not isinstance(payload, dict):
        return (defaults, f"Invalid bot settings format in {p}; using built-in defaults.")

    settings = BotSettings(
        bot_name=str(payload.get("bot_name") or defaults.bot_name).strip() or defaults.bot_name,
        command_prefix=str(payload.get("command_prefix") or defaults.command_prefix),
        source_url=str(payload.get("source_url") or defaults.source_url).strip() or defaults.source_url,
        owners=_as_id_set(payload.get("owners")),
    )
    return (settings, None)

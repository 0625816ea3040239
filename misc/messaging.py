from __future__ import annotations

import re

import discord

from config.defaults import DISCORD_MAX_MESSAGE_LEN


def chunk_text(text: str, limit: int = DISCORD_MAX_MESSAGE_LEN) -> list[str]:
    text = text or ""
    if len(text) <= limit:
        return [text]

    chunks = []
    remaining = text

    while len(remaining) > limit:
        # Prefer splitting on paragraph, then newline, then comma/space
        split_at = remaining.rfind("\n\n", 0, limit)
        if split_at == -1:
            split_at = remaining.rfind("\n", 0, limit)
        if split_at == -1:
            split_at = remaining.rfind(" ", 0, limit)
        if split_at == -1:
            split_at = limit

        chunk = remaining[:split_at].strip()
        if chunk:
            chunks.append(chunk)

        remaining = remaining[split_at:].strip()

    if remaining:
        chunks.append(remaining)

    return chunks


async def send_chunked(channel: discord.abc.Messageable, text: str) -> None:
    for part in chunk_text(text, DISCORD_MAX_MESSAGE_LEN):
        await channel.send(part)


def parse_user_id_token(token: str | None) -> int | None:
    token = (token or "").strip()
    if not token:
        return None
    # User mention: <@1234567890> or <@!1234567890>
    m = re.match(r"^<@!?(\d{1,20})>$", token)
    if m:
        return int(m.group(1))
    m2 = re.match(r"^(\d{1,20})$", token)
    if m2:
        return int(m2.group(1))
    return None

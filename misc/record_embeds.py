from __future__ import annotations

from datetime import timedelta
from typing import Any

import discord

from records.models import Counter


def duration_to_string(duration: timedelta) -> str:
    """Render a duration as "Wd Xh Ym Zs"."""
    total = max(0, int(duration.total_seconds()))
    days, rem = divmod(total, 86400)
    hours, rem = divmod(rem, 3600)
    minutes, seconds = divmod(rem, 60)
    return f"{days}d {hours}h {minutes}m {seconds}s"


def location_label(record: Any) -> str:
    return "Generic" if record.is_generic() else "Server-specific"


def build_record_embed(record: Any, *, owner: Any = None) -> discord.Embed:
    embed = discord.Embed(title=record.name, timestamp=record.created_at)
    embed.add_field(name="Owner", value=f"<@!{int(record.owner_id)}>")
    if isinstance(record, Counter):
        embed.add_field(name="Count", value=str(record.count))
        embed.add_field(name="Queries", value=str(record.queries))
        embed.add_field(name="Public edit", value="yes" if record.public_edit else "no")
    else:
        embed.add_field(name="Uses", value=str(record.uses))
    if owner is not None:
        avatar = getattr(owner, "display_avatar", None)
        embed.set_author(
            name=str(getattr(owner, "name", "") or record.owner_id),
            icon_url=getattr(avatar, "url", None),
        )
    embed.set_footer(text=location_label(record))
    return embed


def format_name_list(names: list[str], plural_label: str) -> str:
    if not names:
        return f"No {plural_label} available."
    return f"Available {plural_label}: {', '.join(sorted(names))}"

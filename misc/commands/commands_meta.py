from __future__ import annotations

import random
import re
import time
from datetime import datetime
from datetime import timezone

import discord
from discord.ext import commands
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.record_embeds import duration_to_string
from records.errors import RecordError


ROLL_USAGE = "Please specify a roll in the form XdY (e.g. 2d6)"
DICE_ROLL_RE = re.compile(r"^(\d*)d(\d*)")
U32_MAX = 4294967295
MAX_DICE = 100


def parse_roll(raw: str | None) -> tuple[int, int]:
    """Parse "XdY" into (number_of_dice, die_sides); ValueError carries the reply."""
    m = DICE_ROLL_RE.match((raw or "").strip())
    if not m or not m.group(1) or not m.group(2):
        raise ValueError(ROLL_USAGE)
    if len(m.group(1)) > 10 or len(m.group(2)) > 10:
        raise ValueError(ROLL_USAGE)
    dice = int(m.group(1))
    sides = int(m.group(2))
    if dice > U32_MAX or sides > U32_MAX:
        raise ValueError(ROLL_USAGE)
    if sides == 0:
        raise ValueError("Number of die sides cannot be 0.")
    if sides == U32_MAX:
        raise ValueError("Number of die sides is too large")
    if dice == 0:
        raise ValueError("Number of dice cannot be 0")
    if dice > MAX_DICE:
        raise ValueError(f"Too many dice; the limit is {MAX_DICE}.")
    return dice, sides


def roll_dice(dice: int, sides: int) -> str:
    rolls = [random.randint(1, sides) for _ in range(dice)]
    total = sum(rolls)
    if total > U32_MAX:
        raise ValueError("Unable to calculate result: sum of rolls too large")
    if len(rolls) == 1:
        return str(total)
    return f"{' + '.join(str(r) for r in rolls)} = {total}"


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
    gates: CommandGates,
) -> None:
    @bot.command(name="ping")
    async def cmd_ping(ctx: commands.Context):
        if not gates.user_is_owner(ctx.author):
            return
        start = time.perf_counter()
        msg = await ctx.send("0")
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        if msg is not None:
            await msg.edit(content=f"Pong, {elapsed_ms} milliseconds")

    @bot.command(name="stats")
    async def cmd_stats(ctx: commands.Context):
        now = datetime.now(timezone.utc)
        embed = discord.Embed(title=f"{deps.bot_name} stats", timestamp=now)
        embed.add_field(name="Uptime", value=duration_to_string(now - deps.started_at))
        embed.add_field(name="Servers", value=str(len(getattr(bot, "guilds", []) or [])))

        for label, service in (("Counters", deps.counter_service), ("Tags", deps.tag_service)):
            if service is None:
                continue
            try:
                total = await service.record_count()
            except RecordError as exc:
                embed.add_field(name=label, value=exc.message)
                continue
            embed.add_field(name=label, value=str(total))

        if deps.command_usage:
            lines = [f"{name}: {n}" for name, n in deps.command_usage.most_common(10)]
            embed.add_field(name="Commands run", value="\n".join(lines), inline=False)
        if deps.source_url:
            embed.add_field(name="Source", value=deps.source_url, inline=False)

        await ctx.send(embed=embed)

    @bot.command(name="roll")
    async def cmd_roll(ctx: commands.Context, roll: str | None = None):
        try:
            dice, sides = parse_roll(roll)
            reply = roll_dice(dice, sides)
        except ValueError as exc:
            print(f"[CMD] command=roll result=rejected arg={roll!r} user={ctx.author.id}")
            await ctx.send(str(exc))
            return
        if deps.send_chunked is not None:
            await deps.send_chunked(ctx.channel, reply)
        else:
            await ctx.send(reply)

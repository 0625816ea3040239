from __future__ import annotations

from discord.ext import commands
from misc.runtime_deps import RuntimeDeps
from records.errors import RecordError


def register_runtime_events(
    bot: commands.Bot,
    *,
    deps: RuntimeDeps,
) -> None:
    @bot.event
    async def on_ready():
        shard = ""
        if getattr(bot, "shard_id", None) is not None and getattr(bot, "shard_count", None):
            shard = f"shard {int(bot.shard_id) + 1}/{int(bot.shard_count)} "
        print(f"[BOT] started {shard}as {bot.user}, serving {len(bot.guilds)} guilds")

    @bot.before_invoke
    async def count_command(ctx: commands.Context):
        name = ctx.command.qualified_name if ctx.command else "unknown"
        print(f"[CMD] got command={name!r} user={getattr(ctx.author, 'name', ctx.author.id)!r}")
        # Increment the number of times this command has been run.
        deps.command_usage[name] += 1

    @bot.event
    async def on_command_error(ctx: commands.Context, error: commands.CommandError):
        if isinstance(error, commands.CommandNotFound):
            return
        if isinstance(error, commands.UserInputError):
            await ctx.send(str(error))
            return

        original = getattr(error, "original", error)
        if isinstance(original, RecordError):
            await ctx.send(original.message)
            return

        name = ctx.command.qualified_name if ctx.command else "unknown"
        print(f"[CMD] command={name!r} result=error err={original!r}")
        await ctx.send(deps.internal_error_message)

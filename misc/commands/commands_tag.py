from __future__ import annotations

from discord.ext import commands
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.record_embeds import build_record_embed
from misc.record_embeds import format_name_list
from records.errors import RecordError


def _location(ctx: commands.Context) -> int | None:
    guild = getattr(ctx, "guild", None)
    if guild is None:
        return None
    return int(guild.id)


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
    gates: CommandGates,
) -> None:
    service = deps.tag_service

    @bot.command(name="tag")
    async def cmd_tag(ctx: commands.Context, first: str | None = None, *args: str):
        if service is None:
            await ctx.send("Tags are not configured.")
            return
        if not first:
            await ctx.send("Either specify a tag name or use one of the available commands.")
            return

        sub = first.strip().lower()
        location = _location(ctx)
        name = args[0] if args else None
        content = " ".join(args[1:])
        try:
            if sub == "create":
                if not name:
                    raise RecordError("missing_argument", "Please specify a name for the tag.")
                tag = await service.create(location, ctx.author.id, name, content)
                reply = f'Tag "{tag.name}" successfully created.'
            elif sub == "info":
                if not name:
                    raise RecordError("missing_argument", "Please specify a name for the tag to get info on.")
                tag = await service.info(location, name)
                owner = ctx.guild.get_member(tag.owner_id) if getattr(ctx, "guild", None) else None
                await ctx.send(embed=build_record_embed(tag, owner=owner))
                return
            elif sub == "list":
                reply = format_name_list(await service.list_names(location), "tags")
            elif sub == "edit":
                if not name:
                    raise RecordError("missing_argument", "Please specify a tag to edit.")
                tag = await service.edit_content(location, ctx.author.id, name, content)
                reply = f'Tag "{tag.name}" successfully updated.'
            elif sub == "delete":
                if not name:
                    raise RecordError("missing_argument", "Please specify a tag to delete.")
                deleted, removed = await service.delete(location, ctx.author.id, name)
                if removed:
                    reply = f'Tag "{deleted}" successfully deleted.'
                else:
                    reply = f'Tag "{deleted}" is generic; nothing was removed from this server.'
            else:
                tag = await service.invoke(location, first)
                if deps.send_chunked is not None:
                    await deps.send_chunked(ctx.channel, tag.content)
                else:
                    await ctx.send(tag.content)
                return
        except RecordError as exc:
            print(f"[CMD] command=tag sub={sub} result={exc.code} user={ctx.author.id}")
            await ctx.send(exc.message)
            return

        await ctx.send(reply)

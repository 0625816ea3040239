from __future__ import annotations

from discord.ext import commands
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.messaging import parse_user_id_token
from misc.record_embeds import build_record_embed
from misc.record_embeds import format_name_list
from records.errors import RecordError


TOGGLE_ON = {"on", "yes", "true", "enable", "1"}
TOGGLE_OFF = {"off", "no", "false", "disable", "0"}


def _location(ctx: commands.Context) -> int | None:
    guild = getattr(ctx, "guild", None)
    if guild is None:
        return None
    return int(guild.id)


def _require_name(args: tuple[str, ...], message: str) -> str:
    if not args:
        raise RecordError("missing_argument", message)
    return args[0]


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
    gates: CommandGates,
) -> None:
    service = deps.counter_service

    async def _create(ctx: commands.Context, args: tuple[str, ...]) -> str:
        name = _require_name(args, "Please specify a name for the counter.")
        counter = await service.create(_location(ctx), ctx.author.id, name)
        return f'Counter "{counter.name}" successfully created.'

    async def _info(ctx: commands.Context, args: tuple[str, ...]) -> str | None:
        name = _require_name(args, "Please specify a name for the counter to get info on.")
        counter = await service.info(_location(ctx), name)
        owner = ctx.guild.get_member(counter.owner_id) if getattr(ctx, "guild", None) else None
        await ctx.send(embed=build_record_embed(counter, owner=owner))
        return None

    async def _list(ctx: commands.Context, args: tuple[str, ...]) -> str:
        names = await service.list_names(_location(ctx))
        return format_name_list(names, "counters")

    async def _step(ctx: commands.Context, args: tuple[str, ...], *, up: bool) -> str:
        name = _require_name(args, "Please specify a counter to update.")
        if len(args) > 1:
            raise RecordError("extra_arguments", "Unnecessary extra arguments provided")
        if up:
            counter = await service.increment(_location(ctx), ctx.author.id, name)
        else:
            counter = await service.decrement(_location(ctx), ctx.author.id, name)
        return f'Counter "{counter.name}" successfully updated.'

    async def _delete(ctx: commands.Context, args: tuple[str, ...]) -> str:
        name = _require_name(args, "Please specify a counter to delete.")
        deleted, removed = await service.delete(_location(ctx), ctx.author.id, name)
        if not removed:
            return f'Counter "{deleted}" is generic; nothing was removed from this server.'
        return f'Counter "{deleted}" successfully deleted.'

    async def _public(ctx: commands.Context, args: tuple[str, ...]) -> str:
        name = _require_name(args, "Please specify a counter to update.")
        toggle = (args[1] if len(args) > 1 else "").strip().lower()
        if toggle not in TOGGLE_ON and toggle not in TOGGLE_OFF:
            raise RecordError("missing_argument", "Usage: `counter public <name> on|off`")
        counter = await service.set_public_edit(_location(ctx), ctx.author.id, name, toggle in TOGGLE_ON)
        return f'Counter "{counter.name}" successfully updated.'

    async def _access(ctx: commands.Context, args: tuple[str, ...], *, list_kind: str) -> str:
        usage = f"Usage: `counter {list_kind} <name> add|remove <@user>`"
        if len(args) < 3:
            raise RecordError("missing_argument", usage)
        name, action, user_token = args[0], args[1].strip().lower(), args[2]
        if action not in {"add", "remove"}:
            raise RecordError("missing_argument", usage)
        user_id = parse_user_id_token(user_token)
        if user_id is None:
            raise RecordError("missing_argument", "Couldn't parse that user. Use a mention or a numeric id.")
        counter = await service.set_user_access(
            _location(ctx),
            ctx.author.id,
            name,
            list_kind,
            user_id,
            action == "add",
        )
        return f'Counter "{counter.name}" successfully updated.'

    async def _lookup(ctx: commands.Context, name: str) -> str:
        counter = await service.invoke(_location(ctx), name)
        return str(counter.count)

    @bot.command(name="counter")
    async def cmd_counter(ctx: commands.Context, first: str | None = None, *args: str):
        if service is None:
            await ctx.send("Counters are not configured.")
            return
        if not first:
            await ctx.send("Either specify a counter name or use one of the available commands.")
            return

        sub = first.strip().lower()
        try:
            if sub == "create":
                reply = await _create(ctx, args)
            elif sub == "info":
                reply = await _info(ctx, args)
            elif sub == "list":
                reply = await _list(ctx, args)
            elif sub == "increment":
                reply = await _step(ctx, args, up=True)
            elif sub == "decrement":
                reply = await _step(ctx, args, up=False)
            elif sub == "delete":
                reply = await _delete(ctx, args)
            elif sub == "public":
                reply = await _public(ctx, args)
            elif sub in ("whitelist", "blacklist"):
                reply = await _access(ctx, args, list_kind=sub)
            else:
                reply = await _lookup(ctx, first)
        except RecordError as exc:
            print(f"[CMD] command=counter sub={sub} result={exc.code} user={ctx.author.id}")
            await ctx.send(exc.message)
            return

        if reply:
            await ctx.send(reply)

from __future__ import annotations

from collections import Counter as UsageCounter
from datetime import datetime

from config.defaults import INTERNAL_ERROR_MESSAGE
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.commands.commands_counter import register as register_counter
from misc.commands.commands_meta import register as register_meta
from misc.commands.commands_tag import register as register_tag
from misc.events_runtime import register_runtime_events
from misc.runtime_deps import RuntimeDeps


def wire_bot_runtime(
    bot,
    *,
    counter_service,
    tag_service,
    user_is_owner,
    send_chunked,
    bot_name: str,
    source_url: str,
    started_at: datetime,
) -> None:
    command_usage: UsageCounter = UsageCounter()

    command_deps = CommandDeps(
        send_chunked=send_chunked,
        bot_name=bot_name,
        source_url=source_url,
        counter_service=counter_service,
        tag_service=tag_service,
        started_at=started_at,
        command_usage=command_usage,
    )
    command_gates = CommandGates(
        user_is_owner=user_is_owner,
    )

    register_meta(
        bot,
        deps=command_deps,
        gates=command_gates,
    )

    if counter_service is not None:
        register_counter(
            bot,
            deps=command_deps,
            gates=command_gates,
        )

    if tag_service is not None:
        register_tag(
            bot,
            deps=command_deps,
            gates=command_gates,
        )

    register_runtime_events(
        bot,
        deps=RuntimeDeps(
            internal_error_message=INTERNAL_ERROR_MESSAGE,
            command_usage=command_usage,
        ),
    )

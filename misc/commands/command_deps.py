from __future__ import annotations

from collections import Counter as UsageCounter
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from datetime import timezone
from typing import Any
from typing import Callable


def _default_false(*args, **kwargs) -> bool:
    return False


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CommandDeps:
    # Core/shared
    send_chunked: Callable | None = None
    bot_name: str = "Tallybot"
    source_url: str = ""

    # Record services
    counter_service: Any = None
    tag_service: Any = None

    # Runtime stats
    started_at: datetime = field(default_factory=_utc_now)
    command_usage: UsageCounter = field(default_factory=UsageCounter)


@dataclass(frozen=True)
class CommandGates:
    user_is_owner: Callable[[Any], bool] = _default_false

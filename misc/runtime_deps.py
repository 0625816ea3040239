from __future__ import annotations

from collections import Counter as UsageCounter
from dataclasses import dataclass


@dataclass(frozen=True)
class RuntimeDeps:
    # core
    internal_error_message: str

    # stats
    command_usage: UsageCounter

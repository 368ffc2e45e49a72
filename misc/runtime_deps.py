from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable


@dataclass(frozen=True)
class RuntimeDeps:
    # services
    meme_service: Any
    notifier: Any

    # workflows
    observe_guild: Callable[[int], Awaitable[bool]]


@dataclass(frozen=True)
class RuntimeBootDeps:
    enabled_workflows: list[str]
    state_path: str

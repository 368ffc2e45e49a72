from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Callable


def _default_false(*args, **kwargs) -> bool:
    return False


@dataclass(frozen=True)
class CommandDeps:
    # Services
    meme_service: Any = None
    lottery_service: Any = None
    notifier: Any = None

    # Event kinds only owners may subscribe to
    restricted_event_kinds: set[str] = field(default_factory=set)


@dataclass(frozen=True)
class CommandGates:
    user_is_owner: Callable[[Any], bool] = _default_false

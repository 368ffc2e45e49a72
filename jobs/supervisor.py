from __future__ import annotations

import asyncio
from enum import Enum
from typing import Awaitable
from typing import Callable
from typing import Mapping

from config.env import parse_workflow_kinds
from guilds.store import GuildStateStore


class WorkflowKind(str, Enum):
    MEMES = "memes"
    NICKNAME_LOTTERY = "nickname_lottery"


def enabled_workflow_kinds(raw: str | None) -> list[WorkflowKind]:
    names = parse_workflow_kinds(raw, tuple(k.value for k in WorkflowKind))
    return [WorkflowKind(name) for name in names]


WorkflowRunner = Callable[[int], Awaitable[None]]


class GuildWorkflowSupervisor:
    """Spawns one task per (guild, workflow kind) the first time a guild is observed."""

    def __init__(
        self,
        *,
        store: GuildStateStore,
        runners: Mapping[WorkflowKind, WorkflowRunner],
        enabled: list[WorkflowKind],
    ) -> None:
        missing = [k.value for k in enabled if k not in runners]
        if missing:
            raise ValueError(f"no runner registered for workflow kinds: {', '.join(missing)}")
        self.store = store
        self.runners = dict(runners)
        self.enabled = list(enabled)
        self.tasks: dict[tuple[int, WorkflowKind], asyncio.Task] = {}

    async def observe_guild(self, guild_id: int) -> bool:
        """Returns True when this call started the guild's workflows."""
        gid = int(guild_id)
        async with self.store.mutate(gid) as state:
            if state.workflows_started:
                return False
            state.workflows_started = True

        for kind in self.enabled:
            task = asyncio.create_task(self.runners[kind](gid), name=f"{kind.value}:{gid}")
            self.tasks[(gid, kind)] = task
        kinds = ",".join(k.value for k in self.enabled) or "none"
        print(f"[Supervisor] started guild={gid} workflows={kinds}")
        return True

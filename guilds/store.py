from __future__ import annotations

import asyncio
import copy
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any
from typing import AsyncIterator

import yaml

from guilds.models import GuildState


class GuildStateStore:
    """Process-wide guild records, one lock per guild, persisted as a single YAML document."""

    def __init__(self, path: str | None = None) -> None:
        self.path = str(path) if path else None
        self._guilds: dict[int, GuildState] = {}
        self._locks: dict[int, asyncio.Lock] = {}
        self._subscriptions: dict[str, list[int]] = {}
        self._subscriptions_lock = asyncio.Lock()
        self._save_lock = asyncio.Lock()

    @classmethod
    def load(cls, path: str) -> GuildStateStore:
        store = cls(path)
        p = Path(path)
        if not p.exists():
            print(f"[Store] no state file at {path}; starting empty")
            return store
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
        if not isinstance(raw, dict):
            raise RuntimeError(f"State file {path} must contain a top-level mapping")
        store._apply_document(raw)
        print(f"[Store] loaded path={path} guilds={len(store._guilds)}")
        return store

    def _apply_document(self, raw: dict[str, Any]) -> None:
        guilds_raw = raw.get("guilds") if isinstance(raw.get("guilds"), dict) else {}
        for gid, entry in guilds_raw.items():
            state = GuildState.from_dict(int(gid), entry if isinstance(entry, dict) else None)
            self._guilds[state.guild_id] = state
        subs_raw = raw.get("subscriptions") if isinstance(raw.get("subscriptions"), dict) else {}
        for kind, users in subs_raw.items():
            ids = sorted({int(u) for u in (users or [])})
            if ids:
                self._subscriptions[str(kind)] = ids

    def to_document(self) -> dict[str, Any]:
        guilds = {gid: state.to_dict() for gid, state in sorted(self._guilds.items())}
        subs = {kind: list(users) for kind, users in sorted(self._subscriptions.items()) if users}
        return {"guilds": guilds, "subscriptions": subs}

    def _write_sync(self, document: dict[str, Any]) -> None:
        path = Path(self.path)
        if path.parent and not path.parent.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_text(yaml.safe_dump(document, sort_keys=False, allow_unicode=True), encoding="utf-8")
        os.replace(tmp, path)

    async def save(self) -> None:
        if not self.path:
            return
        async with self._save_lock:
            # Snapshot on the loop thread; the write happens off it.
            document = copy.deepcopy(self.to_document())
            await asyncio.to_thread(self._write_sync, document)

    def _lock_for(self, guild_id: int) -> asyncio.Lock:
        gid = int(guild_id)
        lock = self._locks.get(gid)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[gid] = lock
        return lock

    def guild_ids(self) -> list[int]:
        return sorted(self._guilds)

    def read(self, guild_id: int) -> GuildState:
        """Consistent snapshot; taken without awaiting so no writer can interleave."""
        gid = int(guild_id)
        state = self._guilds.get(gid)
        if state is None:
            return GuildState(guild_id=gid)
        return copy.deepcopy(state)

    @asynccontextmanager
    async def mutate(self, guild_id: int) -> AsyncIterator[GuildState]:
        """Yield a working copy of the guild; it replaces the stored state and is saved only if the block completes."""
        gid = int(guild_id)
        async with self._lock_for(gid):
            current = self._guilds.get(gid)
            state = copy.deepcopy(current) if current is not None else GuildState(guild_id=gid)
            yield state
            self._guilds[gid] = state
            await self.save()

    def subscribers(self, kind: str) -> list[int]:
        return list(self._subscriptions.get(str(kind), []))

    def subscriptions_for(self, user_id: int) -> list[str]:
        uid = int(user_id)
        return sorted(kind for kind, users in self._subscriptions.items() if uid in users)

    async def set_subscription(self, kind: str, user_id: int, subscribed: bool) -> bool:
        """Returns True when the subscription actually changed."""
        uid = int(user_id)
        async with self._subscriptions_lock:
            users = self._subscriptions.setdefault(str(kind), [])
            if subscribed == (uid in users):
                return False
            if subscribed:
                users.append(uid)
                users.sort()
            else:
                users.remove(uid)
            await self.save()
        return True

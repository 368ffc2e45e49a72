from __future__ import annotations

import asyncio
from enum import Enum

from guilds.store import GuildStateStore


class EventKind(str, Enum):
    STARTUP = "startup"
    ERROR = "error"
    NICKNAME_LOTTERY = "nickname_lottery"

    @classmethod
    def parse(cls, raw: str) -> EventKind:
        clean = (raw or "").strip().lower()
        for kind in cls:
            if kind.value == clean:
                return kind
        valid = ", ".join(k.value for k in cls)
        raise ValueError(f"unknown event kind {raw!r} (expected one of: {valid})")


class NotificationSink:
    """Fire-and-forget delivery of operator events to subscribed users by DM."""

    def __init__(self, *, store: GuildStateStore, gateway) -> None:
        self.store = store
        self.gateway = gateway
        self._pending: set[asyncio.Task] = set()

    def notify(self, kind: EventKind, text: str) -> asyncio.Task | None:
        subscribers = self.store.subscribers(kind.value)
        print(f"[Notify] kind={kind.value} subscribers={len(subscribers)} text={text[:120]!r}")
        if not subscribers:
            return None
        task = asyncio.create_task(self._deliver(kind, text, subscribers))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _deliver(self, kind: EventKind, text: str, subscribers: list[int]) -> None:
        body = f"**[{kind.value}]** {text}"
        for user_id in subscribers:
            try:
                await self.gateway.send_direct_message(user_id, body)
            except Exception as e:
                print(f"[Notify] delivery failed kind={kind.value} user={user_id}: {e}")

    async def subscribe(self, kind: EventKind, user_id: int) -> tuple[bool, str]:
        changed = await self.store.set_subscription(kind.value, user_id, True)
        if not changed:
            return False, f"Already subscribed to `{kind.value}` events."
        return True, f"Subscribed to `{kind.value}` events."

    async def unsubscribe(self, kind: EventKind, user_id: int) -> tuple[bool, str]:
        changed = await self.store.set_subscription(kind.value, user_id, False)
        if not changed:
            return False, f"Not subscribed to `{kind.value}` events."
        return True, f"Unsubscribed from `{kind.value}` events."

    def list_text(self, user_id: int) -> str:
        kinds = self.store.subscriptions_for(user_id)
        available = ", ".join(f"`{k.value}`" for k in EventKind)
        if not kinds:
            return f"You're not subscribed to any events. Available: {available}"
        return "Subscribed to: " + ", ".join(f"`{k}`" for k in kinds) + f"\nAvailable: {available}"

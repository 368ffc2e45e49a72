from __future__ import annotations

from datetime import datetime
from datetime import timezone
from typing import Callable

from guilds.models import NicknameEntry
from guilds.store import GuildStateStore
from misc.discord_timestamps import format_discord_timestamp
from misc.discord_timestamps import format_duration


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def describe_entry(heading: str, user_id: int, entry: NicknameEntry) -> str:
    author = f"<@{entry.author_id}>" if entry.author_id else "`user not known`"
    when = format_discord_timestamp(entry.created_at, "F") if entry.created_at else "`time not known`"
    context = entry.context or "No context provided."
    return (
        f"**{heading} '{entry.text}' for <@{user_id}>**\n"
        f"Originally added by {author} ({when})\n"
        f"**Context:**\n{context}"
    )


class NicknameLotteryService:
    def __init__(self, *, store: GuildStateStore, clock: Callable[[], datetime] = _utcnow) -> None:
        self.store = store
        self.clock = clock

    async def add(
        self,
        guild_id: int,
        user_id: int,
        nickname: str,
        *,
        author_id: int | None,
        context: str | None = None,
    ) -> tuple[bool, str]:
        entry = NicknameEntry(
            text=nickname,
            author_id=author_id,
            created_at=self.clock(),
            context=(context or "").strip() or None,
        )
        async with self.store.mutate(guild_id) as state:
            try:
                position = state.lottery().add_nickname(user_id, entry)
            except ValueError as e:
                return False, f"Couldn't add nickname: {e}."
        print(f"[Lottery] guild={guild_id} added nickname user={user_id} position={position}")
        return True, f"Added nickname `{entry.text}` for <@{user_id}> (#{position})."

    async def remove(self, guild_id: int, user_id: int, position: int) -> tuple[bool, str]:
        async with self.store.mutate(guild_id) as state:
            try:
                removed = state.lottery().remove_nickname(user_id, int(position))
            except IndexError as e:
                return False, f"Couldn't remove nickname: {e}."
        print(f"[Lottery] guild={guild_id} removed nickname user={user_id} position={position}")
        return True, describe_entry("Removed nickname", user_id, removed)

    async def set_context(self, guild_id: int, user_id: int, position: int, context: str) -> tuple[bool, str]:
        async with self.store.mutate(guild_id) as state:
            try:
                entry = state.lottery().set_context(user_id, int(position), context)
            except IndexError as e:
                return False, f"Couldn't set context: {e}."
        return True, f"Updated context for `{entry.text}` (<@{user_id}> #{position})."

    def info(self, guild_id: int, user_id: int, position: int) -> tuple[bool, str]:
        lottery = self.store.read(guild_id).lottery()
        try:
            entry = lottery.entry(user_id, int(position))
        except IndexError as e:
            return False, f"Couldn't find nickname: {e}."
        return True, describe_entry("Nickname", user_id, entry)

    def list_text(self, guild_id: int, user_id: int) -> str:
        entries = self.store.read(guild_id).lottery().entries_for(user_id)
        if not entries:
            return f"<@{user_id}> has no nicknames in the lottery."
        lines = [f"**Nicknames for <@{user_id}>**"]
        lines.extend(f"{pos}. {entry.text}" for pos, entry in enumerate(entries, start=1))
        return "\n".join(lines)

    async def set_interval(self, guild_id: int, min_seconds: int, max_seconds: int) -> tuple[bool, str]:
        async with self.store.mutate(guild_id) as state:
            try:
                lo, hi = state.lottery().set_refresh_interval(min_seconds, max_seconds)
            except ValueError as e:
                return False, f"Couldn't set interval: {e}."
        print(f"[Lottery] guild={guild_id} interval set min={lo} max={hi}")
        return True, (
            f"Nicknames will now change every {format_duration(lo)} to {format_duration(hi)}. "
            "This applies from the next draw."
        )

    async def reset_interval(self, guild_id: int) -> tuple[bool, str]:
        async with self.store.mutate(guild_id) as state:
            lottery = state.lottery()
            lottery.clear_refresh_interval()
            lo, hi = lottery.refresh_interval()
        return True, f"Interval reset to the default of {format_duration(lo)} to {format_duration(hi)}."

    async def set_announcements(self, guild_id: int, channel_id: int, title: str | None = None) -> tuple[bool, str]:
        async with self.store.mutate(guild_id) as state:
            lottery = state.lottery()
            lottery.set_announcements(channel_id, title)
            current_title = lottery.title()
        return True, f"Nickname lottery announcements go to <#{channel_id}> titled **{current_title}**."

    async def stop_announcements(self, guild_id: int) -> tuple[bool, str]:
        async with self.store.mutate(guild_id) as state:
            lottery = state.lottery()
            if lottery.announcement_channel_id is None:
                return False, "Nickname lottery announcements are not configured."
            lottery.clear_announcements()
        return True, "Nickname lottery announcements stopped."

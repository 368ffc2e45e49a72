from __future__ import annotations

import random
from datetime import datetime
from datetime import timezone
from typing import Callable

from guilds.models import MEME_CYCLE_LENGTH
from guilds.models import MemeCycleRecord
from guilds.store import GuildStateStore
from memes.cycle import REACTION_CHANCE
from memes.cycle import REACTION_EMOJI
from misc.discord_timestamps import format_discord_timestamp


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def start_text(deadline: datetime) -> str:
    return (
        "**Post your best memes!**\n"
        "Vote by reacting to your favourite memes.\n"
        f"The post with the most total reactions by {format_discord_timestamp(deadline, 'F')} wins!"
    )


STOP_TEXT = "**Halt your memes!**\nI won't see them anymore. :("


class MemeContestService:
    def __init__(
        self,
        *,
        store: GuildStateStore,
        gateway,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.rng = rng or random.Random()
        self.clock = clock

    async def set_channel(self, guild_id: int, channel_id: int) -> tuple[bool, str]:
        started = self.clock()
        try:
            anchor_id = await self.gateway.send_embed(channel_id, start_text(started + MEME_CYCLE_LENGTH))
        except Exception as e:
            print(f"[Memes] guild={guild_id} set_channel post failed channel={channel_id}: {e!r}")
            return False, f"I couldn't post in <#{channel_id}>. Check my permissions there."

        async with self.store.mutate(guild_id) as state:
            previous = state.memes
            state.memes = MemeCycleRecord(
                channel_id=int(channel_id),
                cycle_start=started,
                anchor_message_id=int(anchor_id),
                victories=dict(previous.victories) if previous else {},
            )
        moved = previous is not None and previous.channel_id != int(channel_id)
        print(f"[Memes] guild={guild_id} channel set channel={channel_id} moved={moved}")
        return True, f"Memes channel set to <#{channel_id}>."

    async def unset_channel(self, guild_id: int) -> tuple[bool, str]:
        async with self.store.mutate(guild_id) as state:
            previous = state.memes
            state.memes = None
        if previous is None:
            return False, "No memes channel is set."
        print(f"[Memes] guild={guild_id} channel unset channel={previous.channel_id}")
        try:
            await self.gateway.send_embed(previous.channel_id, STOP_TEXT)
        except Exception as e:
            print(f"[Memes] guild={guild_id} unset notice failed: {e!r}")
        return True, f"Memes channel <#{previous.channel_id}> unset."

    def leaderboard_text(self, guild_id: int, limit: int = 10) -> str:
        record = self.store.read(guild_id).memes
        if record is None:
            return "No memes channel is set."
        ranked = record.leaderboard(limit)
        if not ranked:
            return "No victories recorded yet."
        lines = ["**Meme leaderboard**"]
        for pos, (user_id, wins) in enumerate(ranked, start=1):
            noun = "win" if wins == 1 else "wins"
            lines.append(f"{pos}. <@{user_id}>: {wins} {noun}")
        return "\n".join(lines)

    def status_text(self, guild_id: int) -> str:
        record = self.store.read(guild_id).memes
        if record is None:
            return "No memes channel is set."
        return "\n".join(
            [
                f"**Memes channel:** <#{record.channel_id}>",
                f"**Voting closes:** {format_discord_timestamp(record.next_reset(), 'F')} "
                f"({format_discord_timestamp(record.next_reset(), 'R')})",
                f"**Entries so far:** {len(record.tracked_message_ids)}",
            ]
        )

    async def handle_message(
        self,
        *,
        guild_id: int,
        channel_id: int,
        message_id: int,
        author_is_bot: bool,
        ephemeral: bool = False,
    ) -> bool:
        """Track a new message in the contest channel; True when it became an entry."""
        if author_is_bot or ephemeral:
            return False
        snapshot = self.store.read(guild_id).memes
        if snapshot is None or snapshot.channel_id != int(channel_id):
            return False

        claimed = False
        async with self.store.mutate(guild_id) as state:
            record = state.memes
            if record is None or record.channel_id != int(channel_id):
                return False
            if not record.track(message_id):
                return False
            if not record.self_reacted and self.rng.random() < REACTION_CHANCE:
                record.self_reacted = True
                record.reaction_claim_id = int(message_id)
                claimed = True

        if claimed:
            try:
                await self.gateway.add_reaction(channel_id, message_id, REACTION_EMOJI)
                print(f"[Memes] guild={guild_id} reacted message={message_id}")
            except Exception as e:
                print(f"[Memes] guild={guild_id} reaction failed message={message_id}: {e!r}")
                async with self.store.mutate(guild_id) as state:
                    record = state.memes
                    if record is not None and record.reaction_claim_id == int(message_id):
                        record.self_reacted = False
                        record.reaction_claim_id = None
        return True

from __future__ import annotations

import asyncio
import random
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from typing import Callable

from gateway.discord_gateway import FetchedMessage
from guilds.models import MEME_CYCLE_LENGTH
from guilds.store import GuildStateStore
from jobs.workflows import Sleep
from jobs.workflows import retry_until_success
from jobs.workflows import run_forever
from misc.discord_timestamps import format_discord_timestamp

REACTION_EMOJI = "🤖"
REACTION_CHANCE = 0.1
REMINDER_LEAD = timedelta(days=2)
PAGE_SIZE = 100
REMINDER_IMAGE_URL = "https://media.tenor.com/ve60xH3hKrcAAAAC/no.gif"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def select_victor(candidates: list[FetchedMessage], totals: list[int]) -> tuple[int | None, int]:
    """Index of the first message with the strictly highest total, and that total."""
    if not candidates:
        return None, 0
    best_index = 0
    best_total = totals[0]
    for idx, total in enumerate(totals[1:], start=1):
        if total > best_total:
            best_index = idx
            best_total = total
    return best_index, best_total


def reminder_text(next_reset: datetime) -> str:
    return (
        "**No memes?**\n"
        "Two days left! Perhaps time to post some?\n\n"
        f"Voting closes {format_discord_timestamp(next_reset, 'R')}."
    )


def outcome_text(victor: FetchedMessage | None, votes: int, entries: int, deadline: datetime) -> str:
    until = format_discord_timestamp(deadline, "F")
    if entries == 0:
        return (
            "**No entries**\n"
            "Nobody posted a meme this week, so there's nothing to vote on.\n\n"
            "I've reset the entries, so post your best memes!\n\n"
            f"You've got until {until}."
        )
    if victor is None or votes <= 0:
        return (
            "**No votes**\n"
            "There weren't any votes (reactions), so there's no winner. Sadge.\n\n"
            "I've reset the entries, so can you, like, _do something_ this week?\n\n"
            f"You've got until {until}."
        )
    return (
        "**Voting results**\n"
        f"Congratulations <@{victor.author_id}> for winning this week's meme contest, "
        f"with their entry [here]({victor.jump_url})!\n\n"
        f"It won with a resounding {votes} votes.\n\n"
        "I've reset the entries, so post your best memes and perhaps next week you'll win? 😉\n\n"
        f"You've got until {until}."
    )


class MemeVotingCycle:
    """Weekly contest loop for one guild: catch up, remind, reset, repeat."""

    def __init__(
        self,
        *,
        guild_id: int,
        store: GuildStateStore,
        gateway,
        notifier,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Sleep = asyncio.sleep,
        retry_delay_seconds: float = 300,
        idle_recheck_seconds: float = 3600,
    ) -> None:
        self.guild_id = int(guild_id)
        self.store = store
        self.gateway = gateway
        self.notifier = notifier
        self.rng = rng or random.Random()
        self.clock = clock
        self.sleep = sleep
        self.retry_delay_seconds = retry_delay_seconds
        self.idle_recheck_seconds = idle_recheck_seconds
        self._caught_up = False

    def _log(self, text: str) -> None:
        print(f"[Memes] guild={self.guild_id} {text}")

    async def run(self) -> None:
        self._log("workflow started")
        await run_forever(
            self._tick,
            tag=f"Memes guild={self.guild_id}",
            notifier=self.notifier,
            retry_delay_seconds=self.retry_delay_seconds,
            sleep=self.sleep,
        )

    async def _tick(self) -> None:
        if not self._caught_up:
            await self.catch_up()
            self._caught_up = True
            return
        await self.step()

    async def catch_up(self) -> int:
        """Page forward from the resume marker, tracking every non-bot message. Safe to re-run."""
        record = self.store.read(self.guild_id).memes
        if record is None:
            self._log("catch-up skipped: no channel configured")
            return 0
        channel_id = record.channel_id
        cursor = record.resume_marker()
        appended = 0
        while True:
            page = await self.gateway.messages_after(channel_id, cursor, limit=PAGE_SIZE)
            if not page:
                break
            ids = [m.id for m in page if not m.author_is_bot]
            async with self.store.mutate(self.guild_id) as state:
                current = state.memes
                if current is None or current.channel_id != channel_id:
                    self._log("catch-up aborted: channel changed")
                    return appended
                for mid in ids:
                    if current.track(mid):
                        appended += 1
            cursor = page[-1].id
        self._log(f"catch-up done appended={appended}")
        return appended

    async def step(self) -> None:
        record = self.store.read(self.guild_id).memes
        if record is None:
            self._log(f"no channel configured; rechecking in {self.idle_recheck_seconds}s")
            await self.sleep(self.idle_recheck_seconds)
            return

        next_reset = record.next_reset()
        now = self.clock()
        ping_at = next_reset - REMINDER_LEAD
        if now < ping_at:
            wait = (ping_at - now).total_seconds()
            self._log(f"sleeping {int(wait)}s until reminder next_reset={next_reset.isoformat()}")
            await self.sleep(wait)
            await self._remind_if_quiet()

        remaining = (next_reset - self.clock()).total_seconds()
        if remaining > 0:
            self._log(f"sleeping {int(remaining)}s until reset")
            await self.sleep(remaining)
            return

        await self.reset(record.channel_id)

    async def _remind_if_quiet(self) -> bool:
        record = self.store.read(self.guild_id).memes
        if record is None:
            self._log("reminder skipped: channel unset")
            return False
        if record.tracked_message_ids:
            return False
        try:
            await self.gateway.send_embed(
                record.channel_id,
                reminder_text(record.next_reset()),
                image_url=REMINDER_IMAGE_URL,
            )
        except Exception as e:
            self._log(f"reminder failed: {e!r}")
            return False
        self._log("reminder sent")
        return True

    async def reset(self, channel_id: int) -> None:
        async with self.store.mutate(self.guild_id) as state:
            record = state.memes
            if record is None or record.channel_id != channel_id:
                self._log("reset skipped: channel changed")
                return
            claim_id = record.reaction_claim_id
            drained, reacted = record.drain()
        self._log(f"reset entries={len(drained)} self_reacted={reacted}")

        own_id = self.gateway.bot_user_id()
        candidates: list[FetchedMessage] = []
        for mid in drained:
            try:
                msg = await self.gateway.fetch_message(channel_id, mid)
            except Exception as e:
                self._log(f"discarding message={mid}: {e!r}")
                continue
            if msg is None:
                self._log(f"discarding message={mid}: not found")
                continue
            if own_id is not None and msg.author_id == own_id:
                continue
            candidates.append(msg)

        if reacted and claim_id is not None and not any(m.id == claim_id and m.bot_reacted for m in candidates):
            self._log(f"claimed reaction on message={claim_id} never landed")
            reacted = False

        totals = [m.reaction_total for m in candidates]
        if not reacted and candidates:
            pick = self.rng.randrange(len(candidates))
            try:
                await self.gateway.add_reaction(channel_id, candidates[pick].id, REACTION_EMOJI)
                totals[pick] += 1
                self._log(f"forced reaction on message={candidates[pick].id}")
            except Exception as e:
                self._log(f"forced reaction failed message={candidates[pick].id}: {e!r}")

        index, votes = select_victor(candidates, totals)
        victor = candidates[index] if index is not None and votes > 0 else None

        started = self.clock()
        text = outcome_text(victor, votes, len(candidates), started + MEME_CYCLE_LENGTH)
        def still_current() -> bool:
            current = self.store.read(self.guild_id).memes
            return current is not None and current.channel_id == channel_id

        anchor_id = await retry_until_success(
            lambda: self.gateway.send_embed(channel_id, text),
            tag=f"Memes guild={self.guild_id}",
            what="posting results",
            retry_delay_seconds=self.retry_delay_seconds,
            notifier=self.notifier,
            still_wanted=still_current,
            sleep=self.sleep,
        )
        if anchor_id is None:
            self._log("results abandoned: channel changed")
            return

        async with self.store.mutate(self.guild_id) as state:
            record = state.memes
            if record is None or record.channel_id != channel_id:
                self._log("results posted but channel changed; not starting a new cycle")
                return
            record.anchor_message_id = int(anchor_id)
            record.cycle_start = started
            wins = record.record_victory(victor.author_id) if victor is not None else 0

        if victor is not None:
            self._log(f"winner user={victor.author_id} votes={votes} wins={wins}")
        else:
            self._log(f"no winner entries={len(candidates)}")

from __future__ import annotations

import asyncio
import random
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from typing import Callable

from gateway.discord_gateway import MemberInfo
from guilds.models import NicknameLotteryRecord
from guilds.store import GuildStateStore
from jobs.workflows import Sleep
from jobs.workflows import run_forever
from notifications.service import EventKind

# April Fool's: the interval collapses to its minimum and every change is announced.
OVERRIDE_MONTH = 4
OVERRIDE_DAY = 1
STREAMING_PREFIX = "🔴 "


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_override_date(now: datetime) -> bool:
    return now.month == OVERRIDE_MONTH and now.day == OVERRIDE_DAY


def next_override_start(now: datetime) -> datetime:
    """Midnight at the start of the next override date, in `now`'s timezone."""
    start = now.replace(
        month=OVERRIDE_MONTH, day=OVERRIDE_DAY, hour=0, minute=0, second=0, microsecond=0
    )
    if start <= now:
        start = start.replace(year=now.year + 1)
    return start


def compute_wait(now: datetime, interval: tuple[int, int], rng: random.Random) -> float:
    lo, hi = int(interval[0]), int(interval[1])
    sample = rng.randint(lo, hi)
    if is_override_date(now):
        return float(lo)
    start = next_override_start(now)
    if now + timedelta(seconds=sample) >= start:
        return (start - now).total_seconds()
    return float(sample)


def apply_streaming_prefix(current_name: str, nickname: str) -> str:
    if current_name.startswith(STREAMING_PREFIX):
        return STREAMING_PREFIX + nickname
    return nickname


def announcement_text(title: str, mention: str, nickname: str) -> str:
    return f"**{title}**\n{mention} won/lost the lottery! From now on, they are to be named: `{nickname}`"


class NicknameLotteryDraw:
    """Periodic nickname reassignment for one guild."""

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
        debug_once: bool = False,
    ) -> None:
        self.guild_id = int(guild_id)
        self.store = store
        self.gateway = gateway
        self.notifier = notifier
        self.rng = rng or random.Random()
        self.clock = clock
        self.sleep = sleep
        self.retry_delay_seconds = retry_delay_seconds
        self.debug_once = bool(debug_once)

    def _log(self, text: str) -> None:
        print(f"[Lottery] guild={self.guild_id} {text}")

    async def run(self) -> None:
        self._log(f"workflow started debug_once={self.debug_once}")
        await run_forever(
            self._tick,
            tag=f"Lottery guild={self.guild_id}",
            notifier=self.notifier,
            retry_delay_seconds=self.retry_delay_seconds,
            sleep=self.sleep,
        )

    async def _tick(self) -> bool:
        if self.debug_once:
            self._log("running one draw immediately")
            await self.draw()
            return True
        lottery = self.store.read(self.guild_id).nickname_lottery or NicknameLotteryRecord()
        wait = compute_wait(self.clock(), lottery.refresh_interval(), self.rng)
        self._log(f"next draw in {int(wait) // 60} minutes")
        await self.sleep(wait)
        await self.draw()
        return False

    async def draw(self) -> str:
        lottery = self.store.read(self.guild_id).nickname_lottery
        if lottery is None:
            self._log("skip: no nicknames registered")
            return "no_users"
        user_id = lottery.pick_user(self.rng)
        if user_id is None:
            self._log("skip: no nicknames registered")
            return "no_users"
        member = await self.gateway.fetch_member(self.guild_id, user_id)
        if member is None:
            self._log(f"skip: user={user_id} is no longer a member")
            return "member_missing"
        entry = lottery.pick_entry(user_id, self.rng)
        if entry is None:
            return "no_users"

        new_name = apply_streaming_prefix(member.display_name, entry.text)
        if new_name == member.display_name:
            self._log(f"skip: user={user_id} drew their current name {new_name!r}")
            return "unchanged"

        self._log(f"renaming user={user_id} from={member.display_name!r} to={new_name!r}")
        failed = False
        try:
            await self.gateway.edit_nickname(self.guild_id, user_id, new_name)
        except Exception as e:
            failed = True
            self._log(f"rename failed user={user_id}: {e!r}")

        if failed or is_override_date(self.clock()):
            await self._announce(lottery, member, new_name)
        return "failed" if failed else "changed"

    async def _announce(self, lottery: NicknameLotteryRecord, member: MemberInfo, new_name: str) -> None:
        text = announcement_text(lottery.title(), member.mention, new_name)
        channel_id = lottery.announcement_channel_id
        if channel_id is None:
            self.notifier.notify(EventKind.NICKNAME_LOTTERY, f"[Guild: {self.guild_id}] {text}")
            return
        try:
            await self.gateway.send_embed(channel_id, text)
        except Exception as e:
            self._log(f"announcement failed channel={channel_id}: {e!r}")
            self.notifier.notify(
                EventKind.ERROR,
                f"[Guild: {self.guild_id}] Invalid nickname lottery announcement channel <#{channel_id}>: {e!r}",
            )

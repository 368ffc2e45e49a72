from __future__ import annotations

import random
from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from typing import Any

from config.defaults import DEFAULT_REFRESH_INTERVAL
from config.defaults import MIN_REFRESH_INTERVAL_SECONDS

MEME_CYCLE_LENGTH = timedelta(days=7)
NICKNAME_MAX_CHARS = 30
DEFAULT_ANNOUNCEMENT_TITLE = "Bot demands new nickname"


def utc_iso(dt: datetime | None = None) -> str:
    dt = dt or datetime.now(timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def parse_utc(raw: Any) -> datetime | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        dt = raw
    else:
        dt = datetime.fromisoformat(str(raw))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _opt_int(raw: Any) -> int | None:
    if raw is None or raw == "":
        return None
    return int(raw)


@dataclass(slots=True)
class MemeCycleRecord:
    channel_id: int
    cycle_start: datetime
    anchor_message_id: int | None = None
    tracked_message_ids: list[int] = field(default_factory=list)
    self_reacted: bool = False
    reaction_claim_id: int | None = None
    victories: dict[int, int] = field(default_factory=dict)

    def next_reset(self) -> datetime:
        return self.cycle_start + MEME_CYCLE_LENGTH

    def resume_marker(self) -> int | datetime:
        """Where forward pagination picks up: last tracked id, else the anchor, else the cycle start."""
        if self.tracked_message_ids:
            return self.tracked_message_ids[-1]
        if self.anchor_message_id is not None:
            return self.anchor_message_id
        return self.cycle_start

    def track(self, message_id: int) -> bool:
        mid = int(message_id)
        if mid in self.tracked_message_ids:
            return False
        self.tracked_message_ids.append(mid)
        return True

    def drain(self) -> tuple[list[int], bool]:
        drained, self.tracked_message_ids = self.tracked_message_ids, []
        reacted, self.self_reacted = self.self_reacted, False
        self.reaction_claim_id = None
        return drained, reacted

    def record_victory(self, user_id: int) -> int:
        uid = int(user_id)
        self.victories[uid] = self.victories.get(uid, 0) + 1
        return self.victories[uid]

    def leaderboard(self, limit: int = 10) -> list[tuple[int, int]]:
        ranked = sorted(self.victories.items(), key=lambda kv: (-kv[1], kv[0]))
        return ranked[: max(0, int(limit))]

    def to_dict(self) -> dict[str, Any]:
        return {
            "channel_id": int(self.channel_id),
            "cycle_start": utc_iso(self.cycle_start),
            "anchor_message_id": self.anchor_message_id,
            "tracked_message_ids": [int(m) for m in self.tracked_message_ids],
            "self_reacted": bool(self.self_reacted),
            "reaction_claim_id": self.reaction_claim_id,
            "victories": {str(uid): int(n) for uid, n in self.victories.items()},
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> MemeCycleRecord:
        return cls(
            channel_id=int(raw["channel_id"]),
            cycle_start=parse_utc(raw.get("cycle_start")) or datetime.now(timezone.utc),
            anchor_message_id=_opt_int(raw.get("anchor_message_id")),
            tracked_message_ids=[int(m) for m in (raw.get("tracked_message_ids") or [])],
            self_reacted=bool(raw.get("self_reacted", False)),
            reaction_claim_id=_opt_int(raw.get("reaction_claim_id")),
            victories={int(uid): int(n) for uid, n in (raw.get("victories") or {}).items()},
        )


@dataclass(slots=True)
class NicknameEntry:
    text: str
    author_id: int | None = None
    created_at: datetime | None = None
    context: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "author_id": self.author_id,
            "created_at": utc_iso(self.created_at) if self.created_at else None,
            "context": self.context,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> NicknameEntry:
        return cls(
            text=str(raw.get("text") or ""),
            author_id=_opt_int(raw.get("author_id")),
            created_at=parse_utc(raw.get("created_at")),
            context=raw.get("context") or None,
        )


@dataclass(slots=True)
class NicknameLotteryRecord:
    nicknames_by_user: dict[int, list[NicknameEntry]] = field(default_factory=dict)
    refresh_interval_override: tuple[int, int] | None = None
    announcement_channel_id: int | None = None
    announcement_title_override: str | None = None

    def users(self) -> list[int]:
        return sorted(uid for uid, entries in self.nicknames_by_user.items() if entries)

    def entries_for(self, user_id: int) -> list[NicknameEntry]:
        return list(self.nicknames_by_user.get(int(user_id), []))

    def has_nickname(self, user_id: int, text: str) -> bool:
        return any(e.text == text for e in self.nicknames_by_user.get(int(user_id), []))

    def add_nickname(self, user_id: int, entry: NicknameEntry) -> int:
        text = (entry.text or "").strip()
        if not text:
            raise ValueError("nickname cannot be empty")
        if len(text) > NICKNAME_MAX_CHARS:
            raise ValueError(f"nickname must be at most {NICKNAME_MAX_CHARS} characters")
        if self.has_nickname(user_id, text):
            raise ValueError(f"nickname {text!r} already exists for this user")
        entry.text = text
        entries = self.nicknames_by_user.setdefault(int(user_id), [])
        entries.append(entry)
        return len(entries)

    def entry(self, user_id: int, position: int) -> NicknameEntry:
        entries = self.nicknames_by_user.get(int(user_id), [])
        if position < 1 or position > len(entries):
            raise IndexError(f"nickname #{position} does not exist")
        return entries[position - 1]

    def remove_nickname(self, user_id: int, position: int) -> NicknameEntry:
        removed = self.entry(user_id, position)
        entries = self.nicknames_by_user[int(user_id)]
        del entries[position - 1]
        if not entries:
            del self.nicknames_by_user[int(user_id)]
        return removed

    def set_context(self, user_id: int, position: int, context: str) -> NicknameEntry:
        target = self.entry(user_id, position)
        target.context = (context or "").strip() or None
        return target

    def pick_user(self, rng: random.Random) -> int | None:
        candidates = self.users()
        if not candidates:
            return None
        return rng.choice(candidates)

    def pick_entry(self, user_id: int, rng: random.Random) -> NicknameEntry | None:
        entries = self.nicknames_by_user.get(int(user_id), [])
        if not entries:
            return None
        return rng.choice(entries)

    def refresh_interval(self) -> tuple[int, int]:
        if self.refresh_interval_override is not None:
            return self.refresh_interval_override
        return DEFAULT_REFRESH_INTERVAL

    def set_refresh_interval(self, min_seconds: int, max_seconds: int) -> tuple[int, int]:
        lo, hi = int(min_seconds), int(max_seconds)
        if lo < MIN_REFRESH_INTERVAL_SECONDS:
            raise ValueError(f"minimum must be at least {MIN_REFRESH_INTERVAL_SECONDS} seconds")
        if lo > hi:
            raise ValueError("minimum must not exceed maximum")
        self.refresh_interval_override = (lo, hi)
        return self.refresh_interval_override

    def clear_refresh_interval(self) -> None:
        self.refresh_interval_override = None

    def set_announcements(self, channel_id: int | None, title: str | None) -> None:
        if channel_id is not None:
            self.announcement_channel_id = int(channel_id)
        if title is not None:
            self.announcement_title_override = title.strip() or None

    def clear_announcements(self) -> None:
        self.announcement_channel_id = None
        self.announcement_title_override = None

    def title(self) -> str:
        return self.announcement_title_override or DEFAULT_ANNOUNCEMENT_TITLE

    def to_dict(self) -> dict[str, Any]:
        interval = self.refresh_interval_override
        return {
            "nicknames_by_user": {
                str(uid): [e.to_dict() for e in entries] for uid, entries in self.nicknames_by_user.items()
            },
            "refresh_interval_override": [int(interval[0]), int(interval[1])] if interval else None,
            "announcement_channel_id": self.announcement_channel_id,
            "announcement_title_override": self.announcement_title_override,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> NicknameLotteryRecord:
        interval_raw = raw.get("refresh_interval_override")
        interval = None
        if isinstance(interval_raw, (list, tuple)) and len(interval_raw) == 2:
            lo, hi = int(interval_raw[0]), int(interval_raw[1])
            if lo <= hi:
                interval = (lo, hi)
            else:
                print(f"[Store] dropping invalid refresh interval override {interval_raw!r}")
        return cls(
            nicknames_by_user={
                int(uid): [NicknameEntry.from_dict(e) for e in (entries or [])]
                for uid, entries in (raw.get("nicknames_by_user") or {}).items()
                if entries
            },
            refresh_interval_override=interval,
            announcement_channel_id=_opt_int(raw.get("announcement_channel_id")),
            announcement_title_override=raw.get("announcement_title_override") or None,
        )


@dataclass(slots=True)
class GuildState:
    guild_id: int
    memes: MemeCycleRecord | None = None
    nickname_lottery: NicknameLotteryRecord | None = None
    # Process-scoped; never written to the state document.
    workflows_started: bool = False

    def lottery(self) -> NicknameLotteryRecord:
        if self.nickname_lottery is None:
            self.nickname_lottery = NicknameLotteryRecord()
        return self.nickname_lottery

    def to_dict(self) -> dict[str, Any]:
        return {
            "memes": self.memes.to_dict() if self.memes else None,
            "nickname_lottery": self.nickname_lottery.to_dict() if self.nickname_lottery else None,
        }

    @classmethod
    def from_dict(cls, guild_id: int, raw: dict[str, Any] | None) -> GuildState:
        raw = raw or {}
        memes_raw = raw.get("memes")
        lottery_raw = raw.get("nickname_lottery")
        return cls(
            guild_id=int(guild_id),
            memes=MemeCycleRecord.from_dict(memes_raw) if isinstance(memes_raw, dict) else None,
            nickname_lottery=NicknameLotteryRecord.from_dict(lottery_raw) if isinstance(lottery_raw, dict) else None,
        )

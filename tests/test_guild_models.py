from __future__ import annotations

import random
import unittest
from datetime import datetime
from datetime import timedelta
from datetime import timezone

from guilds.models import GuildState
from guilds.models import MemeCycleRecord
from guilds.models import NicknameEntry
from guilds.models import NicknameLotteryRecord

START = datetime(2026, 3, 2, 18, 30, tzinfo=timezone.utc)


class MemeCycleRecordTests(unittest.TestCase):
    def test_next_reset_is_derived_from_cycle_start(self):
        record = MemeCycleRecord(channel_id=5, cycle_start=START)
        self.assertEqual(record.next_reset(), START + timedelta(days=7))
        record.cycle_start = START + timedelta(days=3)
        self.assertEqual(record.next_reset(), START + timedelta(days=10))

    def test_track_ignores_duplicates(self):
        record = MemeCycleRecord(channel_id=5, cycle_start=START)
        self.assertTrue(record.track(10))
        self.assertFalse(record.track(10))
        self.assertTrue(record.track(11))
        self.assertEqual(record.tracked_message_ids, [10, 11])

    def test_resume_marker_prefers_last_tracked_then_anchor_then_start(self):
        record = MemeCycleRecord(channel_id=5, cycle_start=START)
        self.assertEqual(record.resume_marker(), START)
        record.anchor_message_id = 7
        self.assertEqual(record.resume_marker(), 7)
        record.track(9)
        record.track(12)
        self.assertEqual(record.resume_marker(), 12)

    def test_drain_swaps_list_and_clears_flag(self):
        record = MemeCycleRecord(
            channel_id=5, cycle_start=START, tracked_message_ids=[1, 2], self_reacted=True, reaction_claim_id=2
        )
        drained, reacted = record.drain()
        self.assertEqual(drained, [1, 2])
        self.assertTrue(reacted)
        self.assertEqual(record.tracked_message_ids, [])
        self.assertFalse(record.self_reacted)
        self.assertIsNone(record.reaction_claim_id)
        record.track(3)
        self.assertEqual(drained, [1, 2])

    def test_victories_only_increase_and_rank(self):
        record = MemeCycleRecord(channel_id=5, cycle_start=START)
        record.record_victory(3)
        record.record_victory(4)
        self.assertEqual(record.record_victory(4), 2)
        self.assertEqual(record.leaderboard(), [(4, 2), (3, 1)])
        self.assertEqual(record.leaderboard(limit=1), [(4, 2)])

    def test_dict_round_trip(self):
        record = MemeCycleRecord(
            channel_id=5,
            cycle_start=START,
            anchor_message_id=8,
            tracked_message_ids=[9, 10],
            self_reacted=True,
            reaction_claim_id=10,
            victories={3: 2},
        )
        self.assertEqual(MemeCycleRecord.from_dict(record.to_dict()), record)


class NicknameLotteryRecordTests(unittest.TestCase):
    def test_add_returns_position_and_rejects_invalid(self):
        lottery = NicknameLotteryRecord()
        self.assertEqual(lottery.add_nickname(1, NicknameEntry(text="  Gremlin ")), 1)
        self.assertEqual(lottery.add_nickname(1, NicknameEntry(text="Goblin")), 2)
        self.assertEqual(lottery.entry(1, 1).text, "Gremlin")
        with self.assertRaises(ValueError):
            lottery.add_nickname(1, NicknameEntry(text="Gremlin"))
        with self.assertRaises(ValueError):
            lottery.add_nickname(1, NicknameEntry(text="x" * 31))
        with self.assertRaises(ValueError):
            lottery.add_nickname(1, NicknameEntry(text="   "))
        lottery.add_nickname(1, NicknameEntry(text="y" * 30))

    def test_remove_by_position_drops_empty_users(self):
        lottery = NicknameLotteryRecord()
        lottery.add_nickname(1, NicknameEntry(text="a"))
        lottery.add_nickname(1, NicknameEntry(text="b"))
        lottery.add_nickname(2, NicknameEntry(text="c"))
        self.assertEqual(lottery.remove_nickname(1, 1).text, "a")
        self.assertEqual([e.text for e in lottery.entries_for(1)], ["b"])
        lottery.remove_nickname(2, 1)
        self.assertEqual(lottery.users(), [1])
        with self.assertRaises(IndexError):
            lottery.remove_nickname(1, 2)
        with self.assertRaises(IndexError):
            lottery.remove_nickname(1, 0)

    def test_set_context_blank_clears(self):
        lottery = NicknameLotteryRecord()
        lottery.add_nickname(1, NicknameEntry(text="a", context="old"))
        self.assertEqual(lottery.set_context(1, 1, " new ").context, "new")
        self.assertIsNone(lottery.set_context(1, 1, "  ").context)

    def test_refresh_interval_validation(self):
        lottery = NicknameLotteryRecord()
        self.assertEqual(lottery.refresh_interval(), (1_800, 432_000))
        with self.assertRaises(ValueError):
            lottery.set_refresh_interval(60, 3_600)
        with self.assertRaises(ValueError):
            lottery.set_refresh_interval(7_200, 3_600)
        self.assertEqual(lottery.set_refresh_interval(1_800, 1_800), (1_800, 1_800))
        lottery.clear_refresh_interval()
        self.assertIsNone(lottery.refresh_interval_override)

    def test_announcement_title_defaults(self):
        lottery = NicknameLotteryRecord()
        self.assertEqual(lottery.title(), "Bot demands new nickname")
        lottery.set_announcements(77, "Rename time")
        self.assertEqual((lottery.announcement_channel_id, lottery.title()), (77, "Rename time"))
        lottery.set_announcements(78, None)
        self.assertEqual((lottery.announcement_channel_id, lottery.title()), (78, "Rename time"))
        lottery.clear_announcements()
        self.assertIsNone(lottery.announcement_channel_id)
        self.assertEqual(lottery.title(), "Bot demands new nickname")

    def test_pick_user_only_considers_users_with_entries(self):
        lottery = NicknameLotteryRecord()
        self.assertIsNone(lottery.pick_user(random.Random(1)))
        lottery.add_nickname(4, NicknameEntry(text="a"))
        self.assertEqual(lottery.pick_user(random.Random(1)), 4)

    def test_from_dict_drops_inverted_interval(self):
        restored = NicknameLotteryRecord.from_dict({"refresh_interval_override": [9_000, 1_800]})
        self.assertIsNone(restored.refresh_interval_override)

    def test_dict_round_trip_keeps_entry_metadata(self):
        lottery = NicknameLotteryRecord()
        lottery.add_nickname(1, NicknameEntry(text="a", author_id=2, created_at=START, context="why"))
        lottery.set_refresh_interval(2_000, 3_000)
        restored = NicknameLotteryRecord.from_dict(lottery.to_dict())
        self.assertEqual(restored, lottery)


class GuildStateTests(unittest.TestCase):
    def test_started_flag_is_not_serialized(self):
        state = GuildState(guild_id=1, workflows_started=True)
        self.assertNotIn("workflows_started", state.to_dict())
        self.assertFalse(GuildState.from_dict(1, state.to_dict()).workflows_started)


if __name__ == "__main__":
    unittest.main()

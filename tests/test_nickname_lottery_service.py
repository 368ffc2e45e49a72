from __future__ import annotations

import unittest
from datetime import datetime
from datetime import timezone

from guilds.store import GuildStateStore
from nickname_lottery.service import NicknameLotteryService
from tests.fakes import FakeClock

GUILD = 1
NOW = datetime(2026, 2, 14, 20, 0, tzinfo=timezone.utc)


class NicknameLotteryServiceTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.store = GuildStateStore()
        self.service = NicknameLotteryService(store=self.store, clock=FakeClock(NOW))

    async def test_add_and_list(self):
        ok, msg = await self.service.add(GUILD, 10, "Gremlin", author_id=20)
        self.assertTrue(ok)
        self.assertEqual(msg, "Added nickname `Gremlin` for <@10> (#1).")
        await self.service.add(GUILD, 10, "Goblin", author_id=20)

        self.assertEqual(self.service.list_text(GUILD, 10), "**Nicknames for <@10>**\n1. Gremlin\n2. Goblin")
        self.assertEqual(self.service.list_text(GUILD, 11), "<@11> has no nicknames in the lottery.")

    async def test_add_rejects_duplicates_and_long_names(self):
        await self.service.add(GUILD, 10, "Gremlin", author_id=20)

        ok, msg = await self.service.add(GUILD, 10, "Gremlin", author_id=21)
        self.assertFalse(ok)
        self.assertIn("already exists", msg)
        ok, msg = await self.service.add(GUILD, 10, "n" * 31, author_id=21)
        self.assertFalse(ok)
        self.assertIn("30 characters", msg)
        self.assertEqual(len(self.store.read(GUILD).lottery().entries_for(10)), 1)

    async def test_remove_reports_provenance(self):
        await self.service.add(GUILD, 10, "Gremlin", author_id=20, context="lost a bet")

        ok, msg = await self.service.remove(GUILD, 10, 1)

        self.assertTrue(ok)
        ts = int(NOW.timestamp())
        self.assertEqual(
            msg,
            "**Removed nickname 'Gremlin' for <@10>**\n"
            f"Originally added by <@20> (<t:{ts}:F>)\n"
            "**Context:**\nlost a bet",
        )
        self.assertEqual(self.store.read(GUILD).lottery().users(), [])

    async def test_remove_out_of_range(self):
        ok, msg = await self.service.remove(GUILD, 10, 3)
        self.assertFalse(ok)
        self.assertIn("#3 does not exist", msg)

    async def test_context_and_info(self):
        await self.service.add(GUILD, 10, "Gremlin", author_id=None)
        ok, _ = await self.service.set_context(GUILD, 10, 1, "from the raid")
        self.assertTrue(ok)

        ok, msg = self.service.info(GUILD, 10, 1)
        self.assertTrue(ok)
        self.assertIn("**Nickname 'Gremlin' for <@10>**", msg)
        self.assertIn("Originally added by `user not known`", msg)
        self.assertTrue(msg.endswith("**Context:**\nfrom the raid"))

        ok, _ = self.service.info(GUILD, 10, 2)
        self.assertFalse(ok)

    async def test_interval_set_and_reset(self):
        ok, msg = await self.service.set_interval(GUILD, 600, 900)
        self.assertFalse(ok)
        self.assertIn("at least 1800", msg)

        ok, msg = await self.service.set_interval(GUILD, 1_800, 93_784)
        self.assertTrue(ok)
        self.assertIn("0d 0h 30m 0s to 1d 2h 3m 4s", msg)
        self.assertEqual(self.store.read(GUILD).lottery().refresh_interval(), (1_800, 93_784))

        ok, msg = await self.service.reset_interval(GUILD)
        self.assertTrue(ok)
        self.assertIn("5d 0h 0m 0s", msg)
        self.assertIsNone(self.store.read(GUILD).lottery().refresh_interval_override)

    async def test_announcements_configure_and_stop(self):
        ok, _ = await self.service.stop_announcements(GUILD)
        self.assertFalse(ok)

        ok, msg = await self.service.set_announcements(GUILD, 77)
        self.assertTrue(ok)
        self.assertIn("**Bot demands new nickname**", msg)
        ok, msg = await self.service.set_announcements(GUILD, 77, "Rename time")
        self.assertIn("**Rename time**", msg)

        ok, _ = await self.service.stop_announcements(GUILD)
        self.assertTrue(ok)
        lottery = self.store.read(GUILD).lottery()
        self.assertIsNone(lottery.announcement_channel_id)
        self.assertIsNone(lottery.announcement_title_override)


if __name__ == "__main__":
    unittest.main()

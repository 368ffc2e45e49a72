from __future__ import annotations

import tempfile
import unittest
from datetime import datetime
from datetime import timezone
from pathlib import Path

import yaml

from guilds.models import MemeCycleRecord
from guilds.models import NicknameEntry
from guilds.store import GuildStateStore

START = datetime(2026, 5, 4, 9, 0, tzinfo=timezone.utc)


class GuildStateStoreTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = str(Path(self._tmp.name) / "state.yml")

    async def asyncTearDown(self):
        self._tmp.cleanup()

    async def test_missing_file_loads_empty(self):
        store = GuildStateStore.load(self.path)
        self.assertEqual(store.guild_ids(), [])
        self.assertIsNone(store.read(1).memes)

    async def test_mutations_persist_and_reload(self):
        store = GuildStateStore.load(self.path)
        async with store.mutate(42) as state:
            state.memes = MemeCycleRecord(channel_id=7, cycle_start=START, anchor_message_id=70)
            state.memes.track(71)
            state.memes.record_victory(5)
            state.lottery().add_nickname(5, NicknameEntry(text="Gremlin", author_id=6, created_at=START))
            state.workflows_started = True
        await store.set_subscription("error", 5, True)

        reloaded = GuildStateStore.load(self.path)
        state = reloaded.read(42)
        self.assertEqual(state.memes, store.read(42).memes)
        self.assertEqual(state.nickname_lottery.entries_for(5)[0].text, "Gremlin")
        self.assertFalse(state.workflows_started)
        self.assertEqual(reloaded.subscribers("error"), [5])

    async def test_document_shape(self):
        store = GuildStateStore.load(self.path)
        async with store.mutate(42) as state:
            state.memes = MemeCycleRecord(channel_id=7, cycle_start=START)
        raw = yaml.safe_load(Path(self.path).read_text(encoding="utf-8"))
        self.assertEqual(set(raw), {"guilds", "subscriptions"})
        guild = raw["guilds"][42]
        self.assertEqual(guild["memes"]["channel_id"], 7)
        self.assertEqual(guild["memes"]["cycle_start"], START.isoformat())
        self.assertIsNone(guild["nickname_lottery"])
        self.assertNotIn("workflows_started", guild)

    async def test_read_returns_detached_snapshot(self):
        store = GuildStateStore()
        async with store.mutate(1) as state:
            state.memes = MemeCycleRecord(channel_id=7, cycle_start=START)
        snapshot = store.read(1)
        snapshot.memes.track(99)
        self.assertEqual(store.read(1).memes.tracked_message_ids, [])

    async def test_failed_block_leaves_state_untouched(self):
        store = GuildStateStore.load(self.path)
        async with store.mutate(1) as state:
            state.memes = MemeCycleRecord(channel_id=7, cycle_start=START)

        with self.assertRaises(KeyError):
            async with store.mutate(1) as state:
                state.memes.track(99)
                state.memes = None
                raise KeyError("boom")

        self.assertEqual(store.read(1).memes.tracked_message_ids, [])
        reloaded = GuildStateStore.load(self.path)
        self.assertEqual(reloaded.read(1).memes.channel_id, 7)

        with self.assertRaises(KeyError):
            async with store.mutate(2) as state:
                state.memes = MemeCycleRecord(channel_id=8, cycle_start=START)
                raise KeyError("boom")
        self.assertEqual(store.guild_ids(), [1])

    async def test_subscription_changes_report_noops(self):
        store = GuildStateStore()
        self.assertTrue(await store.set_subscription("startup", 3, True))
        self.assertFalse(await store.set_subscription("startup", 3, True))
        self.assertEqual(store.subscriptions_for(3), ["startup"])
        self.assertTrue(await store.set_subscription("startup", 3, False))
        self.assertFalse(await store.set_subscription("startup", 3, False))
        self.assertEqual(store.subscribers("startup"), [])

    async def test_non_mapping_document_is_rejected(self):
        Path(self.path).write_text("- just\n- a list\n", encoding="utf-8")
        with self.assertRaises(RuntimeError):
            GuildStateStore.load(self.path)


if __name__ == "__main__":
    unittest.main()

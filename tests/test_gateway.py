from __future__ import annotations

import asyncio
import unittest
from types import SimpleNamespace

try:
    import aiohttp
    import discord

    from gateway.discord_gateway import DiscordGateway
    from gateway.discord_gateway import build_embed
    from gateway.errors import InvalidChannelError
    from gateway.errors import is_transient
except ModuleNotFoundError:
    discord = None


class _FakeMember:
    def __init__(self, member_id: int, display_name: str):
        self.id = member_id
        self.display_name = display_name
        self.mention = f"<@{member_id}>"
        self.edits: list[dict] = []

    async def edit(self, **kwargs):
        self.edits.append(kwargs)


class _FakeGuild:
    def __init__(self, members: dict[int, _FakeMember]):
        self.members = members

    def get_member(self, user_id: int):
        return self.members.get(user_id)

    async def fetch_member(self, user_id: int):
        raise discord.NotFound(SimpleNamespace(status=404, reason="Not Found"), "Unknown Member")


class _FakeBot:
    def __init__(self, guild=None):
        self.user = SimpleNamespace(id=999)
        self.guild = guild

    def get_guild(self, guild_id: int):
        return self.guild

    def get_channel(self, channel_id: int):
        return None

    async def fetch_channel(self, channel_id: int):
        raise discord.NotFound(SimpleNamespace(status=404, reason="Not Found"), "Unknown Channel")


@unittest.skipIf(discord is None, "discord.py not installed")
class TransientErrorTests(unittest.TestCase):
    def test_connectivity_errors_are_transient(self):
        self.assertTrue(is_transient(asyncio.TimeoutError()))
        self.assertTrue(is_transient(ConnectionResetError()))
        self.assertTrue(is_transient(aiohttp.ServerDisconnectedError()))

    def test_other_errors_are_not(self):
        self.assertFalse(is_transient(ValueError("bad")))
        self.assertFalse(is_transient(InvalidChannelError(5)))


@unittest.skipIf(discord is None, "discord.py not installed")
class DiscordGatewayTests(unittest.IsolatedAsyncioTestCase):
    def test_embed_uses_house_colour(self):
        embed = build_embed("hello", image_url="https://example.com/x.gif")
        self.assertEqual(embed.colour.value, 0x0099FF)
        self.assertEqual(embed.description, "hello")
        self.assertEqual(embed.image.url, "https://example.com/x.gif")

    async def test_member_lookup_maps_to_plain_data(self):
        gateway = DiscordGateway(_FakeBot(_FakeGuild({5: _FakeMember(5, "Bob")})))

        member = await gateway.fetch_member(1, 5)

        self.assertEqual((member.id, member.display_name, member.mention), (5, "Bob", "<@5>"))
        self.assertEqual(gateway.bot_user_id(), 999)

    async def test_departed_member_is_none(self):
        gateway = DiscordGateway(_FakeBot(_FakeGuild({})))
        self.assertIsNone(await gateway.fetch_member(1, 5))

    async def test_edit_nickname(self):
        member = _FakeMember(5, "Bob")
        gateway = DiscordGateway(_FakeBot(_FakeGuild({5: member})))

        await gateway.edit_nickname(1, 5, "Rob")

        self.assertEqual(member.edits, [{"nick": "Rob"}])

    async def test_unknown_channel_raises_invalid_channel(self):
        gateway = DiscordGateway(_FakeBot())
        with self.assertRaises(InvalidChannelError):
            await gateway.send_embed(123, "hi")


if __name__ == "__main__":
    unittest.main()

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import discord
from discord.ext import commands

from config.defaults import EMBED_COLOUR
from gateway.errors import GatewayError
from gateway.errors import InvalidChannelError


@dataclass(frozen=True, slots=True)
class FetchedMessage:
    id: int
    channel_id: int
    author_id: int
    author_is_bot: bool
    reaction_total: int
    jump_url: str
    created_at: datetime | None = None
    bot_reacted: bool = False


@dataclass(frozen=True, slots=True)
class MemberInfo:
    id: int
    display_name: str
    mention: str


def build_embed(description: str, *, image_url: str | None = None) -> discord.Embed:
    embed = discord.Embed(description=description, colour=discord.Colour(EMBED_COLOUR))
    if image_url:
        embed.set_image(url=image_url)
    return embed


def _to_fetched(msg: discord.Message) -> FetchedMessage:
    return FetchedMessage(
        id=int(msg.id),
        channel_id=int(msg.channel.id),
        author_id=int(msg.author.id),
        author_is_bot=bool(msg.author.bot),
        reaction_total=sum(int(r.count) for r in msg.reactions),
        jump_url=msg.jump_url,
        created_at=msg.created_at,
        bot_reacted=any(bool(r.me) for r in msg.reactions),
    )


class DiscordGateway:
    """Thin adapter over a discord.py bot; everything returned is a plain dataclass."""

    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot

    def bot_user_id(self) -> int | None:
        user = self.bot.user
        return int(user.id) if user is not None else None

    async def _channel(self, channel_id: int) -> discord.abc.Messageable:
        channel = self.bot.get_channel(int(channel_id))
        if channel is None:
            try:
                channel = await self.bot.fetch_channel(int(channel_id))
            except discord.NotFound as exc:
                raise InvalidChannelError(channel_id) from exc
            except discord.Forbidden as exc:
                raise InvalidChannelError(channel_id, "forbidden") from exc
        if not isinstance(channel, discord.abc.Messageable):
            raise InvalidChannelError(channel_id, "not a text channel")
        return channel

    async def send_embed(self, channel_id: int, description: str, *, image_url: str | None = None) -> int:
        channel = await self._channel(channel_id)
        msg = await channel.send(embed=build_embed(description, image_url=image_url))
        return int(msg.id)

    async def edit_embed(self, channel_id: int, message_id: int, description: str) -> None:
        channel = await self._channel(channel_id)
        msg = channel.get_partial_message(int(message_id))
        await msg.edit(embed=build_embed(description))

    async def fetch_message(self, channel_id: int, message_id: int) -> FetchedMessage | None:
        channel = await self._channel(channel_id)
        try:
            msg = await channel.fetch_message(int(message_id))
        except discord.NotFound:
            return None
        return _to_fetched(msg)

    async def messages_after(
        self,
        channel_id: int,
        after: int | datetime,
        *,
        limit: int = 100,
    ) -> list[FetchedMessage]:
        channel = await self._channel(channel_id)
        marker = discord.Object(id=int(after)) if isinstance(after, int) else after
        out: list[FetchedMessage] = []
        async for msg in channel.history(limit=int(limit), after=marker, oldest_first=True):
            out.append(_to_fetched(msg))
        return out

    async def add_reaction(self, channel_id: int, message_id: int, emoji: str) -> None:
        channel = await self._channel(channel_id)
        await channel.get_partial_message(int(message_id)).add_reaction(emoji)

    async def fetch_member(self, guild_id: int, user_id: int) -> MemberInfo | None:
        guild = self.bot.get_guild(int(guild_id))
        if guild is None:
            return None
        member = guild.get_member(int(user_id))
        if member is None:
            try:
                member = await guild.fetch_member(int(user_id))
            except discord.NotFound:
                return None
        return MemberInfo(id=int(member.id), display_name=member.display_name, mention=member.mention)

    async def edit_nickname(self, guild_id: int, user_id: int, nickname: str) -> None:
        guild = self.bot.get_guild(int(guild_id))
        if guild is None:
            raise GatewayError(f"guild {guild_id} is not available")
        member = guild.get_member(int(user_id)) or await guild.fetch_member(int(user_id))
        await member.edit(nick=nickname)

    async def send_direct_message(self, user_id: int, text: str) -> None:
        user = self.bot.get_user(int(user_id)) or await self.bot.fetch_user(int(user_id))
        await user.send(text)

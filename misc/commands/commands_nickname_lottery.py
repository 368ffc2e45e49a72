from __future__ import annotations

import discord
from discord.ext import commands
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
    gates: CommandGates,
) -> None:
    service = deps.lottery_service
    quiet = discord.AllowedMentions.none()

    @bot.command(name="nicknames.add")
    @commands.guild_only()
    async def nicknames_add(ctx: commands.Context, member: discord.Member, *, nickname: str):
        _, msg = await service.add(ctx.guild.id, member.id, nickname, author_id=ctx.author.id)
        await ctx.reply(msg, mention_author=False, allowed_mentions=quiet)

    @bot.command(name="nicknames.remove")
    @commands.has_permissions(manage_nicknames=True)
    @commands.guild_only()
    async def nicknames_remove(ctx: commands.Context, member: discord.Member, position: int):
        _, msg = await service.remove(ctx.guild.id, member.id, position)
        await ctx.reply(msg, mention_author=False, allowed_mentions=quiet)

    @bot.command(name="nicknames.context")
    @commands.has_permissions(manage_nicknames=True)
    @commands.guild_only()
    async def nicknames_context(ctx: commands.Context, member: discord.Member, position: int, *, text: str):
        _, msg = await service.set_context(ctx.guild.id, member.id, position, text)
        await ctx.reply(msg, mention_author=False, allowed_mentions=quiet)

    @bot.command(name="nicknames.info")
    @commands.guild_only()
    async def nicknames_info(ctx: commands.Context, member: discord.Member, position: int):
        _, msg = service.info(ctx.guild.id, member.id, position)
        await ctx.reply(msg, mention_author=False, allowed_mentions=quiet)

    @bot.command(name="nicknames.list")
    @commands.guild_only()
    async def nicknames_list(ctx: commands.Context, member: discord.Member):
        await ctx.reply(service.list_text(ctx.guild.id, member.id), mention_author=False, allowed_mentions=quiet)

    @bot.command(name="nicknames.interval")
    @commands.has_permissions(manage_nicknames=True)
    @commands.guild_only()
    async def nicknames_interval(ctx: commands.Context, min_seconds: int, max_seconds: int):
        _, msg = await service.set_interval(ctx.guild.id, min_seconds, max_seconds)
        await ctx.reply(msg, mention_author=False)

    @bot.command(name="nicknames.interval_reset")
    @commands.has_permissions(manage_nicknames=True)
    @commands.guild_only()
    async def nicknames_interval_reset(ctx: commands.Context):
        _, msg = await service.reset_interval(ctx.guild.id)
        await ctx.reply(msg, mention_author=False)

    @bot.command(name="nicknames.announce")
    @commands.has_permissions(manage_channels=True)
    @commands.guild_only()
    async def nicknames_announce(ctx: commands.Context, channel: discord.TextChannel, *, title: str | None = None):
        _, msg = await service.set_announcements(ctx.guild.id, channel.id, title)
        await ctx.reply(msg, mention_author=False)

    @bot.command(name="nicknames.announce_stop")
    @commands.has_permissions(manage_channels=True)
    @commands.guild_only()
    async def nicknames_announce_stop(ctx: commands.Context):
        _, msg = await service.stop_announcements(ctx.guild.id)
        await ctx.reply(msg, mention_author=False)

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
    service = deps.meme_service

    @bot.command(name="memes.set_channel")
    @commands.has_permissions(manage_channels=True)
    @commands.guild_only()
    async def memes_set_channel(ctx: commands.Context, channel: discord.TextChannel):
        _, msg = await service.set_channel(ctx.guild.id, channel.id)
        await ctx.reply(msg, mention_author=False)

    @bot.command(name="memes.unset_channel")
    @commands.has_permissions(manage_channels=True)
    @commands.guild_only()
    async def memes_unset_channel(ctx: commands.Context):
        _, msg = await service.unset_channel(ctx.guild.id)
        await ctx.reply(msg, mention_author=False)

    @bot.command(name="memes.leaderboard")
    @commands.guild_only()
    async def memes_leaderboard(ctx: commands.Context, limit: int = 10):
        limit = max(1, min(int(limit or 10), 25))
        await ctx.reply(
            service.leaderboard_text(ctx.guild.id, limit),
            mention_author=False,
            allowed_mentions=discord.AllowedMentions.none(),
        )

    @bot.command(name="memes.status")
    @commands.guild_only()
    async def memes_status(ctx: commands.Context):
        await ctx.reply(service.status_text(ctx.guild.id), mention_author=False)

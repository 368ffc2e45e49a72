from __future__ import annotations

import discord
from discord.ext import commands
from misc.runtime_deps import RuntimeBootDeps
from misc.runtime_deps import RuntimeDeps
from notifications.service import EventKind

RUNTIME_EVENTS = ("on_ready", "on_guild_available", "on_guild_join", "on_message")


def register_runtime_events(
    bot: commands.Bot,
    *,
    deps: RuntimeDeps,
    boot: RuntimeBootDeps,
) -> None:
    async def observe(guild: discord.Guild) -> None:
        try:
            await deps.observe_guild(guild.id)
        except Exception as e:
            print(f"[Supervisor] could not start workflows for guild={guild.id}: {e!r}")
            deps.notifier.notify(EventKind.ERROR, f"Could not start workflows for guild {guild.id}: {e!r}")

    @bot.event
    async def on_ready():
        print(f"Gremlin is online as {bot.user} guilds={len(bot.guilds)}")
        if not getattr(bot, "_startup_notified", False):
            bot._startup_notified = True
            workflows = ", ".join(boot.enabled_workflows) or "none"
            deps.notifier.notify(
                EventKind.STARTUP,
                f"{bot.user} is online in {len(bot.guilds)} guild(s). Workflows: {workflows}. State: {boot.state_path}",
            )
        for guild in bot.guilds:
            await observe(guild)

    @bot.event
    async def on_guild_available(guild: discord.Guild):
        await observe(guild)

    @bot.event
    async def on_guild_join(guild: discord.Guild):
        print(f"[Supervisor] joined guild={guild.id}")
        await observe(guild)

    @bot.event
    async def on_message(message: discord.Message):
        if message.guild is not None:
            try:
                await deps.meme_service.handle_message(
                    guild_id=message.guild.id,
                    channel_id=message.channel.id,
                    message_id=message.id,
                    author_is_bot=bool(message.author.bot),
                    ephemeral=bool(message.flags.ephemeral),
                )
            except Exception as e:
                print(f"[Memes] guild={message.guild.id} intake failed message={message.id}: {e!r}")

        if message.author.bot:
            return
        await bot.process_commands(message)

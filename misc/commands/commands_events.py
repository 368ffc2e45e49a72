from __future__ import annotations

from discord.ext import commands
from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from notifications.service import EventKind


def register(
    bot: commands.Bot,
    *,
    deps: CommandDeps,
    gates: CommandGates,
) -> None:
    notifier = deps.notifier

    def _resolve(raw: str) -> tuple[EventKind | None, str]:
        try:
            return EventKind.parse(raw), ""
        except ValueError as e:
            return None, f"Unknown event: {e}."

    @bot.command(name="events.subscribe")
    async def events_subscribe(ctx: commands.Context, kind: str):
        event_kind, err = _resolve(kind)
        if event_kind is None:
            await ctx.reply(err, mention_author=False)
            return
        if event_kind.value in deps.restricted_event_kinds and not gates.user_is_owner(ctx.author):
            await ctx.reply(f"Only bot owners can subscribe to `{event_kind.value}` events.", mention_author=False)
            return
        _, msg = await notifier.subscribe(event_kind, ctx.author.id)
        await ctx.reply(msg, mention_author=False)

    @bot.command(name="events.unsubscribe")
    async def events_unsubscribe(ctx: commands.Context, kind: str):
        event_kind, err = _resolve(kind)
        if event_kind is None:
            await ctx.reply(err, mention_author=False)
            return
        _, msg = await notifier.unsubscribe(event_kind, ctx.author.id)
        await ctx.reply(msg, mention_author=False)

    @bot.command(name="events.list")
    async def events_list(ctx: commands.Context):
        await ctx.reply(notifier.list_text(ctx.author.id), mention_author=False)

from __future__ import annotations

from misc.commands.command_deps import CommandDeps
from misc.commands.command_deps import CommandGates
from misc.commands.commands_events import register as register_events
from misc.commands.commands_memes import register as register_memes
from misc.commands.commands_nickname_lottery import register as register_nickname_lottery
from misc.runtime_deps import RuntimeBootDeps
from misc.runtime_deps import RuntimeDeps
from misc.events_runtime import register_runtime_events


def wire_bot_runtime(
    bot,
    *,
    meme_service,
    lottery_service,
    notifier,
    supervisor,
    user_is_owner,
    restricted_event_kinds: set[str],
    state_path: str,
) -> None:
    command_deps = CommandDeps(
        meme_service=meme_service,
        lottery_service=lottery_service,
        notifier=notifier,
        restricted_event_kinds=restricted_event_kinds,
    )
    command_gates = CommandGates(
        user_is_owner=user_is_owner,
    )

    register_memes(
        bot,
        deps=command_deps,
        gates=command_gates,
    )

    register_nickname_lottery(
        bot,
        deps=command_deps,
        gates=command_gates,
    )

    register_events(
        bot,
        deps=command_deps,
        gates=command_gates,
    )

    register_runtime_events(
        bot,
        deps=RuntimeDeps(
            meme_service=meme_service,
            notifier=notifier,
            observe_guild=supervisor.observe_guild,
        ),
        boot=RuntimeBootDeps(
            enabled_workflows=[k.value for k in supervisor.enabled],
            state_path=state_path,
        ),
    )

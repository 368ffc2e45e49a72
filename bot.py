import os
import random

import discord
from discord.ext import commands
from config.defaults import DEFAULT_COMMAND_PREFIX
from config.defaults import DEFAULT_ENABLED_WORKFLOWS
from config.defaults import DEFAULT_IDLE_RECHECK_SECONDS
from config.defaults import DEFAULT_RETRY_DELAY_SECONDS
from config.defaults import DEFAULT_STATE_PATH
from config.env import env_flag
from config.env import env_int
from config.env import parse_id_set
from config.env import parse_str_set
from gateway.discord_gateway import DiscordGateway
from guilds.store import GuildStateStore
from jobs.supervisor import GuildWorkflowSupervisor
from jobs.supervisor import WorkflowKind
from jobs.supervisor import enabled_workflow_kinds
from memes.cycle import MemeVotingCycle
from memes.service import MemeContestService
from misc.runtime_wiring import wire_bot_runtime
from nickname_lottery.draw import NicknameLotteryDraw
from nickname_lottery.service import NicknameLotteryService
from notifications.service import EventKind
from notifications.service import NotificationSink

# =========================
# ENV
# =========================
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN")

if not DISCORD_TOKEN:
    raise RuntimeError("Missing DISCORD_TOKEN env var")

STATE_PATH = os.getenv("GREMLIN_STATE_PATH", DEFAULT_STATE_PATH).strip() or DEFAULT_STATE_PATH
COMMAND_PREFIX = os.getenv("GREMLIN_COMMAND_PREFIX", DEFAULT_COMMAND_PREFIX).strip() or DEFAULT_COMMAND_PREFIX
ENABLED_WORKFLOWS = enabled_workflow_kinds(os.getenv("GREMLIN_ENABLED_WORKFLOWS", DEFAULT_ENABLED_WORKFLOWS))
RETRY_DELAY_SECONDS = env_int("GREMLIN_RETRY_DELAY_SECONDS", DEFAULT_RETRY_DELAY_SECONDS, minimum=1)
IDLE_RECHECK_SECONDS = env_int("GREMLIN_IDLE_RECHECK_SECONDS", DEFAULT_IDLE_RECHECK_SECONDS, minimum=60)
NICKNAME_LOTTERY_DEBUG = env_flag("GREMLIN_NICKNAME_LOTTERY_DEBUG")

OWNER_USER_IDS = parse_id_set(os.getenv("GREMLIN_OWNER_USER_IDS"))
OWNER_USERNAMES = parse_str_set(os.getenv("GREMLIN_OWNER_USERNAMES"))
RESTRICTED_EVENT_KINDS = {EventKind.ERROR.value}

print(
    f"[CFG] state_path={STATE_PATH} prefix={COMMAND_PREFIX!r} "
    f"workflows={','.join(k.value for k in ENABLED_WORKFLOWS) or 'none'} "
    f"retry_delay={RETRY_DELAY_SECONDS}s idle_recheck={IDLE_RECHECK_SECONDS}s "
    f"lottery_debug={NICKNAME_LOTTERY_DEBUG} owner_ids={len(OWNER_USER_IDS)}"
)


def user_is_owner(user: discord.abc.User) -> bool:
    uid = int(getattr(user, "id", 0) or 0)
    if uid and uid in OWNER_USER_IDS:
        return True
    if OWNER_USER_IDS:
        return False

    names = {
        str(getattr(user, "name", "") or "").strip().lower(),
        str(getattr(user, "global_name", "") or "").strip().lower(),
    }
    return any(n in OWNER_USERNAMES for n in names if n)


# =========================
# STATE
# =========================
store = GuildStateStore.load(STATE_PATH)
rng = random.Random()

# =========================
# DISCORD BOT
# =========================
intents = discord.Intents.default()
intents.message_content = True
intents.members = True

bot = commands.Bot(command_prefix=COMMAND_PREFIX, intents=intents)

gateway = DiscordGateway(bot)
notifier = NotificationSink(store=store, gateway=gateway)
meme_service = MemeContestService(store=store, gateway=gateway, rng=rng)
lottery_service = NicknameLotteryService(store=store)


async def run_memes(guild_id: int) -> None:
    await MemeVotingCycle(
        guild_id=guild_id,
        store=store,
        gateway=gateway,
        notifier=notifier,
        rng=rng,
        retry_delay_seconds=RETRY_DELAY_SECONDS,
        idle_recheck_seconds=IDLE_RECHECK_SECONDS,
    ).run()


async def run_nickname_lottery(guild_id: int) -> None:
    await NicknameLotteryDraw(
        guild_id=guild_id,
        store=store,
        gateway=gateway,
        notifier=notifier,
        rng=rng,
        retry_delay_seconds=RETRY_DELAY_SECONDS,
        debug_once=NICKNAME_LOTTERY_DEBUG,
    ).run()


supervisor = GuildWorkflowSupervisor(
    store=store,
    runners={
        WorkflowKind.MEMES: run_memes,
        WorkflowKind.NICKNAME_LOTTERY: run_nickname_lottery,
    },
    enabled=ENABLED_WORKFLOWS,
)

wire_bot_runtime(
    bot,
    meme_service=meme_service,
    lottery_service=lottery_service,
    notifier=notifier,
    supervisor=supervisor,
    user_is_owner=user_is_owner,
    restricted_event_kinds=RESTRICTED_EVENT_KINDS,
    state_path=STATE_PATH,
)


bot.run(DISCORD_TOKEN)

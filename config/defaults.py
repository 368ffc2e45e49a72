from __future__ import annotations

DEFAULT_STATE_PATH = "gremlin_state.yml"
DEFAULT_COMMAND_PREFIX = "!"
DEFAULT_ENABLED_WORKFLOWS = "memes,nickname_lottery"

# Fixed delay for every workflow retry, including the post-until-success loop.
DEFAULT_RETRY_DELAY_SECONDS = 300
# How long the meme workflow waits before looking at an unconfigured guild again.
DEFAULT_IDLE_RECHECK_SECONDS = 3600

# (30 minutes, 5 days)
DEFAULT_REFRESH_INTERVAL = (1_800, 432_000)
MIN_REFRESH_INTERVAL_SECONDS = 1_800

EMBED_COLOUR = 0x0099FF

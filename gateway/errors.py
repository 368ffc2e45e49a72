from __future__ import annotations

import asyncio

import aiohttp
import discord


class GatewayError(RuntimeError):
    pass


class InvalidChannelError(GatewayError):
    def __init__(self, channel_id: int, reason: str = "not found") -> None:
        self.channel_id = int(channel_id)
        self.reason = reason
        super().__init__(f"channel {self.channel_id} is unusable: {reason}")


TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    asyncio.TimeoutError,
    ConnectionError,
    aiohttp.ClientConnectionError,
    discord.DiscordServerError,
    discord.GatewayNotFound,
    discord.ConnectionClosed,
)


def is_transient(exc: BaseException) -> bool:
    return isinstance(exc, TRANSIENT_ERRORS)

from __future__ import annotations

import asyncio
from typing import Awaitable
from typing import Callable
from typing import TypeVar

from gateway.errors import is_transient
from notifications.service import EventKind

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


async def run_forever(
    step: Callable[[], Awaitable[bool | None]],
    *,
    tag: str,
    notifier,
    retry_delay_seconds: float,
    sleep: Sleep = asyncio.sleep,
) -> None:
    """Run `step` until it returns True; failures never stop the loop.

    Transient errors are logged and retried after the fixed delay. Anything
    else is also escalated to the notifier before the same delay.
    """
    while True:
        try:
            if await step():
                print(f"[{tag}] loop finished")
                return
            continue
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if is_transient(e):
                print(f"[{tag}] transient error, retrying in {retry_delay_seconds}s: {e!r}")
            else:
                print(f"[{tag}] loop error, retrying in {retry_delay_seconds}s: {e!r}")
                notifier.notify(EventKind.ERROR, f"{tag} loop error: {e!r}")
        await sleep(retry_delay_seconds)


async def retry_until_success(
    operation: Callable[[], Awaitable[T]],
    *,
    tag: str,
    what: str,
    retry_delay_seconds: float,
    notifier=None,
    still_wanted: Callable[[], bool] | None = None,
    sleep: Sleep = asyncio.sleep,
) -> T | None:
    """Retry `operation` after a fixed delay until it succeeds.

    Non-transient failures are escalated to `notifier`, once per distinct
    error. `still_wanted` is checked after every delay; when it returns False
    the operation is abandoned and None is returned.
    """
    attempt = 0
    last_escalated = None
    while True:
        attempt += 1
        try:
            return await operation()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            print(f"[{tag}] {what} failed attempt={attempt}, retrying in {retry_delay_seconds}s: {e!r}")
            if notifier is not None and not is_transient(e) and repr(e) != last_escalated:
                last_escalated = repr(e)
                notifier.notify(EventKind.ERROR, f"{tag} {what} failed: {e!r}")
        await sleep(retry_delay_seconds)
        if still_wanted is not None and not still_wanted():
            print(f"[{tag}] {what} abandoned after attempt={attempt}")
            return None

"""Cancellable pacing delay used between discussion turns."""

import asyncio
import logging
import time

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SEC = 0.1


class CancellationToken:
    """One-shot cancellation signal shared between a session and its delays."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()


async def cancellable_delay(
    seconds: float,
    token: CancellationToken,
    poll_interval: float = DEFAULT_POLL_INTERVAL_SEC,
) -> bool:
    """Wait ``seconds`` unless ``token`` is cancelled first.

    The token is re-checked at least every ``poll_interval`` seconds, so the
    time between ``cancel()`` and the return is bounded no matter how long the
    requested delay is.

    Returns:
        True if the wait was cut short by cancellation, False if it ran out.
    """
    if token.cancelled:
        return True

    deadline = time.monotonic() + max(seconds, 0.0)
    while True:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return False
        try:
            await asyncio.wait_for(token.wait(), timeout=min(poll_interval, remaining))
        except TimeoutError:
            continue
        logger.debug("Delay cancelled with %.2fs remaining", remaining)
        return True

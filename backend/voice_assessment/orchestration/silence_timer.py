"""
Cancellable countdown stamped with the turn epoch.

The TurnController owns two of these per session: the no-speech timeout and
the end-of-utterance debounce. The epoch captured at start() is handed back
to the expiry callback, which compares it to the live epoch before acting.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class SilenceTimer:
    """
    Single-shot timer. start() while armed re-arms it, so at most one
    countdown of a given timer is ever pending.
    """

    def __init__(
        self,
        name: str,
        duration_ms: int,
        on_expire: Callable[[int], Awaitable[None]],
    ):
        self.name = name
        self.duration_ms = duration_ms
        self.on_expire = on_expire

        self._task: Optional[asyncio.Task] = None
        self._epoch: Optional[int] = None

    def start(self, epoch: int):
        """Arm (or re-arm) the timer for the given turn epoch."""
        self.cancel()
        self._epoch = epoch
        self._task = asyncio.create_task(self._run(epoch))
        logger.debug(f"{self.name} timer armed: {self.duration_ms}ms (epoch {epoch})")

    def cancel(self):
        if self._task and not self._task.done():
            self._task.cancel()
            logger.debug(f"{self.name} timer cancelled (epoch {self._epoch})")
        self._task = None
        self._epoch = None

    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def armed_epoch(self) -> Optional[int]:
        return self._epoch if self.is_running() else None

    async def _run(self, epoch: int):
        try:
            await asyncio.sleep(self.duration_ms / 1000.0)
        except asyncio.CancelledError:
            return

        # Detach before the callback so it may cancel or re-arm this timer.
        self._task = None
        self._epoch = None
        logger.debug(f"{self.name} timer fired (epoch {epoch})")
        try:
            await self.on_expire(epoch)
        except Exception as e:
            logger.error(f"Error in {self.name} timer callback: {e}", exc_info=True)

"""
Turn lock: a short window after each play before the next seat may act.

The window exists so the player who just played can undo. One lock exists
per game and at most one timer is ever pending: arming again cancels the
previous timer, and a win or a new deal cancels it outright.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from constants import TURN_LOCK_SECONDS

logger = logging.getLogger(__name__)


class TurnLock:
    """
    Cancellable scheduled unlock on the running event loop.

    Attributes:
        seconds: Length of the lock window.
        locked: Whether the window is currently open.
        on_release: Coroutine function called when the window expires
            naturally (not when it is cancelled).
    """

    def __init__(
        self,
        seconds: float = TURN_LOCK_SECONDS,
        on_release: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> None:
        self.seconds = seconds
        self.locked = False
        self.on_release = on_release
        self._handle: Optional[asyncio.TimerHandle] = None
        self._release_task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        """Whether an unlock timer is scheduled."""
        return self._handle is not None

    def arm(self) -> None:
        """
        Lock the turn and schedule the unlock.

        Without a running event loop the lock is armed with no timer and
        stays locked until cancel() is called.
        """
        self.cancel()
        self.locked = True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("Turn lock armed without an event loop")
            return
        self._handle = loop.call_later(self.seconds, self._expire)

    def cancel(self) -> None:
        """Drop any pending unlock and clear the lock without notifying."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self.locked = False

    def _expire(self) -> None:
        self._handle = None
        self.locked = False
        logger.debug("Turn unlocked")
        if self.on_release is not None:
            self._release_task = asyncio.get_running_loop().create_task(self.on_release())

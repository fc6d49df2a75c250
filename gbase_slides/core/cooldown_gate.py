"""
Cooldown gate between consecutive image requests.

The gate counts down once per tick and reports the remaining whole seconds so
observers can render "cooling down: Ns". It checks a CancellationToken every
tick, so a reset stops the wait within one tick interval. Time comes from an
injectable Clock; tests substitute a manual clock.
"""

import asyncio
import math
import time
from typing import Optional

from gbase_slides.core.errors import BatchCancelledError
from gbase_slides.core.observers import TickCallback, emit
from gbase_slides.utils.logger import setup_logger

logger = setup_logger(__name__)


class Clock:
    """Monotonic time source backed by the event loop."""

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class CancellationToken:
    """Batch-level cancellation flag, shared by the host and the orchestrator."""

    def __init__(self):
        self._cancelled = False
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._cancelled:
            self._cancelled = True
            self.reason = reason

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise BatchCancelledError(self.reason or "cancelled")


class CooldownGate:
    """
    Interruptible countdown timer.

    Usage:
        gate = CooldownGate()
        await gate.wait(65, on_tick=lambda remaining: print(remaining), cancel_token=token)
    """

    def __init__(self, clock: Optional[Clock] = None, tick_seconds: float = 1.0):
        if tick_seconds <= 0:
            raise ValueError("tick_seconds must be > 0")
        self.clock = clock or Clock()
        self.tick_seconds = tick_seconds

    async def wait(
        self,
        seconds: float,
        on_tick: Optional[TickCallback] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> None:
        """
        Wait ``seconds``, reporting the countdown once per tick and a final 0.

        Raises:
            BatchCancelledError: If the token is cancelled during the wait
        """
        deadline = self.clock.now() + max(0.0, seconds)
        remaining = deadline - self.clock.now()

        while remaining > 1e-9:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            await emit(on_tick, math.ceil(remaining - 1e-9))
            await self.clock.sleep(min(self.tick_seconds, remaining))
            remaining = deadline - self.clock.now()

        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        await emit(on_tick, 0)

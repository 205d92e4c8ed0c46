"""
Press-and-hold gate in front of the SOS button.

The user must keep the button pressed for ``hold_ms`` before ``on_complete``
fires. Releasing early cancels the hold; the "cancelled" message stays up for
``cooldown_ms`` and then the trigger is ready again.

    IDLE --start--> HOLDING --elapsed >= hold_ms--> SENT
                      |
                    cancel
                      v
                  CANCELLED --cooldown--> IDLE

The state machine is driven by ``tick()``; ``drive()`` calls it on a fixed
cadence from an asyncio loop. Time comes from an injectable monotonic clock
(milliseconds), so tests can step it by hand.
"""
import asyncio
import enum
import time
from typing import Callable, Optional

import structlog

logger = structlog.get_logger(__name__)

HOLD_MS = 3000
TICK_MS = 50
COOLDOWN_MS = 1000

READY_TEXT = "Ready. Hold button for 3 seconds to send SOS."
HOLDING_TEXT = "Hold..."
CANCELLED_TEXT = "Hold cancelled."
SENDING_TEXT = "Sending SOS..."


def monotonic_ms() -> float:
    return time.monotonic() * 1000


class HoldState(str, enum.Enum):
    IDLE = "IDLE"
    HOLDING = "HOLDING"
    CANCELLED = "CANCELLED"
    SENT = "SENT"


class HoldTrigger:
    def __init__(
        self,
        on_complete: Callable[[], None],
        on_progress: Optional[Callable[[float], None]] = None,
        clock: Optional[Callable[[], float]] = None,
        hold_ms: int = HOLD_MS,
        tick_ms: int = TICK_MS,
        cooldown_ms: int = COOLDOWN_MS,
    ):
        self.on_complete = on_complete
        self.on_progress = on_progress
        self.clock = clock or monotonic_ms
        self.hold_ms = hold_ms
        self.tick_ms = tick_ms
        self.cooldown_ms = cooldown_ms

        self.state = HoldState.IDLE
        self.progress = 0.0
        self.status = READY_TEXT
        self._started_at = 0.0
        self._cancelled_at = 0.0

    def _now_ms(self) -> float:
        return self.clock()

    @property
    def active(self) -> bool:
        """True while ticks are still needed."""
        return self.state in (HoldState.HOLDING, HoldState.CANCELLED)

    def start(self) -> bool:
        if self.state in (HoldState.HOLDING, HoldState.SENT):
            return False
        self._started_at = self._now_ms()
        self.state = HoldState.HOLDING
        self.status = HOLDING_TEXT
        self._set_progress(0.0)
        return True

    def cancel(self) -> bool:
        # mouseup + mouseleave + touchcancel can all arrive for one release
        if self.state is not HoldState.HOLDING:
            return False
        if self._now_ms() - self._started_at >= self.hold_ms:
            # the hold finished between ticks
            self.tick()
            return False
        self._cancelled_at = self._now_ms()
        self.state = HoldState.CANCELLED
        self.status = CANCELLED_TEXT
        logger.info("sos_hold_cancelled", held_ms=round(self._cancelled_at - self._started_at))
        return True

    def tick(self) -> HoldState:
        now = self._now_ms()
        if self.state is HoldState.HOLDING:
            elapsed = now - self._started_at
            self._set_progress(min(100.0, max(0.0, elapsed / self.hold_ms * 100)))
            if elapsed >= self.hold_ms:
                self._complete()
        elif self.state is HoldState.CANCELLED and now - self._cancelled_at >= self.cooldown_ms:
            self.reset()
        return self.state

    def reset(self):
        self.state = HoldState.IDLE
        self.status = READY_TEXT
        self._set_progress(0.0)

    def _complete(self):
        self.state = HoldState.SENT
        self.status = SENDING_TEXT
        self._set_progress(100.0)
        logger.info("sos_hold_completed")
        self.on_complete()

    def _set_progress(self, pct: float):
        self.progress = pct
        if self.on_progress:
            self.on_progress(pct)

    async def drive(self):
        """Tick every ``tick_ms`` until the hold completes or the cooldown ends."""
        while self.active:
            self.tick()
            if self.active:
                await asyncio.sleep(self.tick_ms / 1000)

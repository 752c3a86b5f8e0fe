"""Frame delta measurement and fixed-timestep accumulation."""
from __future__ import annotations

import logging

log = logging.getLogger(__name__)


class FrameTimer:
    """Seconds between successive frames, capped so a stall reads as one slow frame."""

    def __init__(self, max_delta: float = 0.1) -> None:
        self.max_delta = max_delta
        self._last: float | None = None

    def delta(self, now: float) -> float:
        if self._last is None:
            self._last = now
            return 0.0
        dt = now - self._last
        self._last = now
        return min(max(dt, 0.0), self.max_delta)


class FixedStepper:
    """Drains accumulated frame time in fixed-size simulation steps.

    ``advance`` returns how many steps of ``step_dt`` the caller should run
    this frame. Anything beyond ``max_steps`` is dropped so the loop never
    tries to catch up on more time than it can simulate.
    """

    def __init__(self, step_dt: float = 1.0 / 60.0, max_steps: int = 8) -> None:
        self.step_dt = step_dt
        self.max_steps = max_steps
        self.accumulator = 0.0

    def advance(self, elapsed: float) -> int:
        self.accumulator += elapsed
        steps = int(self.accumulator // self.step_dt)
        if steps > self.max_steps:
            log.debug("Dropping %d pending simulation steps", steps - self.max_steps)
            steps = self.max_steps
            self.accumulator = 0.0
        else:
            self.accumulator -= steps * self.step_dt
        return steps

    def reset(self) -> None:
        self.accumulator = 0.0

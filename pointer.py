"""Mouse pointer input mapped onto the solver's normalized coordinates."""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

import cv2

from fluid_sim import FluidSolver
from presets import EmitterParameters


@dataclass
class PointerState:
    """Pointer in solver space: origin bottom-left, y up, velocity in px/s."""

    x: float
    y: float
    vx: float
    vy: float
    pressed: bool


def normalize(px: float, py: float, width: int, height: int) -> tuple[float, float]:
    return px / width, 1.0 - py / height


def apply_pointer(
    solver: FluidSolver,
    state: PointerState | None,
    emitter: EmitterParameters,
    audio_factor: float = 0.0,
) -> bool:
    """Inject dye and force for one frame; returns whether anything was applied."""
    if state is None or not state.pressed:
        return False
    solver.add_impulse(state.x, state.y, emitter.brush_radius, emitter.brush_strength, audio_factor)
    solver.add_velocity_impulse(state.x, state.y, state.vx, state.vy, emitter.force_strength)
    return True


class PointerController:
    def __init__(
        self,
        width: int,
        height: int,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.width = width
        self.height = height
        self._clock = clock
        self._pressed = False
        self._position = (0.0, 0.0)
        self._velocity = (0.0, 0.0)
        self._last_time = clock()

    @property
    def pressed(self) -> bool:
        return self._pressed

    def attach(self, window: str) -> None:
        cv2.setMouseCallback(window, self.handle_event)

    def handle_event(self, event: int, px: int, py: int, flags: int, param=None) -> None:
        if event == cv2.EVENT_LBUTTONDOWN:
            self._pressed = True
        elif event == cv2.EVENT_LBUTTONUP:
            self._pressed = False
        elif event == cv2.EVENT_MOUSEMOVE and not flags & cv2.EVENT_FLAG_LBUTTON:
            self._pressed = False
        self._update_position(px, py)
        if not (0 <= px <= self.width and 0 <= py <= self.height):
            self._pressed = False

    def _update_position(self, px: float, py: float) -> None:
        now = self._clock()
        dt = max(now - self._last_time, 1e-4)
        last_x, last_y = self._position
        self._velocity = ((px - last_x) / dt, (py - last_y) / dt)
        self._position = (float(px), float(py))
        self._last_time = now

    def state(self) -> PointerState:
        px, py = self._position
        x, y = normalize(px, py, self.width, self.height)
        # screen y grows downward, solver y grows upward
        return PointerState(x, y, self._velocity[0], -self._velocity[1], self._pressed)

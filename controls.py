"""OpenCV trackbars that edit the running preset."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from functools import partial

import cv2

from fluid_sim import FluidSolver
from presets import Preset
from render import DyeRenderer

log = logging.getLogger(__name__)

CONTROLS_TITLE = "Aurora Controls"


@dataclass(frozen=True)
class Control:
    """One trackbar: an integer slider over ``minimum..maximum`` in ``step`` increments."""

    label: str
    section: str
    name: str
    minimum: float
    maximum: float
    step: float
    integer: bool = False

    @property
    def positions(self) -> int:
        return int(round((self.maximum - self.minimum) / self.step))

    def to_position(self, value: float) -> int:
        position = int(round((value - self.minimum) / self.step))
        return min(max(position, 0), self.positions)

    def to_value(self, position: int):
        position = min(max(position, 0), self.positions)
        value = self.minimum + position * self.step
        if self.integer:
            return int(round(value))
        return round(value, 10)


CONTROLS = (
    Control("viscosity x1e-4", "simulation", "viscosity", 0.0, 0.01, 0.0001),
    Control("diffusion x1e-5", "simulation", "diffusion", 0.0, 0.001, 0.00001),
    Control("dissipation", "simulation", "dissipation", 0.9, 1.0, 0.001),
    Control("pressure iters", "simulation", "pressure_iterations", 5, 60, 1, integer=True),
    Control("curl", "simulation", "curl_strength", 0.0, 50.0, 0.5),
    Control("brush radius", "emitter", "brush_radius", 0.01, 0.25, 0.005),
    Control("brush strength", "emitter", "brush_strength", 1.0, 200.0, 1.0),
    Control("force", "emitter", "force_strength", 10.0, 500.0, 5.0),
    Control("exposure", "rendering", "exposure", 0.25, 2.0, 0.05),
    Control("bloom", "rendering", "bloom_strength", 0.0, 1.0, 0.05),
)


def apply_control(
    control: Control,
    position: int,
    sim: FluidSolver,
    renderer: DyeRenderer | None,
    preset: Preset,
) -> None:
    """Write a slider position into the preset and push it to its consumer."""
    value = control.to_value(position)
    if control.section == "simulation":
        preset.simulation = replace(preset.simulation, **{control.name: value})
        sim.update_config(preset.simulation)
    elif control.section == "emitter":
        preset.emitter = replace(preset.emitter, **{control.name: value})
    elif control.section == "rendering":
        preset.rendering = replace(preset.rendering, **{control.name: value})
        if renderer is not None:
            renderer.update_config(preset.rendering)
    else:
        raise ValueError(f"Unknown control section {control.section!r}")
    log.debug("%s.%s = %s", control.section, control.name, value)


class ControlPanel:
    def __init__(self, sim: FluidSolver, renderer: DyeRenderer, preset: Preset, window: str = CONTROLS_TITLE) -> None:
        self.sim = sim
        self.renderer = renderer
        self.preset = preset
        self.window = window

    def _current(self, control: Control) -> float:
        return getattr(getattr(self.preset, control.section), control.name)

    def attach(self) -> None:
        cv2.namedWindow(self.window, cv2.WINDOW_NORMAL)
        for control in CONTROLS:
            cv2.createTrackbar(
                control.label,
                self.window,
                control.to_position(self._current(control)),
                control.positions,
                partial(self.on_change, control),
            )

    def on_change(self, control: Control, position: int) -> None:
        # a slider already at the preset value is a no-op
        if control.to_position(self._current(control)) == position:
            return
        apply_control(control, position, self.sim, self.renderer, self.preset)

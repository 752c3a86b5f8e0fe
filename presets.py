"""Simulation/rendering presets and their JSON (de)serialization."""
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

from fluid_sim import SimulationParameters

log = logging.getLogger(__name__)


class PresetError(ValueError):
    """Raised for unreadable preset files or invalid parameter values."""


RENDER_MODES = ("gradient", "emitter", "distortion")


@dataclass
class EmitterParameters:
    brush_radius: float = 0.04
    brush_strength: float = 25.0
    force_strength: float = 250.0


@dataclass
class GradientStop:
    position: float
    color: str


def _aurora_stops() -> list[GradientStop]:
    return [
        GradientStop(0.0, "#04070a"),
        GradientStop(0.35, "#064663"),
        GradientStop(0.7, "#4a90e2"),
        GradientStop(1.0, "#f5f7fa"),
    ]


@dataclass
class RenderingParameters:
    mode: str = "gradient"
    gradient_stops: list[GradientStop] = field(default_factory=_aurora_stops)
    exposure: float = 1.0
    bloom_strength: float = 0.35


@dataclass
class Preset:
    id: str
    name: str
    description: str = ""
    simulation: SimulationParameters = field(default_factory=SimulationParameters)
    rendering: RenderingParameters = field(default_factory=RenderingParameters)
    emitter: EmitterParameters = field(default_factory=EmitterParameters)


DEFAULT_PRESET = Preset(
    id="default",
    name="Aurora Default",
    description="Balanced dye swirl with gentle bloom and medium viscosity.",
)


def validate_simulation(params: SimulationParameters) -> None:
    """Check the ranges the solver assumes; it does no checking itself."""
    problems = []
    if params.resolution <= 0:
        problems.append(f"resolution must be > 0 (got {params.resolution})")
    if params.viscosity < 0:
        problems.append(f"viscosity must be >= 0 (got {params.viscosity})")
    if params.diffusion < 0:
        problems.append(f"diffusion must be >= 0 (got {params.diffusion})")
    if not 0 < params.dissipation <= 1:
        problems.append(f"dissipation must be in (0, 1] (got {params.dissipation})")
    if params.curl_strength < 0:
        problems.append(f"curl_strength must be >= 0 (got {params.curl_strength})")
    if params.pressure_iterations <= 0:
        problems.append(f"pressure_iterations must be > 0 (got {params.pressure_iterations})")
    if problems:
        raise PresetError("; ".join(problems))


def _build(cls, data: dict[str, Any], section: str):
    if not isinstance(data, dict):
        raise PresetError(f"'{section}' must be an object")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise PresetError(f"unknown key(s) in '{section}': {', '.join(unknown)}")
    try:
        return cls(**data)
    except TypeError as exc:
        raise PresetError(f"invalid '{section}': {exc}") from exc


def preset_from_dict(data: dict[str, Any]) -> Preset:
    if not isinstance(data, dict):
        raise PresetError("preset must be a JSON object")
    data = dict(data)
    simulation = _build(SimulationParameters, data.pop("simulation", {}), "simulation")
    emitter = _build(EmitterParameters, data.pop("emitter", {}), "emitter")

    rendering_data = dict(data.pop("rendering", {}))
    stops = rendering_data.pop("gradient_stops", None)
    rendering = _build(RenderingParameters, rendering_data, "rendering")
    if stops is not None:
        rendering.gradient_stops = [_build(GradientStop, s, "gradient_stops") for s in stops]
    if rendering.mode not in RENDER_MODES:
        raise PresetError(f"rendering mode must be one of {', '.join(RENDER_MODES)} (got {rendering.mode!r})")

    validate_simulation(simulation)
    preset = _build(Preset, data, "preset")
    preset.simulation = simulation
    preset.rendering = rendering
    preset.emitter = emitter
    return preset


def next_render_mode(mode: str) -> str:
    """The mode after `mode` in display order, wrapping around."""
    index = RENDER_MODES.index(mode) if mode in RENDER_MODES else -1
    return RENDER_MODES[(index + 1) % len(RENDER_MODES)]


def preset_to_dict(preset: Preset) -> dict[str, Any]:
    return asdict(preset)


def load_preset(path: str | Path) -> Preset:
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise PresetError(f"{path}: malformed JSON ({exc})") from exc
    try:
        preset = preset_from_dict(data)
    except PresetError as exc:
        raise PresetError(f"{path}: {exc}") from exc
    log.info("Loaded preset '%s' from %s", preset.name, path)
    return preset


def save_preset(preset: Preset, path: str | Path) -> None:
    path = Path(path)
    path.write_text(json.dumps(preset_to_dict(preset), indent=2), encoding="utf-8")
    log.info("Saved preset '%s' to %s", preset.name, path)

"""Tests for preset loading, saving and validation."""

import copy
import json
from dataclasses import replace

import pytest

from fluid_sim import SimulationParameters
from presets import (
    DEFAULT_PRESET,
    GradientStop,
    PresetError,
    RENDER_MODES,
    load_preset,
    next_render_mode,
    preset_from_dict,
    preset_to_dict,
    save_preset,
    validate_simulation,
)


def test_default_preset_matches_solver_defaults():
    assert DEFAULT_PRESET.simulation == SimulationParameters()
    assert DEFAULT_PRESET.emitter.brush_radius == pytest.approx(0.04)
    assert DEFAULT_PRESET.emitter.force_strength == pytest.approx(250.0)
    assert [s.position for s in DEFAULT_PRESET.rendering.gradient_stops] == [0.0, 0.35, 0.7, 1.0]


def test_save_then_load_preserves_preset(tmp_path):
    preset = copy.deepcopy(DEFAULT_PRESET)
    preset.simulation = replace(preset.simulation, resolution=96, curl_strength=5.0)
    preset.rendering.gradient_stops = [GradientStop(0.0, "#000000"), GradientStop(1.0, "#ff8800")]
    path = tmp_path / "swirl.json"

    save_preset(preset, path)
    loaded = load_preset(path)

    assert loaded == preset
    assert isinstance(loaded.rendering.gradient_stops[1], GradientStop)


def test_missing_sections_fall_back_to_defaults():
    preset = preset_from_dict({"id": "bare", "name": "Bare", "simulation": {"resolution": 32}})
    assert preset.simulation.resolution == 32
    assert preset.simulation.viscosity == pytest.approx(0.001)
    assert preset.emitter == DEFAULT_PRESET.emitter
    assert preset.rendering == DEFAULT_PRESET.rendering


def test_unknown_keys_are_rejected():
    data = preset_to_dict(DEFAULT_PRESET)
    data["simulation"]["vorticity"] = 3.0
    with pytest.raises(PresetError, match="vorticity"):
        preset_from_dict(data)


def test_missing_identity_is_rejected():
    with pytest.raises(PresetError):
        preset_from_dict({"simulation": {}})


def test_non_object_is_rejected():
    with pytest.raises(PresetError):
        preset_from_dict([1, 2, 3])


def test_malformed_json_names_the_file(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(PresetError, match="broken.json"):
        load_preset(path)


def test_invalid_values_in_file_are_reported(tmp_path):
    data = preset_to_dict(DEFAULT_PRESET)
    data["simulation"]["dissipation"] = 1.5
    path = tmp_path / "hot.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    with pytest.raises(PresetError, match="dissipation"):
        load_preset(path)


def test_validate_lists_every_problem():
    params = SimulationParameters(
        resolution=0,
        viscosity=-1.0,
        diffusion=-1.0,
        dissipation=0.0,
        curl_strength=-2.0,
        pressure_iterations=0,
    )
    with pytest.raises(PresetError) as excinfo:
        validate_simulation(params)
    message = str(excinfo.value)
    for name in ("resolution", "viscosity", "diffusion", "dissipation", "curl_strength", "pressure_iterations"):
        assert name in message


def test_validate_accepts_defaults():
    validate_simulation(SimulationParameters())
    validate_simulation(SimulationParameters(dissipation=1.0, curl_strength=0.0))


def test_render_mode_round_trips(tmp_path):
    preset = copy.deepcopy(DEFAULT_PRESET)
    preset.rendering.mode = "distortion"
    path = tmp_path / "normals.json"

    save_preset(preset, path)

    assert json.loads(path.read_text(encoding="utf-8"))["rendering"]["mode"] == "distortion"
    assert load_preset(path).rendering.mode == "distortion"


def test_unknown_render_mode_is_rejected():
    data = preset_to_dict(DEFAULT_PRESET)
    data["rendering"]["mode"] = "sepia"
    with pytest.raises(PresetError, match="sepia"):
        preset_from_dict(data)


def test_render_modes_cycle_in_order():
    assert DEFAULT_PRESET.rendering.mode == "gradient"
    assert [next_render_mode(m) for m in RENDER_MODES] == ["emitter", "distortion", "gradient"]
    assert next_render_mode("unknown") == "gradient"

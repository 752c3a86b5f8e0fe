"""Pytest configuration and fixtures for the fluid solver tests."""

import sys
from pathlib import Path

import pytest

# Modules live at the repository root
sys.path.insert(0, str(Path(__file__).parent.parent))

from fluid_sim import FluidSolver, SimulationParameters  # noqa: E402


@pytest.fixture
def small_params():
    """A cheap 16x16 grid with every term switched on."""
    return SimulationParameters(
        resolution=16,
        viscosity=0.001,
        diffusion=0.0001,
        dissipation=0.99,
        curl_strength=5.0,
        pressure_iterations=10,
    )


@pytest.fixture
def scenario_params():
    """The default-preset physics on a 64x64 grid."""
    return SimulationParameters(
        resolution=64,
        viscosity=0.001,
        diffusion=0.00001,
        dissipation=0.995,
        curl_strength=20.0,
        pressure_iterations=20,
    )


@pytest.fixture
def solver(small_params):
    return FluidSolver(small_params)

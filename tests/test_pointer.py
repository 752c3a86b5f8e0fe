"""Tests for pointer tracking and its mapping onto solver impulses."""

import cv2
import numpy as np
import pytest

from fluid_sim import FluidSolver
from pointer import PointerController, PointerState, apply_pointer, normalize
from presets import EmitterParameters


def _controller(*times):
    clock = iter((0.0,) + times).__next__
    return PointerController(200, 100, clock=clock)


def test_normalize_flips_y():
    assert normalize(0, 0, 200, 100) == (0.0, 1.0)
    assert normalize(200, 100, 200, 100) == (1.0, 0.0)
    assert normalize(50, 25, 200, 100) == (0.25, 0.75)


def test_press_and_drag_track_velocity():
    pointer = _controller(1.0, 1.5, 2.0)
    pointer.handle_event(cv2.EVENT_LBUTTONDOWN, 50, 25, cv2.EVENT_FLAG_LBUTTON)
    assert pointer.pressed

    pointer.handle_event(cv2.EVENT_MOUSEMOVE, 150, 25, cv2.EVENT_FLAG_LBUTTON)
    state = pointer.state()
    assert state.pressed
    assert (state.x, state.y) == pytest.approx((0.75, 0.75))
    assert state.vx == pytest.approx(200.0)
    assert state.vy == pytest.approx(0.0)

    # moving up the screen is positive y for the solver
    pointer.handle_event(cv2.EVENT_MOUSEMOVE, 150, 5, cv2.EVENT_FLAG_LBUTTON)
    assert pointer.state().vy == pytest.approx(40.0)


def test_release_and_hover_clear_press():
    pointer = _controller(1.0, 2.0, 3.0, 4.0)
    pointer.handle_event(cv2.EVENT_LBUTTONDOWN, 10, 10, cv2.EVENT_FLAG_LBUTTON)
    pointer.handle_event(cv2.EVENT_LBUTTONUP, 10, 10, 0)
    assert not pointer.pressed

    pointer.handle_event(cv2.EVENT_LBUTTONDOWN, 10, 10, cv2.EVENT_FLAG_LBUTTON)
    pointer.handle_event(cv2.EVENT_MOUSEMOVE, 20, 10, 0)
    assert not pointer.pressed


def test_leaving_viewport_releases():
    pointer = _controller(1.0, 2.0)
    pointer.handle_event(cv2.EVENT_LBUTTONDOWN, 10, 10, cv2.EVENT_FLAG_LBUTTON)
    pointer.handle_event(cv2.EVENT_MOUSEMOVE, 250, 10, cv2.EVENT_FLAG_LBUTTON)
    assert not pointer.pressed


def test_apply_pointer_ignores_idle_pointer():
    sim = FluidSolver()
    idle = PointerState(0.5, 0.5, 100.0, 100.0, pressed=False)
    assert not apply_pointer(sim, idle, EmitterParameters())
    assert not apply_pointer(sim, None, EmitterParameters())
    assert not sim.density.any()
    assert not sim.vel_x.any()


def test_apply_pointer_injects_dye_and_force():
    sim = FluidSolver()
    state = PointerState(0.5, 0.5, 400.0, -200.0, pressed=True)
    assert apply_pointer(sim, state, EmitterParameters(), audio_factor=0.5)

    n = sim.resolution
    centre = n // 2
    assert sim.density[centre, centre] == pytest.approx(25 * 1.5 * 0.01)
    assert sim.vel_x[centre, centre] == pytest.approx(100.0)
    assert sim.vel_y[centre, centre] == pytest.approx(-50.0)
    assert np.count_nonzero(sim.vel_x) == 1

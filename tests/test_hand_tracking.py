"""Tests for converting tracked hands into pointer input."""

import pytest

from hand_tracking import HandInfo


def test_pinch_presses_pointer():
    hand = HandInfo(index_tip=(320, 120), pinch_strength=0.8, velocity=(90.0, -30.0), handedness="Right")
    state = hand.to_pointer(640, 480)
    assert state.pressed
    assert state.x == pytest.approx(0.5)
    assert state.y == pytest.approx(0.75)
    assert state.vx == pytest.approx(90.0)
    assert state.vy == pytest.approx(30.0)


def test_open_hand_hovers():
    hand = HandInfo(index_tip=(10, 10), pinch_strength=0.2, velocity=(0.0, 0.0), handedness="Left")
    assert not hand.to_pointer(640, 480).pressed
    assert hand.to_pointer(640, 480, pinch_threshold=0.1).pressed


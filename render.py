"""Turns the solver's dye field into a colour image."""
from __future__ import annotations

from typing import Sequence

import cv2
import numpy as np

from fluid_sim import DyeField
from presets import GradientStop, RenderingParameters

LUT_WIDTH = 256


def parse_hex(color: str) -> tuple[int, int, int]:
    value = color.lstrip("#")
    if len(value) == 3:
        value = "".join(ch * 2 for ch in value)
    if len(value) != 6:
        raise ValueError(f"Expected #rrggbb colour, got {color!r}")
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


def _interpolate_stops(stops: Sequence[GradientStop], t: float) -> np.ndarray:
    left, right = stops[0], stops[-1]
    for a, b in zip(stops, stops[1:]):
        if a.position <= t <= b.position:
            left, right = a, b
            break
    span = (right.position - left.position) or 1.0
    local_t = min(1.0, max(0.0, (t - left.position) / span))
    lo = np.array(parse_hex(left.color), dtype=np.float64)
    hi = np.array(parse_hex(right.color), dtype=np.float64)
    return lo + (hi - lo) * local_t


def build_gradient_lut(stops: Sequence[GradientStop], width: int = LUT_WIDTH) -> np.ndarray:
    """RGB lookup table of shape (width, 3) sampled evenly over [0, 1]."""
    if not stops:
        return np.full((width, 3), 255, dtype=np.uint8)
    if len(stops) == 1:
        return np.tile(np.array(parse_hex(stops[0].color), dtype=np.uint8), (width, 1))
    ordered = sorted(stops, key=lambda s: s.position)
    lut = np.empty((width, 3), dtype=np.uint8)
    for i in range(width):
        lut[i] = np.round(_interpolate_stops(ordered, i / (width - 1)))
    return lut


def _normal_map(grid: np.ndarray) -> np.ndarray:
    """Encode the dye's slope as a BGR normal map, flat areas read (255, 128, 128)."""
    padded = np.pad(grid.astype(np.float64), 1, mode="edge")
    sx = padded[1:-1, 2:] - padded[1:-1, :-2]
    sy = padded[2:, 1:-1] - padded[:-2, 1:-1]
    sz = np.full_like(sx, 0.2)
    length = np.sqrt(sx * sx + sy * sy + sz * sz)
    normal = np.stack((sz, sy, sx), axis=-1) / length[:, :, None]
    return np.clip((normal * 0.5 + 0.5) * 255.0 + 0.5, 0, 255).astype(np.uint8)


class DyeRenderer:
    def __init__(self, rendering: RenderingParameters, size: int = 512) -> None:
        self.size = size
        self.update_config(rendering)

    def update_config(self, rendering: RenderingParameters) -> None:
        self.config = rendering
        # OpenCV expects BGR
        self._lut = build_gradient_lut(rendering.gradient_stops)[:, ::-1].copy()

    def colorize(self, field: DyeField) -> np.ndarray:
        grid = field.as_grid()
        mode = self.config.mode
        if mode == "distortion":
            image = _normal_map(grid)
        else:
            exposure = max(0.0, self.config.exposure)
            values = np.clip(grid * exposure, 0.0, 0.999)
            if mode == "gradient":
                image = self._lut[(values * (LUT_WIDTH - 1)).astype(np.intp)]
            elif mode == "emitter":
                gray = (values * 255.0 + 0.5).astype(np.uint8)
                image = np.repeat(gray[:, :, None], 3, axis=2)
            else:
                raise ValueError(f"Unknown render mode {mode!r}")
        # field row 0 is the bottom of the domain
        return np.ascontiguousarray(image[::-1])

    def render(self, field: DyeField) -> np.ndarray:
        image = cv2.resize(self.colorize(field), (self.size, self.size), interpolation=cv2.INTER_CUBIC)
        bloom = self.config.bloom_strength
        if bloom > 0:
            glow = cv2.GaussianBlur(image, (0, 0), max(1.0, self.size / 64.0))
            image = cv2.addWeighted(image, 1.0, glow, bloom, 0)
        return image

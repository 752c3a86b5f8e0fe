"""Grid-based stable fluid solver driving a scalar dye field."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from math import floor, sqrt

import numpy as np
from numba import njit

log = logging.getLogger(__name__)


@dataclass
class SimulationParameters:
    resolution: int = 128
    viscosity: float = 0.001
    diffusion: float = 0.00001
    dissipation: float = 0.995
    curl_strength: float = 20.0
    pressure_iterations: int = 20


@dataclass
class DyeField:
    """Interior dye concentration, row-major, clamped to [0, 1]."""

    size: int
    data: np.ndarray

    def as_grid(self) -> np.ndarray:
        return self.data.reshape(self.size, self.size)


class Boundary(IntEnum):
    """Which mirroring rule the ghost ring follows for a field."""

    SCALAR = 0
    X_VELOCITY = 1
    Y_VELOCITY = 2


# numba freezes module-level ints as constants inside the kernels
_SCALAR = int(Boundary.SCALAR)
_X_VELOCITY = int(Boundary.X_VELOCITY)
_Y_VELOCITY = int(Boundary.Y_VELOCITY)

CURL_EPSILON = 1e-5


# Fields are (n + 2, n + 2) arrays indexed [y, x]; ring 0 and n + 1 are ghosts.


@njit(cache=True, fastmath=True)
def _set_bnd_numba(b: int, x: np.ndarray, n: int) -> None:
    for i in range(1, n + 1):
        if b == _Y_VELOCITY:
            x[0, i] = -x[1, i]
            x[n + 1, i] = -x[n, i]
        else:
            x[0, i] = x[1, i]
            x[n + 1, i] = x[n, i]

        if b == _X_VELOCITY:
            x[i, 0] = -x[i, 1]
            x[i, n + 1] = -x[i, n]
        else:
            x[i, 0] = x[i, 1]
            x[i, n + 1] = x[i, n]

    x[0, 0] = 0.5 * (x[1, 0] + x[0, 1])
    x[0, n + 1] = 0.5 * (x[1, n + 1] + x[0, n])
    x[n + 1, 0] = 0.5 * (x[n, 0] + x[n + 1, 1])
    x[n + 1, n + 1] = 0.5 * (x[n, n + 1] + x[n + 1, n])


@njit(cache=True, fastmath=True)
def _lin_solve_numba(
    b: int,
    x: np.ndarray,
    x0: np.ndarray,
    a: float,
    c: float,
    iterations: int,
    n: int,
) -> None:
    # Gauss-Seidel: every sweep reads neighbours already written this sweep.
    c_recip = 1.0 / c
    for _ in range(iterations):
        for j in range(1, n + 1):
            for i in range(1, n + 1):
                x[j, i] = (
                    x0[j, i]
                    + a * (
                        x[j, i - 1]
                        + x[j, i + 1]
                        + x[j - 1, i]
                        + x[j + 1, i]
                    )
                ) * c_recip
        _set_bnd_numba(b, x, n)


@njit(cache=True, fastmath=True)
def _diffuse_numba(
    b: int,
    x: np.ndarray,
    x0: np.ndarray,
    rate: float,
    dt: float,
    iterations: int,
    n: int,
) -> None:
    a = dt * rate * n * n
    _lin_solve_numba(b, x, x0, a, 1.0 + 4.0 * a, iterations, n)


@njit(cache=True, fastmath=True)
def _advect_numba(
    b: int,
    d: np.ndarray,
    d0: np.ndarray,
    veloc_x: np.ndarray,
    veloc_y: np.ndarray,
    dt: float,
    n: int,
) -> None:
    dt0 = dt * n
    for j in range(1, n + 1):
        for i in range(1, n + 1):
            x = i - dt0 * veloc_x[j, i]
            y = j - dt0 * veloc_y[j, i]
            if x < 0.5:
                x = 0.5
            elif x > n + 0.5:
                x = n + 0.5
            if y < 0.5:
                y = 0.5
            elif y > n + 0.5:
                y = n + 0.5
            i0 = int(floor(x))
            i1 = i0 + 1
            j0 = int(floor(y))
            j1 = j0 + 1
            s1 = x - i0
            s0 = 1.0 - s1
            t1 = y - j0
            t0 = 1.0 - t1
            d[j, i] = (
                s0 * (t0 * d0[j0, i0] + t1 * d0[j1, i0])
                + s1 * (t0 * d0[j0, i1] + t1 * d0[j1, i1])
            )
    _set_bnd_numba(b, d, n)


@njit(cache=True, fastmath=True)
def _project_numba(
    veloc_x: np.ndarray,
    veloc_y: np.ndarray,
    p: np.ndarray,
    div: np.ndarray,
    iterations: int,
    n: int,
) -> None:
    for j in range(1, n + 1):
        for i in range(1, n + 1):
            div[j, i] = -0.5 * (
                veloc_x[j, i + 1]
                - veloc_x[j, i - 1]
                + veloc_y[j + 1, i]
                - veloc_y[j - 1, i]
            ) / n
            p[j, i] = 0.0
    _set_bnd_numba(_SCALAR, div, n)
    _set_bnd_numba(_SCALAR, p, n)
    _lin_solve_numba(_SCALAR, p, div, 1.0, 4.0, iterations, n)

    for j in range(1, n + 1):
        for i in range(1, n + 1):
            veloc_x[j, i] -= 0.5 * n * (p[j, i + 1] - p[j, i - 1])
            veloc_y[j, i] -= 0.5 * n * (p[j + 1, i] - p[j - 1, i])
    _set_bnd_numba(_X_VELOCITY, veloc_x, n)
    _set_bnd_numba(_Y_VELOCITY, veloc_y, n)


@njit(cache=True, fastmath=True)
def _vorticity_numba(
    veloc_x: np.ndarray,
    veloc_y: np.ndarray,
    curl: np.ndarray,
    epsilon: float,
    dt: float,
    n: int,
) -> None:
    for j in range(1, n + 1):
        for i in range(1, n + 1):
            dv_dx = veloc_y[j, i + 1] - veloc_y[j, i - 1]
            du_dy = veloc_x[j + 1, i] - veloc_x[j - 1, i]
            curl[j, i] = 0.5 * (dv_dx - du_dy)

    # The curl ghost ring is never written and stays at zero.
    for j in range(1, n + 1):
        for i in range(1, n + 1):
            nx = (abs(curl[j, i + 1]) - abs(curl[j, i - 1])) * 0.5
            ny = (abs(curl[j + 1, i]) - abs(curl[j - 1, i])) * 0.5
            length = sqrt(nx * nx + ny * ny) + CURL_EPSILON
            nx /= length
            ny /= length
            force = epsilon * curl[j, i]
            veloc_x[j, i] += ny * -force * dt
            veloc_y[j, i] += nx * force * dt
    _set_bnd_numba(_X_VELOCITY, veloc_x, n)
    _set_bnd_numba(_Y_VELOCITY, veloc_y, n)


def divergence(veloc_x: np.ndarray, veloc_y: np.ndarray) -> np.ndarray:
    """Central-difference divergence of the interior cells, shape (n, n)."""
    n = veloc_x.shape[0] - 2
    return 0.5 * n * (
        veloc_x[1:-1, 2:]
        - veloc_x[1:-1, :-2]
        + veloc_y[2:, 1:-1]
        - veloc_y[:-2, 1:-1]
    )


class FluidSolver:
    """Jos Stam style grid solver advecting a dye field.

    All field arrays are owned by the solver and replaced on resize, so
    callers must go through :meth:`dye_field` instead of keeping references.
    Single-threaded: one caller owns and mutates an instance.
    """

    def __init__(self, params: SimulationParameters | None = None) -> None:
        self.params = params or SimulationParameters()
        self._allocate(self.params.resolution)

    @property
    def resolution(self) -> int:
        return self.n

    def _allocate(self, n: int) -> None:
        self.n = n
        shape = (n + 2, n + 2)
        self.vel_x = np.zeros(shape, dtype=np.float32)
        self.vel_y = np.zeros(shape, dtype=np.float32)
        self.prev_vel_x = np.zeros(shape, dtype=np.float32)
        self.prev_vel_y = np.zeros(shape, dtype=np.float32)
        self.density = np.zeros(shape, dtype=np.float32)
        self.prev_density = np.zeros(shape, dtype=np.float32)
        self.curl = np.zeros(shape, dtype=np.float32)
        self.pressure = np.zeros(shape, dtype=np.float32)
        self.divergence = np.zeros(shape, dtype=np.float32)

    def fields(self) -> dict[str, np.ndarray]:
        return {
            "vel_x": self.vel_x,
            "vel_y": self.vel_y,
            "prev_vel_x": self.prev_vel_x,
            "prev_vel_y": self.prev_vel_y,
            "density": self.density,
            "prev_density": self.prev_density,
            "curl": self.curl,
            "pressure": self.pressure,
            "divergence": self.divergence,
        }

    def warmup(self, iterations: int = 2) -> None:
        """Prime Numba kernels so the first live frame is smooth."""
        scratch = FluidSolver(
            SimulationParameters(
                resolution=8,
                viscosity=self.params.viscosity,
                diffusion=self.params.diffusion,
                dissipation=self.params.dissipation,
                curl_strength=1.0,
                pressure_iterations=1,
            )
        )
        scratch.add_velocity_impulse(0.5, 0.5, 1.0, 1.0, 1.0)
        for _ in range(max(1, iterations)):
            scratch.step(1.0 / 60.0)

    def update_config(self, params: SimulationParameters) -> None:
        if params.resolution != self.n:
            self.params = params
            self.resize(params.resolution)
        else:
            self.params = params

    def resize(self, resolution: int) -> None:
        log.debug("Resizing fluid grid %d -> %d", self.n, resolution)
        self._allocate(resolution)

    def reset(self) -> None:
        self.clear_velocity()
        self.clear_dye()
        self.curl.fill(0.0)

    def clear_dye(self) -> None:
        self.density.fill(0.0)
        self.prev_density.fill(0.0)

    def clear_velocity(self) -> None:
        for field in (self.vel_x, self.vel_y, self.prev_vel_x, self.prev_vel_y):
            field.fill(0.0)
        self.pressure.fill(0.0)
        self.divergence.fill(0.0)

    def step(self, dt: float) -> None:
        p = self.params
        n = self.n
        k = p.pressure_iterations

        # Velocity diffusion starts Gauss-Seidel from the last pressure solve.
        np.copyto(self.prev_vel_x, self.pressure)
        np.copyto(self.prev_vel_y, self.divergence)

        _diffuse_numba(_X_VELOCITY, self.prev_vel_x, self.vel_x, p.viscosity, dt, k, n)
        _diffuse_numba(_Y_VELOCITY, self.prev_vel_y, self.vel_y, p.viscosity, dt, k, n)

        _project_numba(self.prev_vel_x, self.prev_vel_y, self.pressure, self.divergence, k, n)

        _advect_numba(_X_VELOCITY, self.vel_x, self.prev_vel_x, self.prev_vel_x, self.prev_vel_y, dt, n)
        _advect_numba(_Y_VELOCITY, self.vel_y, self.prev_vel_y, self.prev_vel_x, self.prev_vel_y, dt, n)

        if p.curl_strength > 0:
            _vorticity_numba(self.vel_x, self.vel_y, self.curl, p.curl_strength, dt, n)

        _project_numba(self.vel_x, self.vel_y, self.pressure, self.divergence, k, n)

        _diffuse_numba(_SCALAR, self.prev_density, self.density, p.diffusion, dt, k, n)
        _advect_numba(_SCALAR, self.density, self.prev_density, self.vel_x, self.vel_y, dt, n)
        self.density *= p.dissipation

    def add_impulse(
        self,
        x: float,
        y: float,
        radius: float,
        strength: float,
        audio_factor: float = 0.0,
    ) -> None:
        """Splat dye around normalized (x, y) with a linear radial falloff.

        Centres outside the unit square are ignored, as are cells of the
        splat that land on the ghost ring or beyond.
        """
        if not (0.0 <= x <= 1.0 and 0.0 <= y <= 1.0):
            return
        n = self.n
        r = max(int(floor(radius * n)), 1)
        cx = int(floor(x * n))
        cy = int(floor(y * n))
        impulse = strength * (1.0 + audio_factor)

        offsets = np.arange(-r, r + 1)
        dx, dy = np.meshgrid(offsets, offsets)
        px = cx + dx
        py = cy + dy
        weight = 1.0 - np.sqrt(dx * dx + dy * dy) / r
        mask = (px >= 1) & (px <= n) & (py >= 1) & (py <= n) & (weight > 0.0)
        self.density[py[mask], px[mask]] += impulse * weight[mask] * 0.01

    def add_velocity_impulse(
        self,
        x: float,
        y: float,
        vx: float,
        vy: float,
        force_strength: float,
    ) -> None:
        if not (0.0 <= x <= 1.0 and 0.0 <= y <= 1.0):
            return
        n = self.n
        px = int(floor(x * n))
        py = int(floor(y * n))
        if px < 1 or px > n or py < 1 or py > n:
            return
        self.vel_x[py, px] += (vx / 1000.0) * force_strength
        self.vel_y[py, px] += (vy / 1000.0) * force_strength

    def dye_field(self) -> DyeField:
        n = self.n
        data = np.clip(self.density[1 : n + 1, 1 : n + 1], 0.0, 1.0).reshape(-1)
        return DyeField(size=n, data=data)

    def max_divergence(self) -> float:
        return float(np.abs(divergence(self.vel_x, self.vel_y)).max())

    def stats(self) -> dict[str, float]:
        n = self.n
        speed = np.hypot(self.vel_x[1 : n + 1, 1 : n + 1], self.vel_y[1 : n + 1, 1 : n + 1])
        return {
            "total_dye": float(self.density[1 : n + 1, 1 : n + 1].sum(dtype=np.float64)),
            "max_speed": float(speed.max()),
            "max_divergence": self.max_divergence(),
        }

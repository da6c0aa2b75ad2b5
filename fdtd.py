"""
FDTD synthesis of vibrating strings (1D) and membranes (2D).

The wave equation is integrated with the explicit leapfrog scheme

    u[n+1] = c0 * (sum of axis neighbours of u[n]) + c1 * u[n] - c2 * u[n-1]

on a grid whose clamped cells (Dirichlet boundary) are never updated. The
displacement is read once per step at a continuous listening position and the
resulting waveform is peak-normalised.

Mask polarity: nonzero / True = simulated cell, zero / False = clamped cell.
"""

import math
import numpy as np
from typing import Sequence, Tuple, Union

Coordinate = Union[float, Sequence[float]]
Bounds = Tuple[Tuple[int, int], ...]


class ShapeMismatchError(ValueError):
    """Displacement grids and/or boundary mask do not share a shape."""


class SimulationParams:
    """Stencil coefficients derived from the Courant number.

    Stability of the leapfrog scheme requires courant <= 1 / sqrt(dimensions).
    The integrator never checks this, so this is the place that does.
    """

    def __init__(self, courant: float, dimensions: int = 2, decay: float = 1.0):
        """Initialize simulation parameters.

        Args:
            courant: Courant number (lambda)
            dimensions: Number of spatial dimensions (1 or 2)
            decay: Weight of the previous time step, 1.0 for a lossless medium
        """
        if dimensions not in (1, 2):
            raise ValueError(f"Unsupported number of dimensions: {dimensions}")
        if courant <= 0:
            raise ValueError(f"Courant number must be positive, got {courant}")
        # small tolerance so that courant = 1 / sqrt(2) is accepted however it was computed
        if courant * math.sqrt(dimensions) > 1.0 + 1e-12:
            raise ValueError("CFL condition violated")

        self.courant = courant
        self.dimensions = dimensions
        self.decay = decay

        lambda_sq = courant * courant
        self.c0 = lambda_sq
        self.c1 = 2.0 - 2.0 * dimensions * lambda_sq
        self.c2 = decay

    @property
    def coefficients(self) -> Tuple[float, float, float]:
        return self.c0, self.c1, self.c2


def dirichlet_mask(shape) -> np.ndarray:
    """Mask with every cell active except a clamped ring one cell thick."""
    mask = np.zeros(shape, dtype=bool)
    mask[(slice(1, -1),) * mask.ndim] = True
    return mask


def active_region(mask) -> Bounds:
    """Bounding box of the active interior cells of a mask.

    The outermost ring is ignored: the stencil needs a neighbour on every side,
    so those cells are never updated.

    Args:
        mask: Boundary mask of any dimensionality

    Returns:
        One inclusive (lo, hi) index pair per axis. When no interior cell is
        active every pair is (1, 0), which makes range(lo, hi + 1) empty.
    """
    mask = np.asarray(mask) != 0
    interior = mask[(slice(1, -1),) * mask.ndim]

    if not interior.any():
        return tuple((1, 0) for _ in range(mask.ndim))

    bounds = []
    for axis in range(mask.ndim):
        others = tuple(a for a in range(mask.ndim) if a != axis)
        hits = np.flatnonzero(interior.any(axis=others))
        # +1 shifts interior indices back to grid indices
        bounds.append((int(hits[0]) + 1, int(hits[-1]) + 1))
    return tuple(bounds)


def sample_1d(grid: np.ndarray, w: float) -> float:
    """Linearly interpolate a 1D grid at normalised position w in [0, 1]."""
    if grid.shape[0] < 2:
        raise ValueError("Grid too small to sample")

    x = w * (grid.shape[0] - 2)
    x0 = int(math.floor(x))
    a = x - x0
    return float((1 - a) * grid[x0] + a * grid[x0 + 1])


def sample_2d(grid: np.ndarray, w: Sequence[float]) -> float:
    """Bilinearly interpolate a 2D grid at normalised position w in [0, 1]^2.

    The (size - 2) scaling keeps x0 + 1 and y0 + 1 inside the grid.
    """
    xs, ys = grid.shape
    if xs < 2 or ys < 2:
        raise ValueError("Grid too small to sample")

    x = w[0] * (xs - 2)
    y = w[1] * (ys - 2)
    x0 = int(math.floor(x))
    y0 = int(math.floor(y))
    a = x - x0
    b = y - y0

    return float(
        grid[x0, y0] * (1 - a) * (1 - b) +
        grid[x0, y0 + 1] * (1 - a) * b +
        grid[x0 + 1, y0] * a * (1 - b) +
        grid[x0 + 1, y0 + 1] * a * b
    )


def sample(grid: np.ndarray, w: Coordinate) -> float:
    """Sample a 1D or 2D grid at a normalised coordinate."""
    if grid.ndim == 1:
        return sample_1d(grid, w)
    if grid.ndim == 2:
        return sample_2d(grid, w)
    raise ValueError(f"Cannot sample a {grid.ndim}-dimensional grid")


def peak_normalize(waveform: np.ndarray) -> np.ndarray:
    """Scale a waveform so that its peak absolute value is 1.

    A silent (all-zero) waveform is returned unchanged.
    """
    waveform = np.asarray(waveform, dtype=float)
    if waveform.size == 0:
        return waveform

    max_val = np.max(np.abs(waveform))
    if max_val == 0:
        return waveform
    return waveform / max_val


class FDTDGrid:
    """Pair of displacement buffers stepped in place with the leapfrog stencil.

    p_0 holds the previous time step and p_1 the current one. Each step writes
    the next state into p_0 and then swaps the two references, so no third
    buffer is ever allocated.
    """

    def __init__(self, u_prev, u_curr, c0: float, c1: float, c2: float, mask=None):
        """Initialize the grid.

        Float64 arrays are used directly and mutated in place; anything else is
        converted to a fresh float64 array. Once the shapes are validated the
        clamped cells of both grids are set to 0 and stay there.

        Args:
            u_prev: Displacement at t = 0
            u_curr: Displacement at t = 1
            c0: Weight of the neighbour sum
            c1: Weight of the cell itself
            c2: Weight of the cell at the previous time step
            mask: Optional boundary mask (nonzero = active). None simulates the
                whole interior.
        """
        p_0 = np.asarray(u_prev, dtype=float)
        p_1 = np.asarray(u_curr, dtype=float)

        if p_0.shape != p_1.shape:
            raise ShapeMismatchError(f"u_prev {p_0.shape} and u_curr {p_1.shape} differ in shape")
        if p_0.ndim not in (1, 2):
            raise ValueError(f"Expected a 1D or 2D grid, got {p_0.ndim} dimensions")

        if mask is None:
            active = dirichlet_mask(p_0.shape)
        else:
            active = np.asarray(mask) != 0
            if active.shape != p_0.shape:
                raise ShapeMismatchError(f"mask {active.shape} and grids {p_0.shape} differ in shape")

        if np.may_share_memory(p_0, p_1):
            p_0 = p_0.copy()

        # clamped cells are a rigid boundary in both time steps
        p_0[~active] = 0.0
        p_1[~active] = 0.0

        self.p_0 = p_0
        self.p_1 = p_1
        self.c0 = c0
        self.c1 = c1
        self.c2 = c2
        self.mask = active

        self.region = active_region(active)
        self.window = tuple(slice(lo, hi + 1) for lo, hi in self.region)
        self.window_mask = active[self.window]
        self.has_active_cells = bool(self.window_mask.any())

        self.step_count = 0

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.p_1.shape

    @property
    def ndim(self) -> int:
        return self.p_1.ndim

    def _neighbour_sum(self, p: np.ndarray) -> np.ndarray:
        """Sum of the 2 * ndim axis neighbours of every cell in the window."""
        total = None
        for axis, s in enumerate(self.window):
            below = list(self.window)
            above = list(self.window)
            below[axis] = slice(s.start - 1, s.stop - 1)
            above[axis] = slice(s.start + 1, s.stop + 1)
            pair = p[tuple(below)] + p[tuple(above)]
            total = pair if total is None else total + pair
        return total

    def step(self):
        """Perform one FDTD time step."""
        if self.has_active_cells:
            window = self.window
            p_next = self.p_0[window]
            update = (
                self.c0 * self._neighbour_sum(self.p_1)
                + self.c1 * self.p_1[window]
                - self.c2 * p_next
            )
            # clamped cells inside the bounding box keep their value
            np.copyto(p_next, update, where=self.window_mask)

        self.p_0, self.p_1 = self.p_1, self.p_0
        self.step_count += 1

    def run(self, steps: int):
        """Run the simulation for the given number of steps."""
        for _ in range(steps):
            self.step()

    def sample(self, w: Coordinate) -> float:
        """Sample the current displacement at a normalised coordinate."""
        return sample(self.p_1, w)


def fdtd_waveform(u_prev, u_curr, c0: float, c1: float, c2: float, T: int, w: Coordinate,
                  mask=None, normalize: bool = True) -> np.ndarray:
    """Generate a waveform with an FDTD scheme of any supported dimensionality.

    Stability is the caller's responsibility (see SimulationParams); an
    unstable choice of coefficients diverges silently.

    Args:
        u_prev: Displacement grid at t = 0
        u_curr: Displacement grid at t = 1, usually the excitation
        c0: Weight of the neighbour sum (lambda^2)
        c1: Weight of the cell itself (2 - 2 * dimensions * lambda^2)
        c2: Weight of the previous time step (decay)
        T: Length of the waveform in samples
        w: Listening position, normalised to [0, 1] per axis
        mask: Optional boundary mask (nonzero = active)
        normalize: Scale the result to a peak of 1

    Returns:
        Waveform of exactly T samples

    Raises:
        ShapeMismatchError: if the grids or the mask differ in shape
    """
    if T < 1:
        raise ValueError(f"Waveform length must be positive, got {T}")

    grid = FDTDGrid(u_prev, u_curr, c0, c1, c2, mask=mask)

    waveform = np.zeros(T)
    waveform[0] = sample(grid.p_0, w)
    if T > 1:
        waveform[1] = grid.sample(w)

    for t in range(2, T):
        grid.step()
        waveform[t] = grid.sample(w)

    if normalize:
        return peak_normalize(waveform)
    return waveform


def fdtd_waveform_1d(u_prev, u_curr, c0: float, c1: float, c2: float, T: int, w: float,
                     normalize: bool = True) -> np.ndarray:
    """Waveform of a string clamped at both ends."""
    if np.ndim(u_prev) != 1 or np.ndim(u_curr) != 1:
        raise ValueError("fdtd_waveform_1d expects 1D grids")
    return fdtd_waveform(u_prev, u_curr, c0, c1, c2, T, w, normalize=normalize)


def fdtd_waveform_2d(u_prev, u_curr, mask, c0: float, c1: float, c2: float, T: int,
                     w: Sequence[float], normalize: bool = True) -> np.ndarray:
    """Waveform of a membrane whose shape is given by a boundary mask."""
    if np.ndim(u_prev) != 2 or np.ndim(u_curr) != 2:
        raise ValueError("fdtd_waveform_2d expects 2D grids")
    return fdtd_waveform(u_prev, u_curr, c0, c1, c2, T, w, mask=mask, normalize=normalize)

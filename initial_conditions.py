"""
Initial conditions for FDTD membrane/string simulations.

Excitation fields used to seed the simulation at the second time step.
Positions and widths are given in normalised coordinates: cell i of an axis
with n cells sits at i / (n - 1), so a centre of 0.5 always hits the middle.

See Bilbao, S. (2009) Numerical Sound Synthesis, pp.121 and 306.
"""

from typing import Tuple, Union
import numpy as np

Size = Union[int, Tuple[int, int]]


def axis_coordinates(n: int) -> np.ndarray:
    """Normalised positions of the n cells along one axis."""
    return np.arange(n) / max(n - 1, 1)


def raised_cosine(center, sigma: float, size: Size) -> np.ndarray:
    """Raised cosine excitation.

    Args:
        center: Peak position, a float for 1D or an (x, y) pair for 2D
        sigma: Half-width of the bump (normalised)
        size: Number of cells (int) or grid shape (pair)

    Returns:
        Field equal to 0.5 * (1 + cos(pi * d / sigma)) where the distance d
        from the centre is <= sigma, and 0 elsewhere. sigma <= 0 gives an
        all-zero field.
    """
    if np.ndim(size) == 0:
        distance = np.abs(axis_coordinates(int(size)) - center)
    else:
        xs, ys = size
        cx, cy = center
        dx = axis_coordinates(xs)[:, None] - cx
        dy = axis_coordinates(ys)[None, :] - cy
        distance = np.sqrt(dx * dx + dy * dy)

    field = np.zeros(distance.shape)
    if sigma <= 0:
        return field

    inside = distance <= sigma
    field[inside] = 0.5 * (1.0 + np.cos(np.pi * distance[inside] / sigma))
    return field


def _triangle_1d(n: int, center: float, left: float, right: float) -> np.ndarray:
    x = axis_coordinates(n)
    field = np.zeros(n)

    if left > 0:
        rising = (x >= center - left) & (x <= center)
        field[rising] = (x[rising] - (center - left)) / left
    if right > 0:
        falling = (x > center) & (x <= center + right)
        field[falling] = 1.0 - (x[falling] - center) / right

    # the peak is exactly 1 regardless of rounding in the ramps
    field[x == center] = 1.0
    return field


def raised_triangle(center, left_extent, right_extent, size: Size) -> np.ndarray:
    """Piecewise-linear (plucked) excitation.

    In 1D the field is 0 outside [center - left_extent, center + right_extent],
    rises linearly to 1 at the centre and falls linearly back to 0.

    In 2D every argument is a per-axis pair and the field is the outer product
    of the two 1D triangles, so the shape is a pyramid, not a cone.

    Args:
        center: Peak position (float, or (x, y) pair)
        left_extent: Width of the rising ramp (float, or pair)
        right_extent: Width of the falling ramp (float, or pair)
        size: Number of cells (int) or grid shape (pair)

    Returns:
        The excitation field
    """
    if np.ndim(size) == 0:
        return _triangle_1d(int(size), center, left_extent, right_extent)

    xs, ys = size
    tri_x = _triangle_1d(xs, center[0], left_extent[0], right_extent[0])
    tri_y = _triangle_1d(ys, center[1], left_extent[1], right_extent[1])
    return np.outer(tri_x, tri_y)

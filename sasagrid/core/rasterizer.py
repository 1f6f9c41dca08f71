# sasagrid/core/rasterizer.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np

__all__ = ["GridConfig", "point_area", "voxel_indices", "rasterize_points"]


@dataclass(frozen=True)
class GridConfig:
    """Voxel counts along x, y, z and a uniform spacing.

    Voxel ``(ix, iy, iz)`` lives at flat offset ``iz*cy*cx + iy*cx + ix``
    (x fastest), which is the layout downstream FFT consumers expect.
    """

    counts: Tuple[int, int, int]
    spacing: float

    @classmethod
    def from_values(cls, counts: Sequence[int], spacing: float) -> "GridConfig":
        return cls(tuple(int(c) for c in counts), float(spacing))

    @property
    def n_voxels(self) -> int:
        cx, cy, cz = self.counts
        return cx * cy * cz

    @property
    def shape(self) -> Tuple[int, int, int]:
        """Shape of a single frame grid reshaped as (z, y, x)."""
        cx, cy, cz = self.counts
        return (cz, cy, cx)


def point_area(radius: float, n_sphere_points: int) -> float:
    """Surface area represented by one sample point on a sphere of ``radius``."""
    return 4.0 * np.pi / n_sphere_points * radius * radius


def _round_half_away(values: np.ndarray) -> np.ndarray:
    return np.copysign(np.floor(np.abs(values) + 0.5), values)


def voxel_indices(points: np.ndarray, grid: GridConfig) -> Tuple[np.ndarray, np.ndarray]:
    """Snap points to the nearest grid node.

    Args:
        points: (M, 3) absolute coordinates
        grid: Grid geometry

    Returns:
        Tuple of (flat_indices, inside) where ``inside`` marks points whose
        voxel lies within the grid; ``flat_indices`` is only meaningful there.
    """
    ijk = _round_half_away(points / grid.spacing).astype(np.int64)
    counts = np.asarray(grid.counts, dtype=np.int64)
    inside = np.all((ijk >= 0) & (ijk < counts), axis=1)

    cx, cy, _ = grid.counts
    flat = ijk[:, 2] * (cy * cx) + ijk[:, 1] * cx + ijk[:, 0]
    return flat, inside


def rasterize_points(
    points: np.ndarray,
    exposed: np.ndarray,
    radius: float,
    n_sphere_points: int,
    grid: GridConfig,
    out: np.ndarray,
) -> int:
    """Accumulate the area of exposed points into a flat frame grid.

    Points that snap outside the grid are dropped. Several points may land in
    the same voxel; their contributions add up.

    Args:
        points: (N, 3) centered sphere points of one atom
        exposed: (N,) bool classification of ``points``
        radius: Inflated radius of the atom
        n_sphere_points: Sphere sampling density N
        grid: Grid geometry
        out: Flat (n_voxels,) grid of the current frame, updated in place

    Returns:
        Number of points deposited inside the grid
    """
    if not exposed.any():
        return 0

    flat, inside = voxel_indices(points[exposed], grid)
    if not inside.any():
        return 0

    value = out.dtype.type(point_area(radius, n_sphere_points))
    np.add.at(out, flat[inside], value)
    return int(inside.sum())

# sasagrid/core/sphere_points.py
from __future__ import annotations

import numpy as np

__all__ = ["generate_sphere_points"]


def generate_sphere_points(n_points: int) -> np.ndarray:
    """Distribute points on the unit sphere with the golden-section spiral.

    Points are laid out on successive latitudes from the south pole upwards,
    each rotated by the golden angle from its predecessor. The result depends
    only on ``n_points`` and is read-only, so one set can be shared by every
    frame and worker.

    Args:
        n_points: Number of points to generate (must be positive)

    Returns:
        (n_points, 3) float64 array of unit vectors
    """
    if n_points <= 0:
        raise ValueError(f"n_points must be positive, got {n_points}")

    index = np.arange(n_points, dtype=np.float64)
    offset = 2.0 / n_points
    increment = np.pi * (3.0 - np.sqrt(5.0))

    y = index * offset - 1.0 + (offset / 2.0)
    r = np.sqrt(np.maximum(0.0, 1.0 - y * y))
    phi = index * increment

    points = np.empty((n_points, 3), dtype=np.float64)
    points[:, 0] = np.cos(phi) * r
    points[:, 1] = y
    points[:, 2] = np.sin(phi) * r

    points.setflags(write=False)
    return points

# sasagrid/core/accessibility.py
from __future__ import annotations

import numpy as np
from numba import njit

from ..exceptions import ResourceExhaustedError

__all__ = [
    "CenteredPointScratch",
    "center_sphere_points",
    "classify_points",
    "classify_points_linear",
]


class CenteredPointScratch:
    """Per-worker buffers for one atom's translated sphere points.

    ``points`` holds the sample points scaled to the atom radius and moved to
    its center; ``exposed`` holds the classification of each point.
    """

    def __init__(self, n_sphere_points: int) -> None:
        try:
            self.points = np.empty((n_sphere_points, 3), dtype=np.float64)
            self.exposed = np.empty(n_sphere_points, dtype=np.bool_)
        except MemoryError as e:
            raise ResourceExhaustedError("centered sphere point", (n_sphere_points, 3)) from e
        self.n_sphere_points = n_sphere_points


def center_sphere_points(
    center: np.ndarray,
    radius: float,
    sphere_points: np.ndarray,
    out: np.ndarray,
) -> np.ndarray:
    """Scale unit sphere points by ``radius`` and translate them to ``center``."""
    np.multiply(sphere_points, radius, out=out)
    out += center
    return out


@njit(cache=True)
def _classify_rotating(points, positions, radii, neighbors, exposed):
    n_neighbors = neighbors.shape[0]
    n_exposed = 0
    k_closest = 0

    for p in range(points.shape[0]):
        px = points[p, 0]
        py = points[p, 1]
        pz = points[p, 2]
        is_exposed = True

        # Resume at the last occluder, wrapping around the list once
        for k in range(k_closest, k_closest + n_neighbors):
            k_prime = k % n_neighbors
            j = neighbors[k_prime]
            dx = px - positions[j, 0]
            dy = py - positions[j, 1]
            dz = pz - positions[j, 2]
            r = radii[j]
            if dx * dx + dy * dy + dz * dz < r * r:
                k_closest = k_prime
                is_exposed = False
                break

        exposed[p] = is_exposed
        if is_exposed:
            n_exposed += 1

    return n_exposed


def classify_points(
    points: np.ndarray,
    positions: np.ndarray,
    radii: np.ndarray,
    neighbors: np.ndarray,
    exposed: np.ndarray,
) -> int:
    """Mark each sphere point as exposed or occluded by a neighbor.

    A point is occluded when it lies strictly inside any neighbor's inflated
    sphere. The neighbor scan for each point resumes at the neighbor that
    occluded the previous point, so runs of points behind the same atom are
    rejected after a single distance test. Every neighbor is still visited
    before a point is declared exposed, so the outcome equals
    :func:`classify_points_linear`.

    Args:
        points: (N, 3) sphere points already centered on the atom
        positions: (n_atoms, 3) frame coordinates
        radii: (n_atoms,) probe-inflated radii
        neighbors: Neighbor indices of the atom, ascending
        exposed: (N,) bool output buffer

    Returns:
        Number of exposed points
    """
    return int(_classify_rotating(points, positions, radii, neighbors, exposed))


def classify_points_linear(
    points: np.ndarray,
    positions: np.ndarray,
    radii: np.ndarray,
    neighbors: np.ndarray,
) -> np.ndarray:
    """Reference classification: test every point against every neighbor.

    Returns:
        (N,) bool array, True where the point is exposed
    """
    if len(neighbors) == 0:
        return np.ones(len(points), dtype=bool)

    centers = positions[neighbors]
    sq_dist = ((points[:, np.newaxis, :] - centers[np.newaxis, :, :]) ** 2).sum(axis=2)
    occluded = (sq_dist < radii[neighbors][np.newaxis, :] ** 2).any(axis=1)
    return ~occluded

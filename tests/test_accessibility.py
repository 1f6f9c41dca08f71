# tests/test_accessibility.py
"""Test point occlusion with the rotating neighbor scan."""

import numpy as np
import pytest

from sasagrid.core.accessibility import (
    CenteredPointScratch,
    center_sphere_points,
    classify_points,
    classify_points_linear,
)
from sasagrid.core.neighbors import NeighborScratch, find_neighbors
from sasagrid.core.sphere_points import generate_sphere_points


def _classify(atom, coords, radii, n_points=200):
    sphere = generate_sphere_points(n_points)
    scratch = CenteredPointScratch(n_points)
    neighbors = find_neighbors(atom, coords, radii, NeighborScratch(len(coords)))
    center_sphere_points(coords[atom], radii[atom], sphere, scratch.points)
    n_exposed = classify_points(scratch.points, coords, radii, neighbors, scratch.exposed)
    return scratch, neighbors, n_exposed


def test_center_sphere_points():
    sphere = generate_sphere_points(20)
    out = np.empty((20, 3))
    center = np.array([1.0, -2.0, 3.0])

    center_sphere_points(center, 2.5, sphere, out)

    assert np.allclose(np.linalg.norm(out - center, axis=1), 2.5)


def test_no_neighbors_all_exposed():
    coords = np.array([[0.0, 0.0, 0.0]])
    radii = np.array([2.0])

    scratch, neighbors, n_exposed = _classify(0, coords, radii)

    assert len(neighbors) == 0
    assert n_exposed == 200
    assert scratch.exposed.all()


def test_enclosed_atom_fully_occluded():
    coords = np.array([[0.0, 0.0, 0.0], [0.5, 0.0, 0.0]])
    radii = np.array([1.0, 3.0])

    scratch, _, n_exposed = _classify(0, coords, radii)

    assert n_exposed == 0
    assert not scratch.exposed.any()


def test_partial_overlap_occludes_facing_side():
    coords = np.array([[0.0, 0.0, 0.0], [2.0, 0.0, 0.0]])
    radii = np.array([1.5, 1.5])

    scratch, _, n_exposed = _classify(0, coords, radii)

    assert 0 < n_exposed < 200
    # Occluded points face the neighbor
    assert np.all(scratch.points[~scratch.exposed, 0] > 0)


def test_rotating_scan_matches_linear_scan(rng):
    """Resuming at the last occluder never changes the classification."""
    for _ in range(20):
        n_atoms = int(rng.integers(2, 15))
        coords = rng.uniform(0.0, 6.0, size=(n_atoms, 3))
        radii = rng.uniform(1.0, 3.0, size=n_atoms)

        for atom in range(n_atoms):
            scratch, neighbors, n_exposed = _classify(atom, coords, radii, n_points=150)
            expected = classify_points_linear(scratch.points, coords, radii, neighbors)

            assert np.array_equal(scratch.exposed, expected)
            assert n_exposed == expected.sum()


@pytest.mark.parametrize("n_neighbors", [0, 1, 2, 5])
def test_rotating_scan_matches_linear_small_lists(rng, n_neighbors):
    coords = np.vstack([np.zeros((1, 3)), rng.normal(0.0, 1.2, size=(n_neighbors, 3))])
    radii = np.full(n_neighbors + 1, 1.5)
    points = center_sphere_points(coords[0], 1.5, generate_sphere_points(300), np.empty((300, 3)))
    neighbors = np.arange(1, n_neighbors + 1, dtype=np.int64)
    exposed = np.empty(300, dtype=bool)

    n_exposed = classify_points(points, coords, radii, neighbors, exposed)

    expected = classify_points_linear(points, coords, radii, neighbors)
    assert np.array_equal(exposed, expected)
    assert n_exposed == expected.sum()

# tests/test_rasterizer.py
"""Test snapping exposed points onto the voxel grid."""

import numpy as np
import pytest

from sasagrid.core.rasterizer import GridConfig, point_area, rasterize_points, voxel_indices


def test_grid_config():
    grid = GridConfig.from_values([4, 3, 2], 0.5)

    assert grid.counts == (4, 3, 2)
    assert grid.n_voxels == 24
    assert grid.shape == (2, 3, 4)


def test_point_area():
    assert point_area(2.0, 100) == pytest.approx(4 * np.pi * 4.0 / 100)


def test_flat_index_is_x_fastest():
    grid = GridConfig((4, 3, 2), 0.5)
    points = np.array([[1.0, 0.5, 0.5]])  # voxel (2, 1, 1)

    flat, inside = voxel_indices(points, grid)

    assert inside[0]
    assert flat[0] == 1 * 3 * 4 + 1 * 4 + 2


def test_rounds_to_nearest_node():
    grid = GridConfig((10, 10, 10), 0.5)
    points = np.array([
        [0.24, 0.0, 0.0],   # 0.48 -> 0
        [0.26, 0.0, 0.0],   # 0.52 -> 1
        [0.25, 0.0, 0.0],   # halfway rounds away from zero -> 1
        [0.74, 0.0, 0.0],   # 1.48 -> 1
    ])

    flat, inside = voxel_indices(points, grid)

    assert inside.all()
    assert list(flat) == [0, 1, 1, 1]


def test_points_outside_grid_flagged():
    grid = GridConfig((4, 3, 2), 1.0)
    points = np.array([
        [-0.6, 0.0, 0.0],   # rounds to -1
        [-0.4, 0.0, 0.0],   # rounds to 0, inside
        [4.0, 0.0, 0.0],    # ix == countsX
        [0.0, 3.0, 0.0],
        [0.0, 0.0, 2.0],
        [3.0, 2.0, 1.0],    # last voxel
    ])

    _, inside = voxel_indices(points, grid)

    assert list(inside) == [False, True, False, False, False, True]


def test_rasterize_accumulates_and_clips():
    grid = GridConfig((4, 4, 4), 1.0)
    points = np.array([
        [1.0, 1.0, 1.0],
        [1.1, 0.9, 1.0],    # same voxel as above
        [2.0, 1.0, 1.0],
        [9.0, 9.0, 9.0],    # outside
        [3.0, 3.0, 3.0],    # occluded
    ])
    exposed = np.array([True, True, True, True, False])
    out = np.zeros(grid.n_voxels, dtype=np.float32)

    deposited = rasterize_points(points, exposed, 1.5, 10, grid, out)

    value = np.float32(point_area(1.5, 10))
    assert deposited == 3
    assert out[1 * 16 + 1 * 4 + 1] == pytest.approx(2 * value)
    assert out[1 * 16 + 1 * 4 + 2] == pytest.approx(value)
    assert out[3 * 16 + 3 * 4 + 3] == 0
    assert out.sum() == pytest.approx(3 * value)


def test_rasterize_nothing_exposed():
    grid = GridConfig((2, 2, 2), 1.0)
    out = np.zeros(grid.n_voxels, dtype=np.float32)

    deposited = rasterize_points(np.zeros((3, 3)), np.zeros(3, dtype=bool), 1.0, 3, grid, out)

    assert deposited == 0
    assert not out.any()

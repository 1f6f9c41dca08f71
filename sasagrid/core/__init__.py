"""
Core Shrake-Rupley kernels for accessible-surface density grids.

- Golden-spiral sphere sampling
- Neighbor discovery and point occlusion tests
- Voxel rasterization
- Frame scheduling across worker processes
"""

from .accessibility import (
    CenteredPointScratch,
    center_sphere_points,
    classify_points,
    classify_points_linear,
)
from .frame_scheduler import (
    FrameScheduler,
    SASAGridParams,
    WorkerScratch,
    compute_atom_areas,
    compute_frame_areas,
    compute_frame_grid,
    compute_sasa_grids,
    validate_inputs,
)
from .neighbors import NeighborScratch, find_neighbors
from .rasterizer import GridConfig, point_area, rasterize_points, voxel_indices
from .sphere_points import generate_sphere_points

__all__ = [
    "generate_sphere_points",
    "NeighborScratch",
    "find_neighbors",
    "CenteredPointScratch",
    "center_sphere_points",
    "classify_points",
    "classify_points_linear",
    "GridConfig",
    "point_area",
    "voxel_indices",
    "rasterize_points",
    "SASAGridParams",
    "WorkerScratch",
    "FrameScheduler",
    "validate_inputs",
    "compute_frame_grid",
    "compute_frame_areas",
    "compute_sasa_grids",
    "compute_atom_areas",
]

"""
sasagrid: Shrake-Rupley accessible surface rasterized onto voxel grids.

For every frame of a trajectory, the accessible surface of each selected atom
is sampled on its probe-inflated sphere and accumulated as area density on a
shared 3D grid, ready for FFT-based correlation downstream.
"""

from .__version__ import __version__, get_version
from .core.frame_scheduler import (
    FrameScheduler,
    SASAGridParams,
    compute_atom_areas,
    compute_sasa_grids,
)
from .core.rasterizer import GridConfig
from .core.sphere_points import generate_sphere_points
from .exceptions import (
    DegenerateAtomsError,
    InvalidConfigurationError,
    ResourceExhaustedError,
    SASAGridError,
    WorkerFailedError,
)


__all__ = [
    "__version__",
    "get_version",
    "compute_sasa_grids",
    "compute_atom_areas",
    "generate_sphere_points",
    "GridConfig",
    "SASAGridParams",
    "FrameScheduler",
    "SASAGridError",
    "InvalidConfigurationError",
    "DegenerateAtomsError",
    "ResourceExhaustedError",
    "WorkerFailedError",
]

# sasagrid/core/frame_scheduler.py
from __future__ import annotations

import logging
import multiprocessing as mp
import queue
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Sequence, Tuple, Union

import numpy as np
from tqdm import tqdm

from ..exceptions import (
    DegenerateAtomsError,
    InvalidConfigurationError,
    ResourceExhaustedError,
    SASAGridError,
    WorkerFailedError,
)
from ..utils.cpu import format_workers_info, parse_workers
from .accessibility import CenteredPointScratch, center_sphere_points, classify_points
from .neighbors import NeighborScratch, find_neighbors
from .rasterizer import GridConfig, point_area, rasterize_points
from .sphere_points import generate_sphere_points

__all__ = [
    "SASAGridParams",
    "WorkerScratch",
    "FrameScheduler",
    "validate_inputs",
    "compute_frame_grid",
    "compute_frame_areas",
    "compute_sasa_grids",
    "compute_atom_areas",
]

logger = logging.getLogger(__name__)

DEFAULT_SPHERE_POINTS = 960


@dataclass
class SASAGridParams:
    """Run parameters shared by every frame."""

    grid: Optional[GridConfig] = None
    n_sphere_points: int = DEFAULT_SPHERE_POINTS
    n_workers: int = 1
    progress: bool = True

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "SASAGridParams":
        """Build parameters from a validated configuration dictionary."""
        return cls(
            grid=GridConfig.from_values(config["grid_counts"], config["grid_spacing"]),
            n_sphere_points=int(config.get("n_sphere_points", DEFAULT_SPHERE_POINTS)),
            n_workers=parse_workers(config.get("n_workers", "auto")),
            progress=bool(config.get("progress", True)),
        )


@dataclass
class WorkerScratch:
    """Buffers owned by one execution unit for all of its frames."""

    neighbors: NeighborScratch
    points: CenteredPointScratch
    row: Optional[np.ndarray] = field(default=None)

    @classmethod
    def allocate(
        cls, n_atoms: int, n_sphere_points: int, row_size: int = 0, row_dtype=np.float32
    ) -> "WorkerScratch":
        row = None
        if row_size:
            try:
                row = np.empty(row_size, dtype=row_dtype)
            except MemoryError as e:
                raise ResourceExhaustedError("frame result", (row_size,)) from e
        return cls(NeighborScratch(n_atoms), CenteredPointScratch(n_sphere_points), row)


def _is_int(value: Any) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, (bool, np.bool_))


def validate_inputs(
    frames,
    atom_radii,
    n_sphere_points,
    selection_mask=None,
    grid_counts=None,
    grid_spacing=None,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, Optional[GridConfig]]:
    """Check and normalise entry-point arguments.

    Grid arguments are optional so the per-atom area path can share the
    checks; when either is given both must be valid.

    Returns:
        Tuple of (xyz, radii, mask, grid) with xyz as a C-contiguous float64
        (n_frames, n_atoms, 3) array

    Raises:
        InvalidConfigurationError: On any malformed argument
    """
    xyz = np.ascontiguousarray(frames, dtype=np.float64)
    if xyz.ndim != 3 or xyz.shape[2] != 3:
        raise InvalidConfigurationError(
            f"frames must have shape (n_frames, n_atoms, 3), got {xyz.shape}"
        )
    if not np.all(np.isfinite(xyz)):
        raise InvalidConfigurationError("frames contain non-finite coordinates")
    n_atoms = xyz.shape[1]

    radii = np.ascontiguousarray(atom_radii, dtype=np.float64)
    if radii.shape != (n_atoms,):
        raise InvalidConfigurationError(
            f"atom_radii has shape {radii.shape}, expected ({n_atoms},) to match frames"
        )
    if not np.all(np.isfinite(radii)) or np.any(radii <= 0):
        raise InvalidConfigurationError("atom_radii must be finite and positive")

    if selection_mask is None:
        mask = np.ones(n_atoms, dtype=bool)
    else:
        mask = np.asarray(selection_mask).astype(bool)
        if mask.shape != (n_atoms,):
            raise InvalidConfigurationError(
                f"selection_mask has shape {mask.shape}, expected ({n_atoms},) to match frames"
            )

    if not _is_int(n_sphere_points) or n_sphere_points <= 0:
        raise InvalidConfigurationError(
            f"n_sphere_points must be a positive integer, got {n_sphere_points!r}"
        )

    grid = None
    if grid_counts is not None or grid_spacing is not None:
        counts = list(grid_counts) if grid_counts is not None else []
        if len(counts) != 3:
            raise InvalidConfigurationError("grid_counts must contain three values")
        if not all(_is_int(c) and c > 0 for c in counts):
            raise InvalidConfigurationError(f"grid_counts must be positive integers, got {counts}")
        try:
            spacing = float(grid_spacing)
        except (TypeError, ValueError):
            spacing = float("nan")
        if not np.isfinite(spacing) or spacing <= 0:
            raise InvalidConfigurationError(
                f"grid_spacing must be a positive number, got {grid_spacing!r}"
            )
        grid = GridConfig.from_values(counts, spacing)

    return xyz, radii, mask, grid


def _iter_exposed(
    positions: np.ndarray,
    radii: np.ndarray,
    mask: np.ndarray,
    sphere_points: np.ndarray,
    scratch: WorkerScratch,
) -> Iterator[Tuple[int, int]]:
    """Yield (atom, n_exposed) with ``scratch.points`` holding that atom's result."""
    points = scratch.points
    for i in np.flatnonzero(mask):
        neighbors = find_neighbors(i, positions, radii, scratch.neighbors)
        center_sphere_points(positions[i], radii[i], sphere_points, points.points)
        n_exposed = classify_points(points.points, positions, radii, neighbors, points.exposed)
        yield int(i), n_exposed


def compute_frame_grid(
    positions: np.ndarray,
    radii: np.ndarray,
    mask: np.ndarray,
    sphere_points: np.ndarray,
    grid: GridConfig,
    scratch: WorkerScratch,
    out: np.ndarray,
) -> int:
    """Rasterize the accessible surface of one frame into ``out``.

    ``out`` is zeroed first. Returns the number of sample points deposited
    inside the grid.
    """
    out.fill(0)
    n_sphere_points = len(sphere_points)
    deposited = 0
    for i, n_exposed in _iter_exposed(positions, radii, mask, sphere_points, scratch):
        if n_exposed:
            deposited += rasterize_points(
                scratch.points.points,
                scratch.points.exposed,
                radii[i],
                n_sphere_points,
                grid,
                out,
            )
    return deposited


def compute_frame_areas(
    positions: np.ndarray,
    radii: np.ndarray,
    mask: np.ndarray,
    sphere_points: np.ndarray,
    grid: Optional[GridConfig],
    scratch: WorkerScratch,
    out: np.ndarray,
) -> int:
    """Write the exposed area of each atom of one frame into ``out``.

    Unselected atoms get zero. Returns the number of exposed points.
    """
    out.fill(0)
    n_sphere_points = len(sphere_points)
    total = 0
    for i, n_exposed in _iter_exposed(positions, radii, mask, sphere_points, scratch):
        out[i] = n_exposed * point_area(radii[i], n_sphere_points)
        total += n_exposed
    return total


_FRAME_KERNELS = {
    "grid": compute_frame_grid,
    "areas": compute_frame_areas,
}


class FrameScheduler:
    """Runs a per-frame kernel over every frame, serially or across processes.

    Frames are independent: each one reads only its own coordinates and
    writes only its own output row. Every execution unit allocates one
    :class:`WorkerScratch` before its first frame and keeps it until its last.
    """

    def __init__(self, params: SASAGridParams) -> None:
        self.params = params
        try:
            self.n_workers = parse_workers(params.n_workers)
        except ValueError as e:
            raise InvalidConfigurationError(str(e)) from e
        self.sphere_points = generate_sphere_points(params.n_sphere_points)

    def run(
        self,
        xyz: np.ndarray,
        radii: np.ndarray,
        mask: np.ndarray,
        kind: str = "grid",
        out: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        """Process all frames of validated inputs.

        Args:
            xyz: (n_frames, n_atoms, 3) float64 coordinates
            radii: (n_atoms,) inflated radii
            mask: (n_atoms,) selection mask
            kind: ``"grid"`` for voxel densities, ``"areas"`` for per-atom areas
            out: Optional pre-sized output, written in place

        Returns:
            (n_frames, row_size) output array

        Raises:
            DegenerateAtomsError: For the lowest-indexed frame with coincident atoms
            ResourceExhaustedError: If buffers cannot be allocated
            WorkerFailedError: If a worker process fails unexpectedly
        """
        if kind not in _FRAME_KERNELS:
            raise InvalidConfigurationError(f"Unknown frame kernel: {kind}")
        if kind == "grid" and self.params.grid is None:
            raise InvalidConfigurationError("Grid output requested without a grid configuration")

        n_frames, n_atoms = xyz.shape[:2]
        out = self._prepare_output(kind, n_frames, n_atoms, out)

        self._xyz = xyz
        self._radii = radii
        self._mask = mask
        self._kind = kind
        self._row_dtype = out.dtype

        logger.info(
            "Computing SASA %s for %d frames, %d atoms (%d selected), %d sphere points",
            kind,
            n_frames,
            n_atoms,
            int(mask.sum()),
            self.params.n_sphere_points,
        )
        if kind == "grid":
            cx, cy, cz = self.params.grid.counts
            logger.info("  Grid: %dx%dx%d voxels, spacing %.3f", cx, cy, cz, self.params.grid.spacing)
        logger.info("  Workers: %s", format_workers_info(self.n_workers))

        start_time = time.time()
        if self.n_workers > 1 and n_frames > 1:
            self._run_parallel(out)
        else:
            self._run_serial(out)
        logger.info("Completed %d frames in %.2fs", n_frames, time.time() - start_time)

        return out

    def _row_size(self, kind: str, n_atoms: int) -> int:
        return self.params.grid.n_voxels if kind == "grid" else n_atoms

    def _prepare_output(
        self, kind: str, n_frames: int, n_atoms: int, out: Optional[np.ndarray]
    ) -> np.ndarray:
        row_size = self._row_size(kind, n_atoms)
        if out is None:
            dtype = np.float32 if kind == "grid" else np.float64
            try:
                return np.zeros((n_frames, row_size), dtype=dtype)
            except MemoryError as e:
                raise ResourceExhaustedError("output", (n_frames, row_size)) from e

        if out.shape != (n_frames, row_size):
            raise InvalidConfigurationError(
                f"out has shape {out.shape}, expected {(n_frames, row_size)}"
            )
        if not out.flags.c_contiguous or not out.flags.writeable:
            raise InvalidConfigurationError("out must be a writeable C-contiguous array")
        return out

    def _run_frame(self, frame_idx: int, scratch: WorkerScratch, row: np.ndarray) -> None:
        kernel = _FRAME_KERNELS[self._kind]
        try:
            n_points = kernel(
                self._xyz[frame_idx],
                self._radii,
                self._mask,
                self.sphere_points,
                self.params.grid,
                scratch,
                row,
            )
        except DegenerateAtomsError as e:
            raise e.with_frame(frame_idx) from None
        logger.debug("Frame %d: %d exposed points", frame_idx, n_points)

    def _run_serial(self, out: np.ndarray) -> None:
        n_frames, n_atoms = self._xyz.shape[:2]
        scratch = WorkerScratch.allocate(n_atoms, self.params.n_sphere_points)
        for frame_idx in tqdm(range(n_frames), disable=not self.params.progress):
            self._run_frame(frame_idx, scratch, out[frame_idx])

    def _worker_process(
        self,
        work_queue: mp.Queue,
        result_queue: mp.Queue,
        worker_id: int
    ) -> None:
        """Worker process for parallel frame processing.

        Args:
            work_queue: Queue of frame indices, terminated by ``None``
            result_queue: Queue for (frame_idx, row, error) tuples
            worker_id: Worker identifier
        """
        n_atoms = self._xyz.shape[1]
        scratch = None
        alloc_error = None
        try:
            scratch = WorkerScratch.allocate(
                n_atoms,
                self.params.n_sphere_points,
                row_size=self._row_size(self._kind, n_atoms),
                row_dtype=self._row_dtype,
            )
        except ResourceExhaustedError as e:
            alloc_error = e

        while True:
            frame_idx = work_queue.get()
            if frame_idx is None:  # Poison pill
                break

            if alloc_error is not None:
                result_queue.put((frame_idx, None, alloc_error))
                continue

            try:
                self._run_frame(frame_idx, scratch, scratch.row)
                # Queue pickles lazily; the row is overwritten by the next frame
                result_queue.put((frame_idx, scratch.row.copy(), None))
            except SASAGridError as e:
                result_queue.put((frame_idx, None, e))
            except Exception as e:
                logger.debug("Worker %d error on frame %d: %r", worker_id, frame_idx, e)
                result_queue.put((frame_idx, None, WorkerFailedError(frame_idx, repr(e))))

    def _run_parallel(self, out: np.ndarray) -> None:
        n_frames = self._xyz.shape[0]
        n_workers = min(self.n_workers, n_frames)

        work_queue = mp.Queue()
        result_queue = mp.Queue()

        for frame_idx in range(n_frames):
            work_queue.put(frame_idx)

        # Add poison pills
        for _ in range(n_workers):
            work_queue.put(None)

        workers = []
        for i in range(n_workers):
            p = mp.Process(
                target=self._worker_process,
                args=(work_queue, result_queue, i)
            )
            p.start()
            workers.append(p)

        errors: Dict[int, SASAGridError] = {}
        pending = set(range(n_frames))
        try:
            with tqdm(total=n_frames, disable=not self.params.progress) as pbar:
                while pending:
                    try:
                        frame_idx, row, error = result_queue.get(timeout=1)
                    except queue.Empty:
                        if not any(p.is_alive() for p in workers):
                            raise WorkerFailedError(
                                min(pending), "worker exited before returning a result"
                            )
                        continue

                    pending.discard(frame_idx)
                    if error is not None:
                        errors[frame_idx] = error
                    else:
                        out[frame_idx] = row
                    pbar.update(1)
        finally:
            for p in workers:
                p.join(timeout=5)
                if p.is_alive():
                    p.terminate()
                    p.join()

        if errors:
            first = min(errors)
            for frame_idx in sorted(errors)[1:]:
                logger.warning("Frame %d also failed: %s", frame_idx, errors[frame_idx])
            raise errors[first]


def compute_sasa_grids(
    frames,
    atom_radii,
    n_sphere_points: int,
    selection_mask,
    grid_counts: Sequence[int],
    grid_spacing: float,
    n_workers: Union[int, str, None] = 1,
    out: Optional[np.ndarray] = None,
    progress: bool = False,
) -> np.ndarray:
    """Accessible-surface density grids, one per frame.

    Each selected atom's probe-inflated sphere is sampled with
    ``n_sphere_points`` golden-spiral points; points not buried in a
    neighboring sphere are snapped to the nearest grid node and add
    ``4*pi*r^2 / n_sphere_points`` to that voxel.

    Args:
        frames: (n_frames, n_atoms, 3) coordinates
        atom_radii: (n_atoms,) radii already including the probe radius
        n_sphere_points: Sampling density per atom
        selection_mask: (n_atoms,) bools, or None to select every atom
        grid_counts: Voxel counts (cx, cy, cz)
        grid_spacing: Voxel edge length
        n_workers: Worker processes (``"auto"`` = CPU count - 1)
        out: Optional float32 (n_frames, cx*cy*cz) buffer to fill
        progress: Show a progress bar over frames

    Returns:
        (n_frames, cx*cy*cz) float32 array, x fastest-varying

    Raises:
        InvalidConfigurationError: On malformed inputs, before any work
        DegenerateAtomsError: If two atoms of a selected atom's frame coincide
        ResourceExhaustedError: If buffers cannot be allocated
    """
    xyz, radii, mask, grid = validate_inputs(
        frames, atom_radii, n_sphere_points, selection_mask, grid_counts, grid_spacing
    )
    params = SASAGridParams(
        grid=grid, n_sphere_points=int(n_sphere_points), n_workers=n_workers, progress=progress
    )
    return FrameScheduler(params).run(xyz, radii, mask, kind="grid", out=out)


def compute_atom_areas(
    frames,
    atom_radii,
    n_sphere_points: int = DEFAULT_SPHERE_POINTS,
    selection_mask=None,
    n_workers: Union[int, str, None] = 1,
    progress: bool = False,
) -> np.ndarray:
    """Per-atom Shrake-Rupley accessible surface area for each frame.

    Returns:
        (n_frames, n_atoms) float64 array; unselected atoms are zero
    """
    xyz, radii, mask, _ = validate_inputs(frames, atom_radii, n_sphere_points, selection_mask)
    params = SASAGridParams(
        n_sphere_points=int(n_sphere_points), n_workers=n_workers, progress=progress
    )
    return FrameScheduler(params).run(xyz, radii, mask, kind="areas")

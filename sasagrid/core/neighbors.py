# sasagrid/core/neighbors.py
from __future__ import annotations

import numpy as np

from ..exceptions import DegenerateAtomsError, ResourceExhaustedError

__all__ = ["NeighborScratch", "find_neighbors", "COINCIDENT_SQ_DISTANCE"]

# Squared separation below which two atoms count as coincident
COINCIDENT_SQ_DISTANCE = 1e-10


class NeighborScratch:
    """Reusable per-worker buffers for the neighbor scan.

    Sized once to the atom count. ``count`` is the logical length of
    ``indices`` for the atom most recently scanned; nothing is reallocated
    between atoms or frames.
    """

    def __init__(self, n_atoms: int) -> None:
        try:
            self.indices = np.empty(n_atoms, dtype=np.int64)
            self.delta = np.empty((n_atoms, 3), dtype=np.float64)
            self.sq_dist = np.empty(n_atoms, dtype=np.float64)
            self.cutoff = np.empty(n_atoms, dtype=np.float64)
        except MemoryError as e:
            raise ResourceExhaustedError("neighbor scratch", (n_atoms,)) from e
        self.n_atoms = n_atoms
        self.count = 0

    @property
    def neighbors(self) -> np.ndarray:
        """View of the neighbor indices found by the last scan."""
        return self.indices[: self.count]


def find_neighbors(
    i: int,
    positions: np.ndarray,
    radii: np.ndarray,
    scratch: NeighborScratch,
) -> np.ndarray:
    """Collect atoms whose inflated spheres overlap atom ``i``.

    Atom ``j`` is a neighbor when ``|x_i - x_j|^2 < (r_i + r_j)^2``. Indices
    come out in ascending order, which is the order the accessibility scan
    walks them.

    Args:
        i: Index of the atom being processed
        positions: (n_atoms, 3) coordinates of the current frame
        radii: (n_atoms,) probe-inflated radii
        scratch: Worker-owned buffers, overwritten in place

    Returns:
        View into ``scratch.indices`` holding the neighbor indices

    Raises:
        DegenerateAtomsError: If any other atom is within sqrt(1e-10) of atom ``i``
    """
    n_atoms = positions.shape[0]
    delta = scratch.delta[:n_atoms]
    sq_dist = scratch.sq_dist[:n_atoms]
    cutoff = scratch.cutoff[:n_atoms]

    np.subtract(positions, positions[i], out=delta)
    np.einsum("ij,ij->i", delta, delta, out=sq_dist)
    np.add(radii, radii[i], out=cutoff)
    np.square(cutoff, out=cutoff)

    # i is trivially coincident with itself
    sq_dist[i] = np.inf

    coincident = np.flatnonzero(sq_dist < COINCIDENT_SQ_DISTANCE)
    if coincident.size:
        j = int(coincident[0])
        raise DegenerateAtomsError(i, j, float(np.sqrt(sq_dist[j])))

    found = np.flatnonzero(sq_dist < cutoff)
    scratch.count = found.size
    scratch.indices[: found.size] = found
    return scratch.neighbors

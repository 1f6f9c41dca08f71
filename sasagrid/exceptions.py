# sasagrid/exceptions.py
"""Errors raised by the SASA grid pipeline."""
from __future__ import annotations

from typing import Optional, Tuple

__all__ = [
    "SASAGridError",
    "InvalidConfigurationError",
    "DegenerateAtomsError",
    "ResourceExhaustedError",
    "WorkerFailedError",
]


class SASAGridError(Exception):
    """Base class for every error raised by sasagrid."""


class InvalidConfigurationError(SASAGridError, ValueError):
    """Inputs rejected at the entry point, before any frame is processed."""


class DegenerateAtomsError(SASAGridError):
    """Two atoms sit (virtually) on top of one another.

    The sphere-sampling method cannot handle coincident centers, so the whole
    multi-frame computation is aborted. ``frame`` is ``None`` while the error
    travels inside a single-frame call and is filled in by the scheduler.
    """

    def __init__(self, i: int, j: int, distance: float, frame: Optional[int] = None) -> None:
        self.i = int(i)
        self.j = int(j)
        self.distance = float(distance)
        self.frame = frame
        super().__init__(self._message())

    def _message(self) -> str:
        where = f"frame {self.frame}" if self.frame is not None else "current frame"
        return (
            f"Atoms {self.i} and {self.j} in {where} are {self.distance:.3g} apart; "
            "sphere sampling is undefined for coincident atoms"
        )

    def with_frame(self, frame: int) -> "DegenerateAtomsError":
        """Return a copy attributed to ``frame``."""
        return DegenerateAtomsError(self.i, self.j, self.distance, frame=frame)

    def __reduce__(self):
        # keep attributes intact across the worker result queue
        return (DegenerateAtomsError, (self.i, self.j, self.distance, self.frame))


class ResourceExhaustedError(SASAGridError, MemoryError):
    """A scratch or output buffer could not be allocated."""

    def __init__(self, buffer: str, shape: Tuple[int, ...]) -> None:
        self.buffer = buffer
        self.shape = tuple(int(s) for s in shape)
        super().__init__(f"Could not allocate {buffer} buffer of shape {self.shape}")

    def __reduce__(self):
        return (ResourceExhaustedError, (self.buffer, self.shape))


class WorkerFailedError(SASAGridError):
    """A worker process raised something outside the sasagrid taxonomy."""

    def __init__(self, frame: int, detail: str) -> None:
        self.frame = frame
        self.detail = detail
        super().__init__(f"Worker failed on frame {frame}: {detail}")

    def __reduce__(self):
        return (WorkerFailedError, (self.frame, self.detail))

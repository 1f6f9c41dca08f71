"""CPU and worker-count helpers for frame-parallel runs."""
import multiprocessing as mp
from typing import Optional, Union


def get_optimal_workers() -> int:
    """Worker count used for ``"auto"``: all cores but one, at least 1."""
    return max(1, mp.cpu_count() - 1)


def parse_workers(value: Optional[Union[str, int]]) -> int:
    """Turn a user-supplied worker setting into a process count.

    - ``"auto"``, ``None`` or ``""`` -> :func:`get_optimal_workers`
    - an integer, or a string holding one -> that integer

    Raises
    ------
    ValueError
        If ``value`` is not ``"auto"`` and not an integer, or is below 1.
    """

    if value in (None, "", "auto"):
        return get_optimal_workers()

    if isinstance(value, bool):
        raise ValueError(f"Invalid worker count: '{value}'. Must be 'auto' or a positive integer.")

    try:
        workers = int(value)
    except (ValueError, TypeError) as e:
        raise ValueError(
            f"Invalid worker count: '{value}'. Must be 'auto' or a positive integer."
        ) from e

    if workers < 1:
        raise ValueError(f"Worker count must be >= 1, got {workers}")
    return workers


def format_workers_info(n_workers: int) -> str:
    """Describe a worker configuration for log output.

    Args:
        n_workers: Number of worker processes

    Returns:
        Human-readable summary
    """
    total_cores = mp.cpu_count()
    if n_workers == 1:
        return f"1 worker (frames processed in-process, {total_cores} cores available)"
    if n_workers == get_optimal_workers():
        return f"{n_workers} worker processes (auto-detected, {total_cores} cores total)"
    return f"{n_workers} worker processes ({total_cores} cores total)"

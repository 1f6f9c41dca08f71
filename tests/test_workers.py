# tests/test_workers.py
"""Test worker-count resolution for frame-parallel runs."""

import multiprocessing as mp

import numpy as np
import pytest

from sasagrid import FrameScheduler, InvalidConfigurationError, SASAGridParams
from sasagrid.utils.cpu import format_workers_info, get_optimal_workers, parse_workers


@pytest.fixture
def eight_cores(monkeypatch):
    monkeypatch.setattr(mp, "cpu_count", lambda: 8)


@pytest.mark.parametrize("value", [None, "", "auto"])
def test_auto_leaves_one_core_free(eight_cores, value):
    assert parse_workers(value) == 7


def test_auto_on_single_core_machine(monkeypatch):
    monkeypatch.setattr(mp, "cpu_count", lambda: 1)
    assert get_optimal_workers() == 1
    assert parse_workers("auto") == 1


@pytest.mark.parametrize("value, expected", [(1, 1), ("3", 3), (np.int64(6), 6), (32, 32)])
def test_explicit_counts_kept_as_given(eight_cores, value, expected):
    # Explicit requests are not capped at the core count
    assert parse_workers(value) == expected


@pytest.mark.parametrize("value", [True, False, "two", 2.5j, [2]])
def test_non_integer_counts_rejected(value):
    with pytest.raises(ValueError, match="Invalid worker count"):
        parse_workers(value)


@pytest.mark.parametrize("value", [0, "0", -4])
def test_counts_below_one_rejected(value):
    with pytest.raises(ValueError, match="must be >= 1"):
        parse_workers(value)


def test_describes_in_process_run(eight_cores):
    assert format_workers_info(1) == "1 worker (frames processed in-process, 8 cores available)"


def test_describes_auto_detected_pool(eight_cores):
    assert format_workers_info(7) == "7 worker processes (auto-detected, 8 cores total)"


def test_describes_explicit_pool(eight_cores):
    assert format_workers_info(3) == "3 worker processes (8 cores total)"


def test_scheduler_resolves_auto(eight_cores):
    scheduler = FrameScheduler(SASAGridParams(n_sphere_points=10, n_workers="auto"))
    assert scheduler.n_workers == 7


def test_scheduler_rejects_bool_workers():
    with pytest.raises(InvalidConfigurationError, match="Invalid worker count"):
        FrameScheduler(SASAGridParams(n_sphere_points=10, n_workers=True))

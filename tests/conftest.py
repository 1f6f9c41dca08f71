import sys
from pathlib import Path

import numpy as np
import pytest

# Ensure the repository root is on sys.path so tests can import sasagrid without
# requiring an editable install. This matches the lightweight CI setup that only
# installs test tooling.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))


@pytest.fixture
def rng():
    return np.random.default_rng(1337)


@pytest.fixture
def small_cluster(rng):
    """Tight cluster of 12 carbon-like atoms centered in a 10 Å box."""
    coords = rng.uniform(4.0, 6.0, size=(12, 3))
    radii = np.full(12, 1.7 + 1.4)
    return coords, radii

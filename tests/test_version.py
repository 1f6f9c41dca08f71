# tests/test_version.py
"""Test package version metadata."""

import importlib

import sasagrid


def test_get_version_is_shared_with_metadata_module():
    version_module = importlib.import_module("sasagrid.__version__")

    assert sasagrid.get_version is version_module.get_version
    assert sasagrid.get_version() == sasagrid.__version__ == version_module.__version__
    assert version_module.get_version_tuple() == (1, 0, 0)

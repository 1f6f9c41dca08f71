# sasagrid/utils/config_parser.py
"""Run configuration files for SASA grid computations."""

import json
from pathlib import Path
from typing import Any, Dict

import yaml

__all__ = ["load_config", "save_config", "validate_config", "create_example_config"]

DEFAULTS = {
    "n_sphere_points": 960,
    "n_workers": "auto",
    "progress": True,
}

REQUIRED_FIELDS = ("grid_counts", "grid_spacing")
KNOWN_FIELDS = set(REQUIRED_FIELDS) | set(DEFAULTS)


def load_config(config_path: str) -> Dict[str, Any]:
    """Load configuration from YAML or JSON file.

    Missing optional fields are filled from :data:`DEFAULTS`.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config format or contents are invalid
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r") as f:
        if config_path.suffix in [".yaml", ".yml"]:
            config = yaml.safe_load(f)
        elif config_path.suffix == ".json":
            config = json.load(f)
        else:
            raise ValueError(f"Unsupported config format: {config_path.suffix}")

    if not isinstance(config, dict):
        raise ValueError(f"Configuration must be a mapping, got {type(config).__name__}")

    config = {**DEFAULTS, **config}
    validate_config(config)
    return config


def save_config(config: Dict[str, Any], output_path: str) -> None:
    """Save configuration to YAML file.

    Args:
        config: Configuration dictionary
        output_path: Path to save configuration
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w") as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_config(config: Dict[str, Any]) -> None:
    """Validate configuration structure and values.

    Args:
        config: Configuration dictionary

    Raises:
        ValueError: If configuration is invalid
    """
    unknown = set(config) - KNOWN_FIELDS
    if unknown:
        raise ValueError(f"Unknown configuration fields: {sorted(unknown)}")

    for field in REQUIRED_FIELDS:
        if field not in config:
            raise ValueError(f"Missing required field: {field}")

    counts = config["grid_counts"]
    if not isinstance(counts, (list, tuple)) or len(counts) != 3:
        raise ValueError("grid_counts must be a list of three integers")
    if not all(_is_int(c) and c > 0 for c in counts):
        raise ValueError(f"grid_counts must be positive integers, got {counts}")

    spacing = config["grid_spacing"]
    if not isinstance(spacing, (int, float)) or isinstance(spacing, bool) or spacing <= 0:
        raise ValueError(f"grid_spacing must be a positive number, got {spacing!r}")

    n_points = config.get("n_sphere_points", DEFAULTS["n_sphere_points"])
    if not _is_int(n_points) or n_points < 1:
        raise ValueError(f"n_sphere_points must be a positive integer, got {n_points!r}")

    n_workers = config.get("n_workers", DEFAULTS["n_workers"])
    if n_workers != "auto" and not (_is_int(n_workers) and n_workers >= 1):
        raise ValueError(f"Invalid n_workers: {n_workers!r}. Must be 'auto' or a positive integer")

    if not isinstance(config.get("progress", True), bool):
        raise ValueError("progress must be true or false")


# Example configuration template
EXAMPLE_CONFIG = """# sasagrid configuration file

# Voxel counts along x, y, z (required)
grid_counts: [64, 64, 64]

# Voxel edge length in Angstroms (required)
grid_spacing: 0.5

# Golden-spiral points sampled on each atom sphere
n_sphere_points: 960

# Parallel workers over frames (or 'auto')
n_workers: auto

# Show a progress bar over frames
progress: true
"""


def create_example_config(output_path: str = "sasagrid_config.yaml") -> None:
    """Create an example configuration file.

    Args:
        output_path: Path to save example config
    """
    with open(output_path, "w") as f:
        f.write(EXAMPLE_CONFIG)

"""
Utility modules for sasagrid.

- CPU/worker management
- Configuration parsing
"""

from .config_parser import create_example_config, load_config, save_config, validate_config
from .cpu import format_workers_info, get_optimal_workers, parse_workers

__all__ = [
    "parse_workers",
    "get_optimal_workers",
    "format_workers_info",
    "load_config",
    "save_config",
    "validate_config",
    "create_example_config",
]

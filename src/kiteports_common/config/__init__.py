"""Shared configuration utilities for kite-ports (kiteports_common.config).

This package provides YAML-based user configuration loading merged over
built-in defaults.
"""

from .project import deep_merge, default_config, load_merged_config, load_yaml

__all__ = [
    "deep_merge",
    "default_config",
    "load_merged_config",
    "load_yaml",
]

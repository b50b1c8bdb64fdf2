"""User YAML configuration loading for kite-ports.

Locates, loads, and deep-merges ``~/.config/sql-kite/ports.yaml`` over the
built-in defaults. Environment overrides are applied by the consumer on top
of the merged result.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from kiteports_common.io import safe_read_yaml
from kiteports_common.io.files import FileOperationError
from kiteports_common.path import get_user_config_path


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge two dictionaries in place and return ``base``.

    Values from ``override`` take precedence. Nested dicts are merged
    recursively; other values are replaced.
    """
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def default_config() -> dict[str, Any]:
    """Return the default port registry configuration structure."""
    return {
        "ranges": {
            "primary": {"start": 3000, "end": 3999},
            "fallback": {"start": 4000, "end": 4999},
            "extended": {"start": 5000, "end": 9999},
        },
        "scan": {
            "batch_size": 10,
            "batch_workers": 10,
            "max_attempts": 100,
            "probe_host": "0.0.0.0",
        },
        "registry": {
            "file": None,
            "runtime_dir": None,
            "cleanup_interval_s": 3600.0,
            "lock": True,
            "lock_timeout_s": 5.0,
        },
    }


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML mapping, returning an empty dict when missing or unreadable."""
    try:
        if not path.exists():
            return {}
        return safe_read_yaml(path)
    except FileOperationError:
        return {}


def load_merged_config(user_config: Path | None = None) -> dict[str, Any]:
    """Load defaults + user YAML config into a single dict.

    Parameters
    ----------
    user_config : Path, optional
        Explicit config file; defaults to :func:`get_user_config_path`

    Returns
    -------
    dict[str, Any]
        Merged configuration
    """
    cfg = default_config()
    user_cfg = load_yaml(user_config or get_user_config_path())
    if user_cfg:
        deep_merge(cfg, user_cfg)
    return cfg

"""Typed configuration for the port registry.

Resolution order, lowest to highest precedence: built-in defaults, the user
YAML file (``~/.config/sql-kite/ports.yaml``), ``KITE_*`` environment
variables, explicit keyword overrides passed to :meth:`PortsConfig.load`.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from kiteports.errors import ConfigError
from kiteports.models import PortRange
from kiteports_common.config import load_merged_config
from kiteports_common.constants import REGISTRY_FILENAME, REGISTRY_LOCK_SUFFIX, EnvVars
from kiteports_common.env import reader
from kiteports_common.path import get_runtime_dir


@dataclass(frozen=True)
class PortsConfig:
    """Settings shared by the registry store, reaper and allocator."""

    runtime_dir: Path
    registry_file: Path | None = None
    primary_range: PortRange = PortRange(3000, 3999)
    fallback_range: PortRange = PortRange(4000, 4999)
    extended_range: PortRange = PortRange(5000, 9999)
    batch_size: int = 10
    batch_workers: int = 10
    max_attempts: int = 100
    cleanup_interval_s: float = 3600.0
    lock_enabled: bool = True
    lock_timeout_s: float = 5.0
    probe_host: str = "0.0.0.0"

    def __post_init__(self) -> None:
        object.__setattr__(self, "runtime_dir", Path(self.runtime_dir).expanduser())
        if self.registry_file is None:
            object.__setattr__(
                self,
                "registry_file",
                self.runtime_dir / REGISTRY_FILENAME,
            )
        else:
            object.__setattr__(
                self,
                "registry_file",
                Path(self.registry_file).expanduser(),
            )

        for name in ("batch_size", "batch_workers", "max_attempts"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                msg = f"{name} must be a positive integer, got {value!r}"
                raise ConfigError(msg)
        if self.cleanup_interval_s < 0:
            msg = "cleanup_interval_s must not be negative"
            raise ConfigError(msg)
        if self.lock_timeout_s < 0:
            msg = "lock_timeout_s must not be negative"
            raise ConfigError(msg)

    @property
    def ranges(self) -> tuple[PortRange, PortRange, PortRange]:
        """Primary, fallback and extended ranges in search order."""
        return (self.primary_range, self.fallback_range, self.extended_range)

    @property
    def lock_file(self) -> Path:
        path = self.registry_file
        assert path is not None
        return path.with_name(path.name + REGISTRY_LOCK_SUFFIX)

    @property
    def search_bounds(self) -> tuple[int, int]:
        """Lowest and highest port across all ranges."""
        return (
            min(r.start for r in self.ranges),
            max(r.end for r in self.ranges),
        )

    def with_overrides(self, **overrides: Any) -> PortsConfig:
        """Return a copy with the non-None ``overrides`` applied."""
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            msg = f"Unknown configuration keys: {', '.join(sorted(unknown))}"
            raise ConfigError(msg)
        changes = {k: v for k, v in overrides.items() if v is not None}
        if "runtime_dir" in changes and "registry_file" not in changes:
            # Re-derived from the new runtime dir in __post_init__
            changes["registry_file"] = None
        return replace(self, **changes)

    @classmethod
    def load(cls, user_config: Path | None = None, **overrides: Any) -> PortsConfig:
        """Build the effective configuration.

        Parameters
        ----------
        user_config : Path, optional
            YAML file to merge over the defaults instead of the user config
        **overrides
            Field values that win over every other source

        Returns
        -------
        PortsConfig
            Effective configuration

        Raises
        ------
        ConfigError
            If any source holds an invalid value
        """
        merged = load_merged_config(user_config)
        ranges = merged.get("ranges", {})
        scan = merged.get("scan", {})
        registry = merged.get("registry", {})

        runtime_dir = registry.get("runtime_dir") or get_runtime_dir()
        registry_file = reader.read_str(EnvVars.REGISTRY_FILE) or registry.get("file")

        try:
            config = cls(
                runtime_dir=Path(runtime_dir),
                registry_file=Path(registry_file) if registry_file else None,
                primary_range=_parse_range(ranges.get("primary"), "primary"),
                fallback_range=_parse_range(ranges.get("fallback"), "fallback"),
                extended_range=_parse_range(ranges.get("extended"), "extended"),
                batch_size=int(scan.get("batch_size", 10)),
                batch_workers=int(scan.get("batch_workers", 10)),
                max_attempts=reader.read_int(
                    EnvVars.MAX_ATTEMPTS,
                    default=int(scan.get("max_attempts", 100)),
                ),
                cleanup_interval_s=reader.read_float(
                    EnvVars.CLEANUP_INTERVAL,
                    default=float(registry.get("cleanup_interval_s", 3600.0)),
                ),
                lock_enabled=reader.read_bool(
                    EnvVars.LOCK,
                    default=bool(registry.get("lock", True)),
                ),
                lock_timeout_s=reader.read_float(
                    EnvVars.LOCK_TIMEOUT,
                    default=float(registry.get("lock_timeout_s", 5.0)),
                ),
                probe_host=reader.read_str(
                    EnvVars.PROBE_HOST,
                    default=str(scan.get("probe_host", "0.0.0.0")),
                ),
            )
        except (TypeError, ValueError) as e:
            msg = f"Invalid port registry configuration: {e}"
            raise ConfigError(msg) from e

        return config.with_overrides(**overrides) if overrides else config


def _parse_range(raw: Any, name: str) -> PortRange:
    if not isinstance(raw, dict) or "start" not in raw or "end" not in raw:
        msg = f"Range '{name}' must be a mapping with 'start' and 'end'"
        raise ConfigError(msg, details={"range": name, "value": raw})
    try:
        return PortRange(int(raw["start"]), int(raw["end"]))
    except (TypeError, ValueError) as e:
        msg = f"Range '{name}' has non-integer bounds: {raw!r}"
        raise ConfigError(msg) from e

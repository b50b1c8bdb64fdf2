"""Fixtures for kiteports unit tests."""

from __future__ import annotations

import json
import os
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from kiteports.allocator import PortAllocator
from kiteports.config import PortsConfig
from kiteports.markers import RunStateMarkers
from kiteports.models import PortRange, now_ms
from kiteports.registry import RegistryStore
from tests._fixtures.fakes import FakeLiveness, FakeProber


@pytest.fixture(autouse=True)
def reset_global_allocator() -> Generator[None, None, None]:
    """Reset the module-level ``_allocator`` singleton between tests.

    Yields
    ------
    None
        Control returns to test, then cleanup runs
    """
    import kiteports.allocator as allocator_module

    original = allocator_module._allocator
    allocator_module._allocator = None
    yield
    allocator_module._allocator = original


@pytest.fixture
def runtime_dir(tmp_path: Path) -> Path:
    """Isolated runtime directory."""
    path = tmp_path / "runtime"
    path.mkdir()
    return path


@pytest.fixture
def config(runtime_dir: Path) -> PortsConfig:
    """Configuration with small ranges so exhaustion is cheap to reach."""
    return PortsConfig(
        runtime_dir=runtime_dir,
        primary_range=PortRange(3000, 3019),
        fallback_range=PortRange(4000, 4004),
        extended_range=PortRange(5000, 5004),
        batch_size=10,
        batch_workers=4,
        max_attempts=100,
        lock_timeout_s=1.0,
    )


@pytest.fixture
def prober() -> FakeProber:
    return FakeProber()


@pytest.fixture
def liveness() -> FakeLiveness:
    return FakeLiveness(alive={os.getpid()})


@pytest.fixture
def markers(runtime_dir: Path) -> RunStateMarkers:
    return RunStateMarkers(runtime_dir)


@pytest.fixture
def store(config: PortsConfig, prober: FakeProber) -> RegistryStore:
    return RegistryStore.from_config(config, prober=prober)


@pytest.fixture
def allocator(
    config: PortsConfig,
    store: RegistryStore,
    prober: FakeProber,
    markers: RunStateMarkers,
    liveness: FakeLiveness,
) -> PortAllocator:
    """Allocator wired to the fake prober and liveness checker."""
    return PortAllocator(
        config,
        store=store,
        prober=prober,
        markers=markers,
        liveness=liveness,
    )


@pytest.fixture
def seed_registry(config: PortsConfig) -> Callable[..., Path]:
    """Write a registry file directly.

    ``last_cleanup`` defaults to now so automatic cleanup does not run before
    the test gets to look at the seeded entries.

    Returns
    -------
    Callable[..., Path]
        ``seed(ports, last_cleanup=...)`` returning the registry path
    """
    path = config.registry_file
    assert path is not None

    def _seed(ports: dict, last_cleanup: int | None = -1) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "ports": ports,
            "last_cleanup": now_ms() if last_cleanup == -1 else last_cleanup,
        }
        path.write_text(json.dumps(data))
        return path

    return _seed


@pytest.fixture
def read_registry(config: PortsConfig) -> Callable[[], dict]:
    """Return a function that loads the raw registry JSON."""
    path = config.registry_file
    assert path is not None

    def _read() -> dict:
        return json.loads(path.read_text())

    return _read

"""Unit tests for PortAllocator.

Uses the small ranges from the ``config`` fixture (3000-3019, 4000-4004,
5000-5004) and a fake prober, so no real sockets are bound.
"""

import os
import threading
from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

import pytest

import kiteports.allocator as allocator_module
from kiteports.allocator import (
    PortAllocator,
    cleanup_stale_ports,
    find_free_port,
    get_allocator,
    get_port_status,
    release_port,
    reset_allocator,
)
from kiteports.config import PortsConfig
from kiteports.errors import (
    InvalidProjectNameError,
    PortExhaustionError,
    ResourceExhaustedError,
)
from kiteports.markers import RunStateMarkers
from kiteports.models import PortRange, now_ms
from kiteports.registry import RegistryStore
from kiteports_common.io import FileOperationError
from tests._fixtures.fakes import FakeLiveness, FakeProber

ALL_TEST_PORTS = (
    set(range(3000, 3020)) | set(range(4000, 4005)) | set(range(5000, 5005))
)


def _entry(port: int, pid: int = 1234) -> dict:
    return {"port": port, "allocated_at": now_ms(), "pid": pid}


class TestAllocate:
    """Tier order of PortAllocator.allocate."""

    def test_preferred_port_when_free(self, allocator: PortAllocator) -> None:
        assert allocator.allocate(3000, "shop") == 3000

    def test_records_owner(self, allocator: PortAllocator) -> None:
        allocator.allocate(3000, "shop", owner_pid=os.getpid())

        entry = allocator.store.get("shop")
        assert entry is not None
        assert entry.port == 3000
        assert entry.owner_pid == os.getpid()

    def test_preferred_inside_primary_range(self, allocator: PortAllocator) -> None:
        assert allocator.allocate(3007, "shop") == 3007

    def test_skips_allocated_preferred(
        self,
        allocator: PortAllocator,
        seed_registry: Callable[..., Path],
    ) -> None:
        seed_registry({"blog": _entry(3000)})

        assert allocator.allocate(3000, "shop") == 3001

    def test_skips_busy_preferred(
        self,
        allocator: PortAllocator,
        prober: FakeProber,
    ) -> None:
        prober.busy.update({3000, 3001, 3002})

        assert allocator.allocate(3000, "shop") == 3003

    def test_preferred_outside_primary_starts_at_range(
        self,
        allocator: PortAllocator,
    ) -> None:
        """A preferred port below the primary range is not used directly."""
        assert allocator.allocate(80, "shop") == 3000

    def test_sequential_scan_after_batch(
        self,
        allocator: PortAllocator,
        prober: FakeProber,
    ) -> None:
        """Past the batch window the primary range is scanned one by one."""
        prober.busy.update(range(3000, 3015))

        assert allocator.allocate(3000, "shop") == 3015

    def test_busy_ports_probed_once_per_call(
        self,
        allocator: PortAllocator,
        prober: FakeProber,
    ) -> None:
        prober.busy.update(range(3000, 3015))

        allocator.allocate(3000, "shop")

        probed_busy = [p for p in prober.probed if p in prober.busy]
        assert len(probed_busy) == len(set(probed_busy))

    def test_falls_back_to_fallback_range(
        self,
        allocator: PortAllocator,
        prober: FakeProber,
    ) -> None:
        prober.busy.update(range(3000, 3020))

        assert allocator.allocate(3000, "shop") == 4000

    def test_falls_back_when_primary_is_registry_held(
        self,
        allocator: PortAllocator,
        prober: FakeProber,
        seed_registry: Callable[..., Path],
    ) -> None:
        seed_registry({f"p{port}": _entry(port) for port in range(3000, 3020)})

        assert allocator.allocate(3000, "shop") == 4000
        # Registry-held ports are skipped without probing
        assert not [p for p in prober.probed if 3000 <= p <= 3019]

    def test_falls_back_to_extended_range(
        self,
        allocator: PortAllocator,
        prober: FakeProber,
    ) -> None:
        prober.busy.update(range(3000, 3020))
        prober.busy.update(range(4000, 4005))

        assert allocator.allocate(3000, "shop") == 5000

    def test_exhaustion(
        self,
        allocator: PortAllocator,
        prober: FakeProber,
    ) -> None:
        prober.busy.update(ALL_TEST_PORTS)

        with pytest.raises(PortExhaustionError) as exc_info:
            allocator.allocate(3000, "shop")

        err = exc_info.value
        assert isinstance(err, ResourceExhaustedError)
        assert err.resource_type == "port"
        assert str(err) == (
            "Unable to find a free port. Please ensure you have available "
            "ports in range 3000-5004"
        )
        assert err.ranges == [(3000, 3019), (4000, 4004), (5000, 5004)]
        assert err.details["project_name"] == "shop"
        assert allocator.store.get("shop") is None

    def test_default_ranges_exhaustion_message(self, runtime_dir: Path) -> None:
        prober = FakeProber(busy=range(1, 65536))
        allocator = PortAllocator(
            PortsConfig(runtime_dir=runtime_dir, max_attempts=5),
            prober=prober,
        )

        with pytest.raises(PortExhaustionError, match="in range 3000-9999"):
            allocator.allocate(3000, "shop")

    def test_max_attempts_limits_probes_per_range(
        self,
        runtime_dir: Path,
    ) -> None:
        """Each sequential range gives up after max_attempts probes."""
        prober = FakeProber(busy=range(3000, 4000))
        config = PortsConfig(
            runtime_dir=runtime_dir,
            primary_range=PortRange(3000, 3999),
            fallback_range=PortRange(4000, 4999),
            extended_range=PortRange(5000, 5999),
            batch_size=10,
            max_attempts=20,
        )
        allocator = PortAllocator(config, prober=prober, liveness=FakeLiveness())

        assert allocator.allocate(3000, "shop") == 4000
        primary_probes = [p for p in prober.probed if 3000 <= p <= 3999]
        # Preferred, the rest of the batch window, then max_attempts
        assert len(primary_probes) == 10 + 20

    def test_invalid_name(self, allocator: PortAllocator) -> None:
        with pytest.raises(InvalidProjectNameError):
            allocator.allocate(3000, "bad/name")

    def test_name_is_trimmed(self, allocator: PortAllocator) -> None:
        allocator.allocate(3000, "  shop ")
        assert allocator.store.get("shop") is not None


class TestReuse:
    """Stability of an existing allocation."""

    def test_repeat_allocation_returns_same_port(
        self,
        allocator: PortAllocator,
    ) -> None:
        first = allocator.allocate(3000, "shop")
        second = allocator.allocate(3010, "shop")

        assert first == second == 3000
        assert allocator.store.read().allocated_ports() == {3000}

    def test_keeps_port_with_own_live_listener(
        self,
        allocator: PortAllocator,
        prober: FakeProber,
        markers: RunStateMarkers,
    ) -> None:
        """The project's own running server holding the port keeps it."""
        port = allocator.allocate(3000, "shop", owner_pid=os.getpid())
        markers.write("shop", pid=os.getpid(), port=port)
        prober.busy.add(port)

        assert allocator.allocate(3000, "shop", owner_pid=os.getpid()) == port

    def test_reuse_records_new_owner(
        self,
        allocator: PortAllocator,
        markers: RunStateMarkers,
    ) -> None:
        """A restarted project's entry is judged by its new server process."""
        dead_pid = 999_999
        first = allocator.allocate(3000, "shop", owner_pid=dead_pid)
        second = allocator.allocate(3000, "shop", owner_pid=os.getpid())
        markers.write("shop", pid=os.getpid(), port=second)

        assert first == second == 3000
        entry = allocator.store.get("shop")
        assert entry is not None
        assert entry.owner_pid == os.getpid()
        assert allocator.cleanup() == 0
        assert markers.exists("shop")
        assert set(allocator.status().allocations) == {"shop"}

    def test_reuse_refreshes_allocated_at(
        self,
        allocator: PortAllocator,
        seed_registry: Callable[..., Path],
    ) -> None:
        seed_registry(
            {"shop": {"port": 3004, "allocated_at": 1, "pid": 999_999}},
        )

        assert allocator.allocate(3000, "shop", owner_pid=os.getpid()) == 3004
        entry = allocator.store.get("shop")
        assert entry is not None
        assert entry.allocated_at > 1
        assert entry.owner_pid == os.getpid()

    def test_reallocates_when_port_taken_by_stranger(
        self,
        allocator: PortAllocator,
        prober: FakeProber,
    ) -> None:
        """Busy port without a live owner means someone else took it."""
        allocator.allocate(3000, "shop", owner_pid=999_999)
        prober.busy.add(3000)

        assert allocator.allocate(3000, "shop") == 3001
        assert allocator.store.read().allocated_ports() == {3001}


class TestUniqueness:
    """No two projects ever hold the same port."""

    def test_sequential_projects_get_distinct_ports(
        self,
        allocator: PortAllocator,
    ) -> None:
        ports = [allocator.allocate(3000, f"p{i}") for i in range(5)]

        assert ports == [3000, 3001, 3002, 3003, 3004]

    def test_concurrent_allocations_are_unique(
        self,
        allocator: PortAllocator,
        seed_registry: Callable[..., Path],
    ) -> None:
        # Recent last_cleanup keeps the reaper from dropping unmarked entries
        seed_registry({})
        results: dict[str, int] = {}
        errors: list[BaseException] = []
        barrier = threading.Barrier(10)

        def allocate(name: str) -> None:
            barrier.wait()
            try:
                results[name] = allocator.allocate(3000, name)
            except Exception as e:
                errors.append(e)

        threads = [
            threading.Thread(target=allocate, args=(f"p{i}",)) for i in range(10)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(set(results.values())) == 10
        registry = allocator.store.read()
        assert len(registry.allocated_ports()) == len(registry.entries) == 10

    def test_separate_allocators_share_registry(
        self,
        config: PortsConfig,
        prober: FakeProber,
        liveness: FakeLiveness,
    ) -> None:
        """Two allocators on one registry file behave like two processes."""
        first = PortAllocator(config, prober=prober, liveness=liveness)
        second = PortAllocator(config, prober=prober, liveness=liveness)

        assert first.allocate(3000, "shop") == 3000
        assert second.allocate(3000, "blog") == 3001

    def test_lost_race_moves_on(
        self,
        allocator: PortAllocator,
        store: RegistryStore,
    ) -> None:
        """A reservation that loses to another writer continues the search."""
        original = store.reserve
        calls: list[int] = []

        def racing_reserve(name, port, owner_pid=None):
            calls.append(port)
            if len(calls) == 1:
                # Another process claims the port first
                original("rival", port)
                return None
            return original(name, port, owner_pid=owner_pid)

        with patch.object(store, "reserve", side_effect=racing_reserve):
            port = allocator.allocate(3000, "shop")

        assert calls[0] == 3000
        assert port == 3001
        assert allocator.store.get("rival").port == 3000


class TestReleaseAndCleanup:
    """Release, status and cleanup through the allocator."""

    def test_release_then_reallocate(self, allocator: PortAllocator) -> None:
        allocator.allocate(3000, "shop")

        assert allocator.release("shop") is True
        assert allocator.release("shop") is False
        assert allocator.allocate(3000, "blog") == 3000

    def test_release_unknown_leaves_status(self, allocator: PortAllocator) -> None:
        allocator.allocate(3000, "shop")
        before = allocator.status().to_dict()

        assert allocator.release("blog") is False
        assert allocator.status().to_dict() == before

    def test_status(self, allocator: PortAllocator) -> None:
        allocator.allocate(3000, "shop")
        allocator.allocate(3000, "blog")

        status = allocator.status()

        assert status.total_allocations == 2
        assert {e.port for e in status.allocations.values()} == {3000, 3001}
        assert status.last_cleanup is not None

    def test_manual_cleanup(
        self,
        allocator: PortAllocator,
        markers: RunStateMarkers,
    ) -> None:
        allocator.allocate(3000, "shop")
        allocator.allocate(3000, "blog")
        markers.write("shop", pid=os.getpid(), port=3000)

        # blog has no marker
        assert allocator.cleanup() == 1
        assert set(allocator.status().allocations) == {"shop"}

    def test_auto_cleanup_frees_stale_ports(
        self,
        allocator: PortAllocator,
        seed_registry: Callable[..., Path],
    ) -> None:
        """An overdue pass runs first, so a stale holder's port is reused."""
        seed_registry({"old": _entry(3000)}, last_cleanup=None)

        assert allocator.allocate(3000, "shop") == 3000
        assert set(allocator.status().allocations) == {"shop"}


class TestScenario:
    """End-to-end story across several projects."""

    def test_release_then_cleanup_empties_registry(
        self,
        allocator: PortAllocator,
        prober: FakeProber,
    ) -> None:
        a = allocator.allocate(3000, "a")
        prober.busy.add(a)
        b = allocator.allocate(3000, "b")

        assert (a, b) == (3000, 3001)
        allocator.release("a")
        assert allocator.status().total_allocations == 1
        # b never wrote a run-state marker
        assert allocator.cleanup() == 1
        assert allocator.status().total_allocations == 0

    def test_three_projects_lifecycle(
        self,
        allocator: PortAllocator,
        prober: FakeProber,
        markers: RunStateMarkers,
    ) -> None:
        pid = os.getpid()

        shop = allocator.allocate(3000, "shop", owner_pid=pid)
        markers.write("shop", pid=pid, port=shop)
        prober.busy.add(shop)

        blog = allocator.allocate(3000, "blog", owner_pid=pid)
        markers.write("blog", pid=pid, port=blog)
        prober.busy.add(blog)

        wiki = allocator.allocate(3000, "wiki", owner_pid=pid)

        assert (shop, blog, wiki) == (3000, 3001, 3002)

        # blog stops
        allocator.release("blog")
        markers.remove("blog")
        prober.busy.discard(blog)

        assert allocator.allocate(3000, "docs", owner_pid=pid) == 3001
        assert allocator.allocate(3000, "shop", owner_pid=pid) == 3000


class TestRegistryFailures:
    """Registry write failures are not search outcomes."""

    def test_unwritable_registry_propagates(
        self,
        allocator: PortAllocator,
        seed_registry: Callable[..., Path],
    ) -> None:
        seed_registry({})

        with patch.object(
            allocator.store,
            "write",
            side_effect=FileOperationError("read-only"),
        ):
            with pytest.raises(FileOperationError, match="read-only"):
                allocator.allocate(3000, "shop")


class TestModuleApi:
    """Module-level convenience functions."""

    def test_default_allocator_is_cached(self) -> None:
        assert get_allocator() is get_allocator()

    def test_reset_allocator(self) -> None:
        first = get_allocator()
        reset_allocator()
        assert get_allocator() is not first

    def test_functions_use_default_allocator(
        self,
        allocator: PortAllocator,
    ) -> None:
        allocator_module._allocator = allocator

        port = find_free_port("shop")
        assert port == 3000
        assert get_port_status().total_allocations == 1
        assert cleanup_stale_ports() == 1
        assert release_port("shop") is False

    def test_default_allocator_uses_kite_home(
        self,
        set_env: Callable[[str, str], None],
        tmp_path: Path,
    ) -> None:
        set_env("KITE_HOME", str(tmp_path / "kite"))

        allocator = get_allocator()

        assert allocator.config.runtime_dir == tmp_path / "kite" / "runtime"
        assert allocator.config.registry_file == (
            tmp_path / "kite" / "runtime" / ".port-registry.json"
        )

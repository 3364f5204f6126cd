"""Shared pytest fixtures for sandpreview tests.

Wires the engine Container with in-memory fakes so no test spawns npm
or esbuild or touches the network.
"""

from collections.abc import Iterator
from pathlib import Path

import pytest

from sandpreview.config import LimitsConfig, LocksConfig, PreviewConfig
from sandpreview.engine import Container
from sandpreview.engine.mocks import (
    FakeBundler,
    FakeInstaller,
    MemoryDiagnostics,
    RecordingSurfaceFactory,
    StaticRegistry,
)

MIB = 1024 * 1024

REGISTRY_DOCUMENTS = {
    "framer-motion": {"version": "11.0.3", "dist.unpackedSize": 2 * MIB, "dist.size": MIB},
    "zustand": {"version": "4.5.0", "dist.unpackedSize": 300_000},
    "three": {"version": "0.160.0", "dist.unpackedSize": 30 * MIB},
}


@pytest.fixture
def preview_config(tmp_path: Path) -> PreviewConfig:
    """Config rooted in a temporary home with quick lock timeouts."""
    return PreviewConfig(
        home=tmp_path / "home",
        limits=LimitsConfig(),
        locks=LocksConfig(timeout_seconds=1.0, poll_interval_seconds=0.05),
    )


@pytest.fixture
def registry() -> StaticRegistry:
    return StaticRegistry(dict(REGISTRY_DOCUMENTS))


@pytest.fixture
def installer() -> FakeInstaller:
    return FakeInstaller()


@pytest.fixture
def bundler() -> FakeBundler:
    return FakeBundler()


@pytest.fixture
def surfaces() -> RecordingSurfaceFactory:
    return RecordingSurfaceFactory()


@pytest.fixture
def diagnostics() -> MemoryDiagnostics:
    return MemoryDiagnostics()


@pytest.fixture
def container(
    preview_config: PreviewConfig,
    registry: StaticRegistry,
    installer: FakeInstaller,
    bundler: FakeBundler,
    surfaces: RecordingSurfaceFactory,
    diagnostics: MemoryDiagnostics,
) -> Iterator[type[Container]]:
    """Container wired with fakes; reset after the test.

    Yields:
        The Container class, ready for Container.orchestrator()
    """
    Container.set_config(preview_config)
    Container.set_registry(registry)
    Container.set_installer(installer)
    Container.set_bundler(bundler)
    Container.set_surface_factory(surfaces)
    Container.set_diagnostics(diagnostics)
    yield Container
    Container.reset()

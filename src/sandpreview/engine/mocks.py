"""Fake implementations of engine protocols for tests.

In-memory stand-ins for the registry, package manager, bundler,
rendering surface and diagnostics sink. None of them spawn processes
or touch the network.
"""

import asyncio
from pathlib import Path
from typing import Any

from sandpreview.core.schemas import CommandResult, StageDiagnostic, SurfacePolicy
from sandpreview.engine.protocols import (
    Bundler,
    BundleRequest,
    DiagnosticsSink,
    Installer,
    InstallRequest,
    RegistryClient,
    SandboxSurface,
)
from sandpreview.exceptions import RegistryQueryError


def ok_result(stdout: str = "") -> CommandResult:
    return CommandResult(exit_code=0, stdout=stdout, stderr="", duration_seconds=0.0)


def failed_result(stderr: str = "Error: test failure", exit_code: int = 1) -> CommandResult:
    return CommandResult(exit_code=exit_code, stdout="", stderr=stderr, duration_seconds=0.0)


class StaticRegistry:
    """Registry answering from a dict of package documents.

    Args:
        packages: name -> document returned by both query shapes
        narrow_failures: names whose narrow query raises
        unreachable: every query raises, as if the network were down
        delay: seconds to sleep before answering
    """

    def __init__(
        self,
        packages: dict[str, Any] | None = None,
        narrow_failures: set[str] | None = None,
        unreachable: bool = False,
        delay: float = 0.0,
    ) -> None:
        self.packages = dict(packages or {})
        self.narrow_failures = set(narrow_failures or ())
        self.unreachable = unreachable
        self.delay = delay
        self.calls: list[tuple[str, str]] = []

    async def _answer(self, name: str, shape: str) -> Any:
        self.calls.append((shape, name))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.unreachable:
            raise RegistryQueryError(name, "registry unreachable")
        if shape == "fields" and name in self.narrow_failures:
            raise RegistryQueryError(name, "narrow query failed")
        return self.packages.get(name)

    async def view_fields(self, name: str) -> Any:
        return await self._answer(name, "fields")

    async def view_full(self, name: str) -> Any:
        return await self._answer(name, "full")


class FakeInstaller:
    """Records install requests; on success creates node_modules/."""

    def __init__(self, result: CommandResult | None = None, create_cache: bool = True) -> None:
        self.result = result or ok_result()
        self.create_cache = create_cache
        self.calls: list[InstallRequest] = []

    async def install(self, request: InstallRequest) -> CommandResult:
        self.calls.append(request)
        if self.result.succeeded and self.create_cache:
            (request.cwd / "node_modules").mkdir(exist_ok=True)
        return self.result

    def set_result(self, result: CommandResult) -> None:
        """Change the result for subsequent calls."""
        self.result = result


class FakeBundler:
    """Records bundle requests; on success writes a placeholder bundle."""

    def __init__(self, result: CommandResult | None = None, write_output: bool = True) -> None:
        self.result = result or ok_result()
        self.write_output = write_output
        self.calls: list[BundleRequest] = []

    async def bundle(self, request: BundleRequest) -> CommandResult:
        self.calls.append(request)
        if self.result.succeeded and self.write_output:
            request.output_path.write_text("export {};\n", encoding="utf-8")
        return self.result

    def set_result(self, result: CommandResult) -> None:
        self.result = result


class RecordingSurface:
    """Surface that remembers what it was asked to load."""

    def __init__(self, policy: SurfacePolicy, title: str, fail_on_file: bool = False) -> None:
        self.policy = policy
        self.title = title
        self.fail_on_file = fail_on_file
        self.loaded_files: list[Path] = []
        self.loaded_urls: list[str] = []

    async def load_file(self, path: Path) -> None:
        if self.fail_on_file:
            raise RuntimeError(f"surface refused {path}")
        self.loaded_files.append(path)

    async def load_url(self, url: str) -> None:
        self.loaded_urls.append(url)


class RecordingSurfaceFactory:
    """SurfaceFactory keeping every surface it created."""

    def __init__(self, fail_on_file: bool = False) -> None:
        self.fail_on_file = fail_on_file
        self.surfaces: list[RecordingSurface] = []

    def __call__(self, policy: SurfacePolicy, title: str) -> RecordingSurface:
        surface = RecordingSurface(policy, title, fail_on_file=self.fail_on_file)
        self.surfaces.append(surface)
        return surface


class MemoryDiagnostics:
    """Diagnostics sink keeping records in a list."""

    def __init__(self) -> None:
        self.records: list[StageDiagnostic] = []

    def record(self, diagnostic: StageDiagnostic) -> None:
        self.records.append(diagnostic)

    def reset(self) -> None:
        self.records.clear()


# Verify protocol compliance at import time
assert isinstance(StaticRegistry(), RegistryClient)
assert isinstance(FakeInstaller(), Installer)
assert isinstance(FakeBundler(), Bundler)
assert isinstance(RecordingSurface(SurfacePolicy(), "check"), SandboxSurface)
assert isinstance(MemoryDiagnostics(), DiagnosticsSink)

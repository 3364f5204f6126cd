"""Protocols for the preview engine.

Narrow capability interfaces for everything that talks to the outside
world (registry, package manager, bundler, rendering surface, diagnostics),
so the pipeline can be tested with fakes instead of real processes.
"""

from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from sandpreview.core.schemas import CommandResult, StageDiagnostic, SurfacePolicy
from sandpreview.registry.protocols import RegistryClient


class InstallRequest(BaseModel):
    """Package manager invocation against a scaffolded manifest."""

    model_config = ConfigDict(frozen=True)

    cwd: Path
    registry_url: str
    ignore_scripts: bool = True
    production_only: bool = True
    non_interactive: bool = True
    prefer_offline: bool = False
    cache_dir: Path | None = None
    timeout: float | None = None


class BundleRequest(BaseModel):
    """Bundler invocation for a scaffolded entry module."""

    model_config = ConfigDict(frozen=True)

    entry_path: Path
    output_path: Path
    working_dir: Path
    target: str = "browser"
    module_format: str = "esm"
    jsx: str = "automatic"
    loaders: dict[str, str] = Field(default_factory=dict)
    aliases: dict[str, str] = Field(default_factory=dict)
    defines: dict[str, str] = Field(default_factory=dict)
    resolve_extensions: list[str] = Field(default_factory=list)
    timeout: float | None = None


@runtime_checkable
class Installer(Protocol):
    """Installs the dependencies declared in a manifest."""

    async def install(self, request: InstallRequest) -> CommandResult:
        ...


@runtime_checkable
class Bundler(Protocol):
    """Compiles an entry module into one browser bundle."""

    async def bundle(self, request: BundleRequest) -> CommandResult:
        ...


@runtime_checkable
class SandboxSurface(Protocol):
    """An isolated rendering surface with no native-capability bridge.

    Both methods return once the surface has begun loading.
    """

    async def load_file(self, path: Path) -> None:
        ...

    async def load_url(self, url: str) -> None:
        ...


@runtime_checkable
class SurfaceFactory(Protocol):
    """Creates one fresh surface per session."""

    def __call__(self, policy: SurfacePolicy, title: str) -> SandboxSurface:
        ...


@runtime_checkable
class DiagnosticsSink(Protocol):
    """Receives stage diagnostics for troubleshooting."""

    def record(self, diagnostic: StageDiagnostic) -> None:
        ...


__all__ = [
    "BundleRequest",
    "Bundler",
    "CommandResult",
    "DiagnosticsSink",
    "InstallRequest",
    "Installer",
    "RegistryClient",
    "SandboxSurface",
    "SurfaceFactory",
]

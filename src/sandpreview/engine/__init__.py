"""Preview execution engine.

- PipelineOrchestrator: one run request, classification to loaded preview
- Installer / Bundler / RegistryClient / SandboxSurface: capability protocols
- NpmInstaller / EsbuildBundler: default process-backed implementations
- Container: composition root binding defaults and test overrides
"""

from sandpreview.engine.protocols import (
    Bundler,
    BundleRequest,
    CommandResult,
    DiagnosticsSink,
    Installer,
    InstallRequest,
    RegistryClient,
    SandboxSurface,
    SurfaceFactory,
)
from sandpreview.engine.backends import EsbuildBundler, NpmInstaller
from sandpreview.process import run_command
from sandpreview.engine.bundle import BundleBuilder
from sandpreview.engine.diagnostics import JsonlDiagnosticsStore
from sandpreview.engine.install import DependencyInstaller, InstallOutcome
from sandpreview.engine.locks import ProjectLockRegistry
from sandpreview.engine.sandbox import (
    BrowserSurface,
    ExecutionSandbox,
    browser_surface_factory,
    ensure_html_document,
    inline_module_scripts,
    to_data_url,
)
from sandpreview.engine.pipeline import PipelineOrchestrator
from sandpreview.engine.container import Container

__all__ = [
    # Core classes
    "PipelineOrchestrator",
    "Container",
    # Protocols
    "Bundler",
    "BundleRequest",
    "CommandResult",
    "DiagnosticsSink",
    "Installer",
    "InstallRequest",
    "RegistryClient",
    "SandboxSurface",
    "SurfaceFactory",
    # Implementations
    "EsbuildBundler",
    "NpmInstaller",
    "BrowserSurface",
    "JsonlDiagnosticsStore",
    "ProjectLockRegistry",
    "run_command",
    # Stages
    "BundleBuilder",
    "DependencyInstaller",
    "InstallOutcome",
    "ExecutionSandbox",
    "browser_surface_factory",
    "ensure_html_document",
    "inline_module_scripts",
    "to_data_url",
]

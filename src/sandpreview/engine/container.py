"""Composition root for engine dependency injection.

The single place where concrete implementations are bound to protocols.

Usage:
    # Default usage (production)
    orchestrator = Container.orchestrator()

    # Testing with fakes
    Container.set_installer(FakeInstaller())
    Container.set_bundler(FakeBundler())
    orchestrator = Container.orchestrator()

    # Reset to defaults
    Container.reset()
"""

from sandpreview.config import PreviewConfig
from sandpreview.engine.backends import EsbuildBundler, NpmInstaller
from sandpreview.engine.diagnostics import JsonlDiagnosticsStore
from sandpreview.engine.locks import ProjectLockRegistry
from sandpreview.engine.pipeline import PipelineOrchestrator
from sandpreview.engine.protocols import (
    Bundler,
    DiagnosticsSink,
    Installer,
    RegistryClient,
    SurfaceFactory,
)
from sandpreview.engine.sandbox import ExecutionSandbox, browser_surface_factory
from sandpreview.registry.clients import create_registry_client


class Container:
    """Service container for engine dependencies.

    Defaults are built lazily from the current config; every setter
    accepts None to go back to the default on next access.
    """

    _config: PreviewConfig | None = None
    _registry: RegistryClient | None = None
    _installer: Installer | None = None
    _bundler: Bundler | None = None
    _diagnostics: DiagnosticsSink | None = None
    _locks: ProjectLockRegistry | None = None
    _surface_factory: SurfaceFactory | None = None

    @classmethod
    def config(cls) -> PreviewConfig:
        if cls._config is None:
            cls._config = PreviewConfig()
        return cls._config

    @classmethod
    def registry(cls) -> RegistryClient:
        """Registry client chosen by config.registry.client (npm view by default)."""
        if cls._registry is None:
            config = cls.config()
            cls._registry = create_registry_client(config.registry, config.tooling)
        return cls._registry

    @classmethod
    def installer(cls) -> Installer:
        if cls._installer is None:
            cls._installer = NpmInstaller(cls.config().tooling.npm_command)
        return cls._installer

    @classmethod
    def bundler(cls) -> Bundler:
        if cls._bundler is None:
            cls._bundler = EsbuildBundler(cls.config().tooling.esbuild_command)
        return cls._bundler

    @classmethod
    def diagnostics(cls) -> DiagnosticsSink:
        if cls._diagnostics is None:
            cls._diagnostics = JsonlDiagnosticsStore(cls.config().diagnostics_dir)
        return cls._diagnostics

    @classmethod
    def locks(cls) -> ProjectLockRegistry:
        """Process-wide lock registry; must be shared by all orchestrators."""
        if cls._locks is None:
            cls._locks = ProjectLockRegistry(cls.config().locks)
        return cls._locks

    @classmethod
    def surface_factory(cls) -> SurfaceFactory:
        if cls._surface_factory is None:
            cls._surface_factory = browser_surface_factory(cls.config().home / "documents")
        return cls._surface_factory

    @classmethod
    def orchestrator(cls) -> PipelineOrchestrator:
        """Create a fresh PipelineOrchestrator for one run request."""
        return PipelineOrchestrator(
            config=cls.config(),
            registry=cls.registry(),
            installer=cls.installer(),
            bundler=cls.bundler(),
            sandbox=ExecutionSandbox(cls.surface_factory()),
            diagnostics=cls.diagnostics(),
            locks=cls.locks(),
        )

    @classmethod
    def set_config(cls, config: PreviewConfig | None) -> None:
        """Override the config.

        Call before anything else is resolved; defaults already built from
        the previous config are kept.
        """
        cls._config = config

    @classmethod
    def set_registry(cls, registry: RegistryClient | None) -> None:
        cls._registry = registry

    @classmethod
    def set_installer(cls, installer: Installer | None) -> None:
        cls._installer = installer

    @classmethod
    def set_bundler(cls, bundler: Bundler | None) -> None:
        cls._bundler = bundler

    @classmethod
    def set_diagnostics(cls, diagnostics: DiagnosticsSink | None) -> None:
        cls._diagnostics = diagnostics

    @classmethod
    def set_surface_factory(cls, factory: SurfaceFactory | None) -> None:
        cls._surface_factory = factory

    @classmethod
    def reset(cls) -> None:
        """Reset all overrides to defaults.

        Call this in test teardown to ensure clean state.
        """
        cls._config = None
        cls._registry = None
        cls._installer = None
        cls._bundler = None
        cls._diagnostics = None
        cls._locks = None
        cls._surface_factory = None

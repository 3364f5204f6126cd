"""sandpreview exception hierarchy.

Usage:
    from sandpreview.exceptions import BuildFailedError, PreviewError

    try:
        await builder.build(project)
    except BuildFailedError as e:
        print(f"Bundle failed: {e.result.stderr}")
    except PreviewError as e:
        print(f"Preview error: {e}")

Only stage failures (PipelineError subclasses) are fatal to a pipeline stage,
and the orchestrator converts every one of them into the fallback render.
Ignored specifiers and rejected packages are not exceptions at all.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sandpreview.core.schemas import CommandResult


class PreviewError(Exception):
    """Base exception for all sandpreview errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


# Configuration Errors


class ConfigurationError(PreviewError):
    """Invalid sandpreview configuration.

    Raised when the YAML config cannot be parsed or holds invalid values.
    """

    pass


class InvalidArgumentError(PreviewError):
    """Invalid command argument or function parameter."""

    def __init__(self, argument: str, reason: str) -> None:
        self.argument = argument
        self.reason = reason
        super().__init__(f"Invalid argument '{argument}': {reason}")


# Registry Errors


class RegistryQueryError(PreviewError):
    """A registry metadata query failed.

    Never fatal: the resolver treats it as an unresolved candidate.
    """

    def __init__(self, package: str, reason: str) -> None:
        self.package = package
        self.reason = reason
        super().__init__(f"Registry query for '{package}' failed: {reason}")


# Pipeline Errors


class PipelineError(PreviewError):
    """Base class for errors fatal to a single pipeline stage."""

    stage: str = "pipeline"


class ScaffoldError(PipelineError):
    """The scaffold directory could not be prepared."""

    stage = "scaffolding"


class ProjectLockTimeoutError(ScaffoldError):
    """The per-project lock could not be acquired in time."""

    def __init__(self, project_id: str, timeout_seconds: float) -> None:
        self.project_id = project_id
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Project '{project_id}' is locked by another run (waited {timeout_seconds}s)"
        )


class InstallFailedError(PipelineError):
    """Dependency installation failed and no usable cache exists."""

    stage = "installing"

    def __init__(self, message: str, result: CommandResult | None = None) -> None:
        self.result = result
        if result is not None and result.stderr:
            message += f": {result.stderr[:200]}"
        super().__init__(message)


class BuildFailedError(PipelineError):
    """The bundler could not produce the bundle."""

    stage = "bundling"

    def __init__(self, message: str, result: CommandResult | None = None) -> None:
        self.result = result
        if result is not None and result.stderr:
            message += f": {result.stderr[:200]}"
        super().__init__(message)


# Internal Errors


class PipelineStateError(PreviewError):
    """Illegal orchestrator transition (a bug, not a stage failure)."""

    pass


class SandboxPolicyError(PreviewError):
    """A surface policy would expose a native-capability bridge."""

    pass

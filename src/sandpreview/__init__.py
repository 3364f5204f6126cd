"""sandpreview - isolated previews of untrusted front-end source.

Classifies submitted source, bounds its third-party dependencies,
scaffolds and bundles a project, and loads the result into an
isolated rendering surface with a guaranteed fallback.
"""

from sandpreview.exceptions import (
    BuildFailedError,
    ConfigurationError,
    InstallFailedError,
    InvalidArgumentError,
    PipelineError,
    PipelineStateError,
    PreviewError,
    ProjectLockTimeoutError,
    RegistryQueryError,
    SandboxPolicyError,
    ScaffoldError,
)

__version__ = "0.1.0"

__all__ = [
    # Base exception
    "PreviewError",
    # Configuration
    "ConfigurationError",
    "InvalidArgumentError",
    # Registry
    "RegistryQueryError",
    # Pipeline stages
    "PipelineError",
    "ScaffoldError",
    "ProjectLockTimeoutError",
    "InstallFailedError",
    "BuildFailedError",
    # Internal
    "PipelineStateError",
    "SandboxPolicyError",
]

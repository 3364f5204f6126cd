"""Pydantic schemas for preview artifacts, packages and pipeline runs."""

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ArtifactKind(str, Enum):
    """What the submitted source text is."""

    MARKUP = "markup"
    COMPONENT_SCRIPT = "component-script"


class PersistenceMode(str, Enum):
    """Scaffold lifecycle for a run."""

    EPHEMERAL = "ephemeral"
    PERSISTENT = "persistent"


class PipelineState(str, Enum):
    """Orchestrator states. LOADED and FALLBACK_LOADED are terminal."""

    PENDING = "pending"
    CLASSIFIED = "classified"
    EXTRACTING = "extracting"
    RESOLVING = "resolving"
    SCAFFOLDING = "scaffolding"
    INSTALLING = "installing"
    BUNDLING = "bundling"
    LOADED = "loaded"
    FALLBACK_LOADED = "fallback_loaded"


class ResourceKind(str, Enum):
    """What a sandbox session ended up loading."""

    BUNDLE = "bundle"
    DOCUMENT = "document"
    FALLBACK = "fallback"


class SourceArtifact(BaseModel):
    """Untrusted source submitted for preview.

    Frozen because a run must see the same text from classification to load.
    """

    model_config = ConfigDict(frozen=True)

    text: str
    # Used as a directory name for persistent runs
    project_id: str = Field(default="scratch", pattern=r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")
    mode: PersistenceMode = PersistenceMode.EPHEMERAL
    title: str | None = None


class ImportCandidate(BaseModel):
    """A normalized external package name found in source text."""

    model_config = ConfigDict(frozen=True)

    name: str
    specifiers: tuple[str, ...] = ()


class PackageSafetyRecord(BaseModel):
    """Admission decision for one candidate package."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str | None = None
    size_bytes: int = 0
    accepted: bool = False
    reason: str | None = None

    @property
    def version_range(self) -> str:
        """Compatible range pinned to the resolved version."""
        return f"^{self.version}"


class ResolutionResult(BaseModel):
    """Ordered admission decisions for a candidate list."""

    records: list[PackageSafetyRecord] = Field(default_factory=list)

    @property
    def accepted(self) -> list[PackageSafetyRecord]:
        return [r for r in self.records if r.accepted]

    @property
    def rejected(self) -> list[PackageSafetyRecord]:
        return [r for r in self.records if not r.accepted]

    @property
    def total_bytes(self) -> int:
        return sum(r.size_bytes for r in self.accepted)


class ScaffoldedProject(BaseModel):
    """A buildable project directory generated for one run."""

    model_config = ConfigDict(frozen=True)

    root: Path
    manifest_path: Path
    shell_path: Path
    entry_path: Path
    bootstrap_path: Path
    stub_paths: list[Path] = Field(default_factory=list)
    dependencies: dict[str, str] = Field(default_factory=dict)
    mode: PersistenceMode = PersistenceMode.EPHEMERAL
    bundle_filename: str = "bundle.js"

    @property
    def bundle_path(self) -> Path:
        return self.root / self.bundle_filename

    @property
    def cache_dir(self) -> Path:
        """Installed-dependency cache (node_modules)."""
        return self.root / "node_modules"


class CommandResult(BaseModel):
    """Result of an external tool invocation.

    Frozen because results are immutable facts about past invocations.
    """

    model_config = ConfigDict(frozen=True)

    exit_code: int
    stdout: str
    stderr: str
    duration_seconds: float
    timed_out: bool = False

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


class BundleArtifact(BaseModel):
    """Compiled bundle produced by a run."""

    model_config = ConfigDict(frozen=True)

    path: Path
    succeeded: bool
    result: CommandResult | None = None


class SurfacePolicy(BaseModel):
    """Isolation settings handed to every rendering surface."""

    model_config = ConfigDict(frozen=True)

    native_bridge: bool = False
    context_isolation: bool = True
    scripting_sandbox: bool = True
    web_security: bool = True


class ExecutionSession(BaseModel):
    """One rendering surface and the resource it loaded."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    title: str
    surface: Any
    policy: SurfacePolicy = Field(default_factory=SurfacePolicy)
    resource: str | None = None
    resource_kind: ResourceKind | None = None


class StageDiagnostic(BaseModel):
    """Troubleshooting record for a stage failure or warning."""

    run_id: str
    project_id: str
    stage: str
    severity: str = "error"
    message: str
    detail: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class PipelineOutcome(BaseModel):
    """Everything a run produced, returned instead of raised."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    run_id: str
    project_id: str
    kind: ArtifactKind
    state: PipelineState
    history: list[PipelineState] = Field(default_factory=list)
    candidates: list[ImportCandidate] = Field(default_factory=list)
    resolution: ResolutionResult | None = None
    project: ScaffoldedProject | None = None
    bundle: BundleArtifact | None = None
    session: ExecutionSession | None = None
    diagnostics: list[StageDiagnostic] = Field(default_factory=list)

    @property
    def fell_back(self) -> bool:
        return self.state == PipelineState.FALLBACK_LOADED

"""Pipeline orchestration for a single preview run.

State machine, terminal on LOADED or FALLBACK_LOADED:

    CLASSIFIED -> (markup) LOADED
    CLASSIFIED -> (component-script) EXTRACTING -> RESOLVING -> SCAFFOLDING
               -> INSTALLING -> BUNDLING -> LOADED

Any exception from EXTRACTING through BUNDLING (or from handing the bundle
to the surface) short-circuits to FALLBACK_LOADED, which loads the raw
source wrapped in a document. Nothing is retried and no state is entered
twice. Build a new orchestrator for every run request.
"""

import logging
import traceback
import uuid
from contextlib import AbstractAsyncContextManager, nullcontext
from pathlib import Path

from sandpreview.analysis.classifier import classify
from sandpreview.analysis.imports import extract_imports
from sandpreview.config import PreviewConfig
from sandpreview.core.schemas import (
    ArtifactKind,
    ExecutionSession,
    PersistenceMode,
    PipelineOutcome,
    PipelineState,
    SourceArtifact,
    StageDiagnostic,
)
from sandpreview.engine.bundle import BundleBuilder
from sandpreview.engine.install import DependencyInstaller
from sandpreview.engine.locks import ProjectLockRegistry
from sandpreview.engine.protocols import Bundler, DiagnosticsSink, Installer, RegistryClient
from sandpreview.engine.sandbox import ExecutionSandbox
from sandpreview.exceptions import PipelineError, PipelineStateError
from sandpreview.registry.resolver import PackageSafetyResolver
from sandpreview.scaffold.project import ProjectScaffolder

logger = logging.getLogger(__name__)

TERMINAL_STATES = frozenset({PipelineState.LOADED, PipelineState.FALLBACK_LOADED})


class PipelineOrchestrator:
    """Sequences the stages for one run and owns the fallback policy."""

    def __init__(
        self,
        config: PreviewConfig,
        registry: RegistryClient,
        installer: Installer,
        bundler: Bundler,
        sandbox: ExecutionSandbox,
        diagnostics: DiagnosticsSink,
        locks: ProjectLockRegistry,
        run_id: str | None = None,
    ) -> None:
        self._config = config
        self._resolver = PackageSafetyResolver(
            registry, limits=config.limits, query_timeout=config.registry.timeout_seconds
        )
        self._scaffolder = ProjectScaffolder(config.baseline_dependencies)
        self._installer = DependencyInstaller(installer, config.registry, config.tooling)
        self._builder = BundleBuilder(bundler, config.tooling)
        self._sandbox = sandbox
        self._diagnostics = diagnostics
        self._locks = locks

        self.run_id = run_id or uuid.uuid4().hex[:12]
        self.state = PipelineState.PENDING
        self.history: list[PipelineState] = []
        self._started = False

    def _transition(self, state: PipelineState) -> None:
        if self.state in TERMINAL_STATES:
            raise PipelineStateError(f"Run {self.run_id} already finished in {self.state.value}")
        if state in self.history:
            raise PipelineStateError(f"Run {self.run_id} cannot re-enter {state.value}")
        logger.debug("Run %s: %s -> %s", self.run_id, self.state.value, state.value)
        self.history.append(state)
        self.state = state

    def _record(
        self,
        outcome: PipelineOutcome,
        stage: str,
        message: str,
        detail: str = "",
        severity: str = "error",
    ) -> None:
        diagnostic = StageDiagnostic(
            run_id=self.run_id,
            project_id=outcome.project_id,
            stage=stage,
            severity=severity,
            message=message,
            detail=detail,
        )
        outcome.diagnostics.append(diagnostic)
        try:
            self._diagnostics.record(diagnostic)
        except Exception:
            # Diagnostics never block the fallback render
            logger.exception("Could not persist diagnostic for run %s", self.run_id)

    def _exclusive(self, artifact: SourceArtifact, directory: Path) -> AbstractAsyncContextManager:
        if artifact.mode == PersistenceMode.PERSISTENT:
            return self._locks.hold(artifact.project_id, directory)
        return nullcontext()

    async def run(self, artifact: SourceArtifact) -> PipelineOutcome:
        """Run the artifact to a loaded preview or the fallback document.

        Stage failures never propagate; they are recorded in the outcome's
        diagnostics and the fallback is loaded instead.

        Raises:
            PipelineStateError: If this orchestrator has already run
        """
        if self._started:
            raise PipelineStateError("Each run request needs its own orchestrator")
        self._started = True

        kind = classify(artifact.text)
        self._transition(PipelineState.CLASSIFIED)
        logger.info("Run %s: %s classified as %s", self.run_id, artifact.project_id, kind.value)

        outcome = PipelineOutcome(
            run_id=self.run_id,
            project_id=artifact.project_id,
            kind=kind,
            state=self.state,
        )
        session = self._sandbox.open(artifact.title or artifact.project_id)
        outcome.session = session

        if kind == ArtifactKind.MARKUP:
            await self._sandbox.load_document(session, artifact.text)
            self._transition(PipelineState.LOADED)
        else:
            try:
                await self._run_component(artifact, outcome, session)
            except Exception as e:
                stage = e.stage if isinstance(e, PipelineError) else self.state.value
                if not isinstance(e, PipelineError):
                    logger.exception("Run %s: unexpected failure while %s", self.run_id, stage)
                else:
                    logger.warning("Run %s: %s", self.run_id, e)
                self._record(
                    outcome,
                    stage=stage,
                    message=str(e) or type(e).__name__,
                    detail="".join(traceback.format_exception(type(e), e, e.__traceback__)),
                )
                await self._sandbox.load_fallback(session, artifact.text)
                self._transition(PipelineState.FALLBACK_LOADED)

        outcome.state = self.state
        outcome.history = list(self.history)
        return outcome

    async def _run_component(
        self,
        artifact: SourceArtifact,
        outcome: PipelineOutcome,
        session: ExecutionSession,
    ) -> None:
        config = self._config

        self._transition(PipelineState.EXTRACTING)
        candidates = extract_imports(
            artifact.text,
            max_candidates=config.limits.max_packages,
            exclude=self._scaffolder.baseline_dependencies,
        )
        outcome.candidates = candidates

        self._transition(PipelineState.RESOLVING)
        resolution = await self._resolver.resolve(candidates)
        outcome.resolution = resolution
        for record in resolution.rejected:
            logger.info("Run %s: rejected %s (%s)", self.run_id, record.name, record.reason)

        self._transition(PipelineState.SCAFFOLDING)
        directory = self._scaffolder.prepare_directory(artifact, config.runs_dir, config.offline_dir)

        async with self._exclusive(artifact, directory):
            project = self._scaffolder.scaffold(artifact, resolution.accepted, directory)
            outcome.project = project

            self._transition(PipelineState.INSTALLING)
            installed = await self._installer.install(project)
            if installed.reused_cache:
                self._record(
                    outcome,
                    stage=PipelineState.INSTALLING.value,
                    message="Refresh install failed; reusing existing dependency cache",
                    detail=installed.result.stderr,
                    severity="warning",
                )

            self._transition(PipelineState.BUNDLING)
            outcome.bundle = await self._builder.build(project)

            await self._sandbox.load_bundle(session, project)
            self._transition(PipelineState.LOADED)

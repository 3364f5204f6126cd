"""Bundle stage: compile the scaffold entry into one browser module."""

import logging

from sandpreview.config import ToolingConfig
from sandpreview.core.schemas import BundleArtifact, ScaffoldedProject
from sandpreview.engine.protocols import Bundler, BundleRequest
from sandpreview.exceptions import BuildFailedError

logger = logging.getLogger(__name__)

LOADERS = {".ts": "ts", ".tsx": "tsx"}
RESOLVE_EXTENSIONS = [".tsx", ".ts", ".jsx", ".js", ".json"]
DEFINES = {"process.env.NODE_ENV": "production"}
UI_KIT_ALIAS = "@"


class BundleBuilder:
    """Builds the BundleRequest for a scaffold and runs the injected Bundler."""

    def __init__(self, bundler: Bundler, tooling: ToolingConfig | None = None) -> None:
        self._bundler = bundler
        self._tooling = tooling or ToolingConfig()

    def request_for(self, project: ScaffoldedProject) -> BundleRequest:
        return BundleRequest(
            entry_path=project.bootstrap_path,
            output_path=project.bundle_path,
            working_dir=project.root,
            loaders=dict(LOADERS),
            # Alias resolves to the scaffold root, where the stubs live
            aliases={UI_KIT_ALIAS: "."},
            defines=dict(DEFINES),
            resolve_extensions=list(RESOLVE_EXTENSIONS),
            timeout=self._tooling.bundle_timeout_seconds,
        )

    async def build(self, project: ScaffoldedProject) -> BundleArtifact:
        """Bundle the scaffold.

        Raises:
            BuildFailedError: On any resolution or compile error, or when no output was written
        """
        request = self.request_for(project)
        # A bundle left by an earlier run must not pass the output check
        request.output_path.unlink(missing_ok=True)
        result = await self._bundler.bundle(request)

        if result.timed_out:
            raise BuildFailedError("Bundling timed out", result)
        if result.exit_code != 0:
            raise BuildFailedError(f"Bundling failed with exit code {result.exit_code}", result)
        if not request.output_path.exists():
            raise BuildFailedError(f"Bundler reported success but wrote no {request.output_path.name}", result)

        logger.info("Bundled %s in %.2fs", request.output_path, result.duration_seconds)
        return BundleArtifact(path=request.output_path, succeeded=True, result=result)

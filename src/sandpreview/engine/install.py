"""Dependency installation policy.

Ephemeral scaffolds always install fresh and a failure is fatal.
Persistent scaffolds install when no cache exists yet (fatal on failure)
and otherwise attempt a best-effort refresh; when that refresh fails
the existing node_modules/ is used as is.
"""

import logging

from pydantic import BaseModel

from sandpreview.config import RegistryConfig, ToolingConfig
from sandpreview.core.schemas import CommandResult, PersistenceMode, ScaffoldedProject
from sandpreview.engine.protocols import Installer, InstallRequest
from sandpreview.exceptions import InstallFailedError

logger = logging.getLogger(__name__)


class InstallOutcome(BaseModel):
    """What the install stage did."""

    result: CommandResult
    refreshed: bool = False
    reused_cache: bool = False


class DependencyInstaller:
    """Runs the injected Installer under the persistence-mode policy."""

    def __init__(
        self,
        installer: Installer,
        registry: RegistryConfig | None = None,
        tooling: ToolingConfig | None = None,
    ) -> None:
        self._installer = installer
        self._registry = registry or RegistryConfig()
        self._tooling = tooling or ToolingConfig()

    def _request(self, project: ScaffoldedProject, prefer_offline: bool) -> InstallRequest:
        return InstallRequest(
            cwd=project.root,
            registry_url=self._registry.url,
            prefer_offline=prefer_offline,
            cache_dir=self._tooling.npm_cache_dir,
            timeout=self._tooling.install_timeout_seconds,
        )

    async def install(self, project: ScaffoldedProject) -> InstallOutcome:
        """Install the scaffold's dependencies.

        Raises:
            InstallFailedError: If installation fails and no cache can be reused
        """
        cache_exists = project.cache_dir.is_dir()

        if project.mode == PersistenceMode.PERSISTENT and cache_exists:
            result = await self._installer.install(self._request(project, prefer_offline=True))
            if result.succeeded:
                return InstallOutcome(result=result, refreshed=True)
            logger.warning(
                "Refresh install failed in %s (exit %d); reusing existing dependency cache",
                project.root,
                result.exit_code,
            )
            return InstallOutcome(result=result, reused_cache=True)

        result = await self._installer.install(self._request(project, prefer_offline=False))
        if not result.succeeded:
            if result.timed_out:
                raise InstallFailedError("Dependency installation timed out", result)
            raise InstallFailedError(
                f"Dependency installation failed with exit code {result.exit_code}", result
            )
        return InstallOutcome(result=result)

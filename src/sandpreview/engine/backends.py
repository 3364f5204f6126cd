"""Execution backend implementations.

Concrete Installer and Bundler implementations that shell out to npm and
esbuild through the shared async command runner.
"""

import json
import os

from sandpreview.core.schemas import CommandResult
from sandpreview.engine.protocols import Bundler, BundleRequest, Installer, InstallRequest
from sandpreview.process import run_command


class NpmInstaller(Installer):
    """Install scaffold dependencies with npm under safety flags.

    Lifecycle scripts are always disabled unless the request says
    otherwise, dev dependencies are omitted and npm never prompts.
    """

    def __init__(self, npm_command: list[str] | None = None) -> None:
        self._npm = list(npm_command or ["npm"])

    def build_command(self, request: InstallRequest) -> list[str]:
        cmd = [*self._npm, "install"]
        if request.ignore_scripts:
            cmd.append("--ignore-scripts")
        if request.production_only:
            cmd.append("--omit=dev")
        if request.non_interactive:
            cmd.extend(["--no-audit", "--no-fund", "--no-progress", "--silent"])
        cmd.append(f"--registry={request.registry_url}")
        if request.prefer_offline:
            cmd.append("--prefer-offline")
        if request.cache_dir is not None:
            cmd.extend(["--cache", str(request.cache_dir)])
        return cmd

    def build_env(self, request: InstallRequest) -> dict[str, str]:
        env = dict(os.environ)
        if request.non_interactive:
            env["CI"] = "1"
            env["NPM_CONFIG_UPDATE_NOTIFIER"] = "false"
        return env

    async def install(self, request: InstallRequest) -> CommandResult:
        return await run_command(
            self.build_command(request),
            cwd=request.cwd,
            timeout=request.timeout,
            env=self.build_env(request),
        )


class EsbuildBundler(Bundler):
    """Bundle with the esbuild CLI."""

    def __init__(self, esbuild_command: list[str] | None = None) -> None:
        self._esbuild = list(esbuild_command or ["esbuild"])

    def build_command(self, request: BundleRequest) -> list[str]:
        cmd = [
            *self._esbuild,
            str(request.entry_path),
            "--bundle",
            f"--outfile={request.output_path}",
            f"--format={request.module_format}",
            f"--platform={request.target}",
            f"--jsx={request.jsx}",
            "--log-level=error",
        ]
        for ext, loader in request.loaders.items():
            cmd.append(f"--loader:{ext}={loader}")
        for name, target in request.aliases.items():
            cmd.append(f"--alias:{name}={target}")
        for key, value in request.defines.items():
            # esbuild expects a JS expression, so string values go in as JSON
            cmd.append(f"--define:{key}={json.dumps(value)}")
        if request.resolve_extensions:
            cmd.append(f"--resolve-extensions={','.join(request.resolve_extensions)}")
        return cmd

    async def bundle(self, request: BundleRequest) -> CommandResult:
        return await run_command(
            self.build_command(request),
            cwd=request.working_dir,
            timeout=request.timeout,
        )

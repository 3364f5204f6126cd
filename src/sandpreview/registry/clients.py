"""Registry clients.

NpmViewRegistry asks the npm CLI (honouring the user's npm config),
HttpRegistry talks to the registry's HTTP API directly.
"""

import json
from pathlib import Path
from typing import Any
from urllib.parse import quote

import httpx

from sandpreview.config import RegistryConfig, ToolingConfig
from sandpreview.exceptions import RegistryQueryError
from sandpreview.process import run_command
from sandpreview.registry.protocols import RegistryClient

NARROW_FIELDS = ("version", "dist.unpackedSize", "dist.size")


class NpmViewRegistry(RegistryClient):
    """Query package metadata with `npm view --json`."""

    def __init__(
        self,
        registry_url: str,
        npm_command: list[str] | None = None,
        timeout: float = 8.0,
        cwd: Path | None = None,
    ) -> None:
        self._registry_url = registry_url
        self._npm = list(npm_command or ["npm"])
        self._timeout = timeout
        self._cwd = cwd

    async def _view(self, name: str, fields: tuple[str, ...]) -> Any:
        cmd = [*self._npm, "view", name, *fields, "--json", f"--registry={self._registry_url}"]
        result = await run_command(cmd, cwd=self._cwd, timeout=self._timeout)
        if result.timed_out:
            raise RegistryQueryError(name, f"timed out after {self._timeout}s")
        if result.exit_code != 0:
            raise RegistryQueryError(name, result.stderr.strip() or f"exit code {result.exit_code}")

        text = result.stdout.strip()
        if not text:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise RegistryQueryError(name, f"invalid JSON from npm view: {e}") from e

    async def view_fields(self, name: str) -> Any:
        return await self._view(name, NARROW_FIELDS)

    async def view_full(self, name: str) -> Any:
        return await self._view(name, ())


class HttpRegistry(RegistryClient):
    """Query package metadata from the registry HTTP API."""

    def __init__(
        self,
        registry_url: str,
        timeout: float = 8.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = registry_url.rstrip("/")
        self._timeout = timeout
        self._client = client

    def _package_url(self, name: str, suffix: str = "") -> str:
        # Scoped names keep the leading @ but escape the slash
        return f"{self._base_url}/{quote(name, safe='@')}{suffix}"

    async def _get_json(self, name: str, url: str) -> Any:
        try:
            if self._client is not None:
                response = await self._client.get(url, timeout=self._timeout)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.get(url)
        except httpx.TimeoutException as e:
            raise RegistryQueryError(name, f"timed out after {self._timeout}s") from e
        except httpx.RequestError as e:
            raise RegistryQueryError(name, f"registry unreachable: {e}") from e

        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise RegistryQueryError(name, f"HTTP {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise RegistryQueryError(name, f"invalid JSON: {e}") from e

    async def view_fields(self, name: str) -> Any:
        return await self._get_json(name, self._package_url(name, "/latest"))

    async def view_full(self, name: str) -> Any:
        return await self._get_json(name, self._package_url(name))


def create_registry_client(registry: RegistryConfig, tooling: ToolingConfig) -> RegistryClient:
    """Build the registry client selected by configuration."""
    if registry.client == "http":
        return HttpRegistry(registry.url, timeout=registry.timeout_seconds)
    return NpmViewRegistry(
        registry.url,
        npm_command=tooling.npm_command,
        timeout=registry.timeout_seconds,
    )

"""Dependency admission against registry metadata.

Greedy and order dependent: candidates are examined in discovery order
and each is accepted if it fits under both byte caps at that point. The
same candidates and registry state always produce the same accepted set.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from sandpreview.config import LimitsConfig
from sandpreview.core.schemas import ImportCandidate, PackageSafetyRecord, ResolutionResult
from sandpreview.exceptions import RegistryQueryError
from sandpreview.registry.protocols import RegistryClient

logger = logging.getLogger(__name__)

REJECT_UNRESOLVED = "unresolved"
REJECT_PACKAGE_CAP = "exceeds-package-cap"
REJECT_TOTAL_CAP = "exceeds-total-cap"


@dataclass
class PackageMetadata:
    """Version and declared size extracted from a registry document."""

    version: str | None
    size_bytes: int = 0


def _as_size(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int) and value > 0:
        return value
    if isinstance(value, float) and value > 0:
        return int(value)
    return 0


def parse_metadata(meta: dict[str, Any]) -> PackageMetadata:
    """Pull version and size out of a narrow or full registry document.

    Handles `npm view` field output (flat "dist.size" keys), version
    documents (nested "dist") and full package documents where the dist
    block lives under versions[dist-tags.latest].
    """
    version = meta.get("version")
    if not isinstance(version, str) or not version:
        dist_tags = meta.get("dist-tags")
        latest = dist_tags.get("latest") if isinstance(dist_tags, dict) else None
        version = latest if isinstance(latest, str) and latest else None

    dist = meta.get("dist")
    if not isinstance(dist, dict):
        versions = meta.get("versions")
        if isinstance(versions, dict) and version and isinstance(versions.get(version), dict):
            dist = versions[version].get("dist")
    if not isinstance(dist, dict):
        dist = {}

    size = (
        _as_size(dist.get("unpackedSize"))
        or _as_size(dist.get("size"))
        or _as_size(meta.get("dist.unpackedSize"))
        or _as_size(meta.get("dist.size"))
    )
    return PackageMetadata(version=version, size_bytes=size)


class PackageSafetyResolver:
    """Bounds a candidate set by count, per-package size and total size."""

    def __init__(
        self,
        registry: RegistryClient,
        limits: LimitsConfig | None = None,
        query_timeout: float = 8.0,
    ) -> None:
        self._registry = registry
        self._limits = limits or LimitsConfig()
        self._query_timeout = query_timeout

    async def _query(self, name: str, narrow: bool) -> Any:
        query = self._registry.view_fields(name) if narrow else self._registry.view_full(name)
        try:
            return await asyncio.wait_for(query, timeout=self._query_timeout)
        except asyncio.TimeoutError:
            logger.info("Registry query for %s timed out after %ss", name, self._query_timeout)
            return None
        except RegistryQueryError as e:
            logger.info("%s", e)
            return None

    async def fetch_metadata(self, name: str) -> PackageMetadata | None:
        """Narrow query first, full query if that fails or is not an object."""
        meta = await self._query(name, narrow=True)
        if not isinstance(meta, dict):
            meta = await self._query(name, narrow=False)
        if not isinstance(meta, dict):
            return None
        return parse_metadata(meta)

    async def resolve(self, candidates: list[ImportCandidate]) -> ResolutionResult:
        """Admit candidates in order until the caps say otherwise.

        Returns:
            ResolutionResult with one record per examined candidate
        """
        limits = self._limits
        records: list[PackageSafetyRecord] = []
        total_bytes = 0

        examined = candidates[: limits.max_packages]
        if len(candidates) > len(examined):
            logger.info(
                "Examining %d of %d candidates (cap %d)",
                len(examined),
                len(candidates),
                limits.max_packages,
            )

        for candidate in examined:
            name = candidate.name
            meta = await self.fetch_metadata(name)

            if meta is None or not meta.version:
                records.append(PackageSafetyRecord(name=name, reason=REJECT_UNRESOLVED))
                continue

            size = meta.size_bytes
            if size > limits.max_package_bytes:
                records.append(
                    PackageSafetyRecord(
                        name=name, version=meta.version, size_bytes=size, reason=REJECT_PACKAGE_CAP
                    )
                )
                continue

            if total_bytes + size > limits.max_total_bytes:
                records.append(
                    PackageSafetyRecord(
                        name=name, version=meta.version, size_bytes=size, reason=REJECT_TOTAL_CAP
                    )
                )
                continue

            total_bytes += size
            records.append(
                PackageSafetyRecord(name=name, version=meta.version, size_bytes=size, accepted=True)
            )

        result = ResolutionResult(records=records)
        logger.info(
            "Accepted %d of %d packages (%d bytes)",
            len(result.accepted),
            len(records),
            result.total_bytes,
        )
        return result

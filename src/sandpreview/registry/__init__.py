"""Registry metadata access and dependency admission."""

from sandpreview.registry.protocols import RegistryClient
from sandpreview.registry.clients import HttpRegistry, NpmViewRegistry, create_registry_client
from sandpreview.registry.resolver import (
    REJECT_PACKAGE_CAP,
    REJECT_TOTAL_CAP,
    REJECT_UNRESOLVED,
    PackageMetadata,
    PackageSafetyResolver,
    parse_metadata,
)

__all__ = [
    "RegistryClient",
    "HttpRegistry",
    "NpmViewRegistry",
    "create_registry_client",
    "PackageMetadata",
    "PackageSafetyResolver",
    "parse_metadata",
    "REJECT_PACKAGE_CAP",
    "REJECT_TOTAL_CAP",
    "REJECT_UNRESOLVED",
]

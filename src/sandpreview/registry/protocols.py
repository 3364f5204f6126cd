"""Registry client protocol."""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class RegistryClient(Protocol):
    """Registry metadata queries.

    Both shapes return parsed JSON (any type) or None when the package is
    absent, and raise RegistryQueryError when the query itself fails.
    """

    async def view_fields(self, name: str) -> Any:
        """Narrow query for version and size fields only."""
        ...

    async def view_full(self, name: str) -> Any:
        """Full package document."""
        ...

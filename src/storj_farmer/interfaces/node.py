"""NetworkNode protocol - the storage network stack this daemon runs beside."""

from __future__ import annotations

from typing import Protocol

from storj_farmer.models.telemetry import ContactInfo


class NetworkNode(Protocol):
    """Joins the storage network and serves contracts and transfers."""

    @property
    def contact(self) -> ContactInfo:
        """Contact details advertised to peers."""
        ...

    async def join(self) -> None:
        """Connect to the configured seeds. Raises on failure."""
        ...

    async def leave(self) -> None:
        ...

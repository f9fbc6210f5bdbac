from __future__ import annotations

from typing import Protocol


class Backend(Protocol):
    """
    The real resource behind the Gatekeeper.

    fetch() returns a payload string or raises BackendUnavailable / BackendTimeout.
    Implementations must be safe to call concurrently.
    """

    async def fetch(self, identifier: str) -> str:
        ...

from __future__ import annotations

import asyncio
from typing import Iterable, Optional

from ..core.errors import BackendUnavailable
from ..core.request import normalize_identifier


class SimulatedBackend:
    """
    Stand-in for a network fetch: waits, then reports a connection.

    No real I/O is performed.
    """

    def __init__(self, delay_s: float = 1.0, unavailable: Optional[Iterable[str]] = None, **_kwargs: object) -> None:
        self._delay_s = max(0.0, float(delay_s))
        self._unavailable = frozenset(normalize_identifier(x) for x in (unavailable or []))

    @property
    def delay_s(self) -> float:
        return self._delay_s

    async def fetch(self, identifier: str) -> str:
        if self._delay_s:
            await asyncio.sleep(self._delay_s)
        if normalize_identifier(identifier) in self._unavailable:
            raise BackendUnavailable(
                code="backend.unavailable",
                message=f"{identifier} is unreachable",
                data={"identifier": identifier},
            )
        return f"Connected to {identifier}"

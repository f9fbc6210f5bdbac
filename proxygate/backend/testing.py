from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

from ..core.errors import BackendError


class RecordingBackend:
    """
    Deterministic backend for tests/examples.

    Records every fetch() call. Payload is "payload:<identifier>" unless a
    fixed payload is given. Identifiers listed in `failures` raise the mapped error.
    """

    def __init__(
        self,
        *,
        payload: Optional[str] = None,
        delay_s: float = 0.0,
        failures: Optional[Dict[str, BackendError]] = None,
        **_kwargs: Any,
    ) -> None:
        self._payload = payload
        self._delay_s = delay_s
        self._failures = dict(failures or {})
        self.calls: List[str] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def fetch(self, identifier: str) -> str:
        self.calls.append(identifier)
        if self._delay_s:
            await asyncio.sleep(self._delay_s)
        err = self._failures.get(identifier)
        if err is not None:
            raise err
        return self._payload if self._payload is not None else f"payload:{identifier}"


class HangingBackend:
    """
    Never answers until cancelled. Tracks whether cancellation reached it.

    Holds no loop-bound state, so one instance can serve several event loops.
    """

    def __init__(self, **_kwargs: Any) -> None:
        self.calls: List[str] = []
        self.cancelled = False

    async def wait_started(self, poll_s: float = 0.001) -> None:
        while not self.calls:
            await asyncio.sleep(poll_s)

    async def fetch(self, identifier: str) -> str:
        self.calls.append(identifier)
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return identifier


class BrokenBackend:
    """
    Raises a non-backend exception, as a buggy implementation would.
    """

    def __init__(self, **_kwargs: Any) -> None:
        pass

    async def fetch(self, identifier: str) -> str:
        raise RuntimeError(f"boom: {identifier}")

from __future__ import annotations

import asyncio
import uuid
from typing import Any, Iterable, List, Optional, Union

from .cache import ResultCache
from .errors import BackendError, BackendFailure, BackendTimeout, BackendUnavailable, InvalidRequest
from .policy_set import PolicyAction, PolicySet
from .request import Request
from .result import Blocked, Delivered, Result
from ..backend.base import Backend
from ..trace.trace_emitter import TraceEmitter


class Gatekeeper:
    """
    Mediates access to a Backend: Request -> Policy -> (Blocked | Backend -> Delivered).

    Hard rules:
    - a denied request never reaches the backend.
    - policy denial is a result, not an error.
    - backend failures propagate as BackendFailure; never retried, never blocked.
    """

    def __init__(
        self,
        backend: Backend,
        policy: Optional[PolicySet] = None,
        *,
        cache: Optional[ResultCache] = None,
        trace: Optional[TraceEmitter] = None,
        backend_timeout_s: Optional[float] = None,
    ):
        """
        `trace` is optional. When set, every emit appends to its JSONL file
        synchronously inside evaluate(), so evaluate() then also blocks on
        that file write, not only on the backend await.
        """
        self._backend = backend
        self._policy = policy if policy is not None else PolicySet()
        self._cache = cache
        self._trace = trace
        self._backend_timeout_s = backend_timeout_s

    @property
    def policy(self) -> PolicySet:
        return self._policy

    def _emit(self, event_type: str, **kwargs: Any) -> None:
        if self._trace is not None:
            self._trace.emit(event_type, **kwargs)

    async def evaluate(self, identifier: str) -> Result:
        request_id = uuid.uuid4().hex
        try:
            request = Request.parse(identifier)
        except InvalidRequest as e:
            self._emit("request_invalid", request_id=request_id, message=e.message, data={"code": e.code})
            raise

        self._emit("request_received", request_id=request_id, identifier=request.identifier)

        decision = self._policy.decide(request)
        self._emit("policy_decision", request_id=request_id, identifier=request.identifier, policy=decision.to_dict())
        if not decision.allowed:
            self._emit("request_blocked", request_id=request_id, identifier=request.identifier, message=decision.summary)
            return Blocked(identifier=request.identifier, reason="policy")

        if self._cache is not None:
            cached = self._cache.get(request.key)
            if cached is not None:
                self._emit("cache_hit", request_id=request_id, identifier=request.identifier)
                return Delivered(identifier=request.identifier, payload=cached, cached=True)

        self._emit("backend_call_started", request_id=request_id, identifier=request.identifier)
        try:
            payload = await self._fetch(request)
        except BackendError as e:
            self._emit(
                "backend_failure",
                request_id=request_id,
                identifier=request.identifier,
                message=e.message,
                data={"cause": e.code},
            )
            raise BackendFailure(
                code="backend.failure",
                message=f"Backend failed for {request.identifier}: {e.message}",
                data={"identifier": request.identifier, "cause": e.code},
                cause=e,
            ) from e

        # A policy update may have landed while the fetch was in flight.
        if self._cache is not None and not self._policy.contains(request.key):
            self._cache.put(request.key, payload)
        self._emit("backend_call_finished", request_id=request_id, identifier=request.identifier, data={"ok": True})
        return Delivered(identifier=request.identifier, payload=payload)

    async def _fetch(self, request: Request) -> str:
        try:
            if self._backend_timeout_s is None:
                payload = await self._backend.fetch(request.identifier)
            else:
                payload = await asyncio.wait_for(self._backend.fetch(request.identifier), timeout=self._backend_timeout_s)
        except BackendError:
            raise
        except asyncio.TimeoutError as e:
            raise BackendTimeout(
                code="backend.timeout",
                message="Backend did not answer in time",
                data={"timeout_s": self._backend_timeout_s},
            ) from e
        except Exception as e:  # noqa: BLE001
            raise BackendUnavailable(code="backend.unavailable", message=f"Backend error: {e!r}") from e

        if not isinstance(payload, str):
            raise BackendUnavailable(
                code="backend.invalid_payload",
                message="Backend payload must be a string",
                data={"type": type(payload).__name__},
            )
        return payload

    def update_policy(self, identifier: str, action: Union[PolicyAction, str]) -> bool:
        changed = self._policy.update(identifier, action)
        act = PolicyAction(action)
        if self._cache is not None:
            self._cache.invalidate(Request.parse(identifier).key)
        self._emit(
            "policy_updated",
            identifier=identifier.strip(),
            data={"action": act.value, "changed": changed, "size": len(self._policy)},
        )
        return changed

    async def evaluate_many(self, identifiers: Iterable[str]) -> List[Union[Result, Exception]]:
        """
        Evaluate concurrently; results keep input order. Errors are returned in place.
        """
        return list(await asyncio.gather(*(self.evaluate(x) for x in identifiers), return_exceptions=True))

from __future__ import annotations

import threading
from enum import Enum
from typing import FrozenSet, Iterable, Optional

from .errors import InvalidRequest
from .request import Request, normalize_identifier
from .result import PolicyDecision, PolicyResult


class PolicyAction(str, Enum):
    ADD = "add"
    REMOVE = "remove"


class PolicySet:
    """
    Process-wide set of denied identifiers.

    Invariants:
    - entries are stored normalized (stripped, lower-cased)
    - writers swap in a new frozenset under a lock; readers grab the current
      reference once and never observe a partial mutation
    """

    def __init__(self, denied: Optional[Iterable[str]] = None):
        self._write_lock = threading.Lock()
        self._entries: FrozenSet[str] = frozenset(normalize_identifier(x) for x in (denied or []))

    def snapshot(self) -> FrozenSet[str]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, identifier: object) -> bool:
        return self.contains(identifier)

    def contains(self, identifier: object) -> bool:
        return normalize_identifier(identifier) in self._entries

    def add(self, identifier: str) -> bool:
        key = normalize_identifier(identifier)
        with self._write_lock:
            if key in self._entries:
                return False
            self._entries = self._entries | {key}
        return True

    def remove(self, identifier: str) -> bool:
        key = normalize_identifier(identifier)
        with self._write_lock:
            if key not in self._entries:
                return False
            self._entries = self._entries - {key}
        return True

    def replace(self, denied: Iterable[str]) -> None:
        """
        Swap in a whole new policy at once (e.g. a config reload).
        """
        entries = frozenset(normalize_identifier(x) for x in denied)
        with self._write_lock:
            self._entries = entries

    def update(self, identifier: str, action: PolicyAction | str) -> bool:
        """
        Apply an administrative change. Returns True when the set changed.
        """
        try:
            act = PolicyAction(action)
        except ValueError as e:
            raise InvalidRequest(
                code="policy.action_invalid",
                message=f"Unknown policy action: {action}",
                data={"action": str(action)},
            ) from e
        if act is PolicyAction.ADD:
            return self.add(identifier)
        return self.remove(identifier)

    def decide(self, request: Request) -> PolicyResult:
        entries = self._entries
        if request.key in entries:
            return PolicyResult(
                decision=PolicyDecision.DENY,
                reason_codes=["policy.denied_identifier"],
                summary=f"Access to {request.identifier} is blocked",
            )
        return PolicyResult(decision=PolicyDecision.ALLOW, reason_codes=["policy.ok"], summary="Not in policy set")

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class PolicyDecision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


@dataclass(frozen=True)
class PolicyResult:
    decision: PolicyDecision
    reason_codes: List[str]
    summary: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.decision is PolicyDecision.ALLOW

    def to_dict(self) -> Dict[str, Any]:
        return {"decision": self.decision.value, "reason_codes": list(self.reason_codes), "summary": self.summary}


@dataclass(frozen=True)
class Blocked:
    identifier: str
    reason: str = "policy"

    kind = "blocked"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "identifier": self.identifier, "reason": self.reason}


@dataclass(frozen=True)
class Delivered:
    identifier: str
    payload: str
    cached: bool = False

    kind = "delivered"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "identifier": self.identifier, "payload": self.payload, "cached": self.cached}


Result = Union[Blocked, Delivered]

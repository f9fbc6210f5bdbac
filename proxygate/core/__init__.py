from .errors import (
  BackendError,
  BackendFailure,
  BackendTimeout,
  BackendUnavailable,
  ConfigError,
  GatewayError,
  InvalidRequest,
)
from .request import Request
from .result import Blocked, Delivered, PolicyDecision, PolicyResult, Result
from .policy_set import PolicyAction, PolicySet
from .cache import ResultCache
from .gatekeeper import Gatekeeper

__all__ = [
  "BackendError",
  "BackendFailure",
  "BackendTimeout",
  "BackendUnavailable",
  "ConfigError",
  "GatewayError",
  "InvalidRequest",
  "Request",
  "Blocked",
  "Delivered",
  "PolicyDecision",
  "PolicyResult",
  "Result",
  "PolicyAction",
  "PolicySet",
  "ResultCache",
  "Gatekeeper",
]

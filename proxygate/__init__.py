from .core import Blocked, Delivered, Gatekeeper, PolicyAction, PolicySet, Request, Result

__all__ = [
  "Blocked",
  "Delivered",
  "Gatekeeper",
  "PolicyAction",
  "PolicySet",
  "Request",
  "Result",
]

__version__ = "0.1.0"

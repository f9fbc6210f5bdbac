from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class GatewayError(Exception):
    code: str
    message: str
    data: dict[str, Any] | None = None

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class InvalidRequest(GatewayError):
    pass


class ConfigError(GatewayError):
    pass


class BackendError(GatewayError):
    """
    Base for failures signalled by a Backend.
    """


class BackendUnavailable(BackendError):
    pass


class BackendTimeout(BackendError):
    pass


@dataclass(frozen=True)
class BackendFailure(GatewayError):
    """
    Raised by the Gatekeeper when the Backend fails. Never a policy outcome.
    """

    cause: BackendError | None = None

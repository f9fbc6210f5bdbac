from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .errors import InvalidRequest


def normalize_identifier(identifier: Any) -> str:
    """
    Case-fold an identifier for policy comparison.

    Raises InvalidRequest for non-string, empty or whitespace-only input.
    """
    if not isinstance(identifier, str):
        raise InvalidRequest(code="request.invalid", message="identifier must be a string")
    key = identifier.strip().lower()
    if not key:
        raise InvalidRequest(code="request.invalid", message="identifier must be a non-empty string")
    return key


@dataclass(frozen=True)
class Request:
    identifier: str
    key: str

    @classmethod
    def parse(cls, identifier: Any) -> "Request":
        key = normalize_identifier(identifier)
        return cls(identifier=identifier.strip(), key=key)

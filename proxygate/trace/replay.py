from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from proxygate.core.request import normalize_identifier


class Replay:
    """
    Reads a gateway trace back, optionally filtered by event type or identifier.

    Identifier filtering is case-insensitive, matching policy lookups.
    """

    def __init__(self, path: Path):
        self._path = path

    def iter_events(
        self,
        *,
        event_type: Optional[str] = None,
        identifier: Optional[str] = None,
    ) -> Iterable[Dict[str, Any]]:
        if not self._path.exists():
            return
        key = normalize_identifier(identifier) if identifier is not None else None
        with self._path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                event = json.loads(line)
                if event_type is not None and event.get("event_type") != event_type:
                    continue
                if key is not None:
                    ident = event.get("identifier")
                    if not isinstance(ident, str) or ident.strip().lower() != key:
                        continue
                yield event

    def request_events(self, request_id: str) -> List[Dict[str, Any]]:
        """
        All events of one evaluate() call, in trace order.
        """
        return [e for e in self.iter_events() if e.get("request_id") == request_id]

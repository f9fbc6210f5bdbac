from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, Optional

from proxygate.core.errors import BackendFailure, ConfigError, InvalidRequest
from proxygate.core.gatekeeper import Gatekeeper


def _json_response(handler: BaseHTTPRequestHandler, status: int, obj: Dict[str, Any]) -> None:
    raw = json.dumps(obj, ensure_ascii=False, indent=2).encode("utf-8")
    handler.send_response(status)
    handler.send_header("Content-Type", "application/json; charset=utf-8")
    handler.send_header("Content-Length", str(len(raw)))
    handler.end_headers()
    handler.wfile.write(raw)


def _read_json_body(handler: BaseHTTPRequestHandler) -> Dict[str, Any]:
    n = int(handler.headers.get("Content-Length", "0") or "0")
    raw = handler.rfile.read(n) if n > 0 else b""
    if not raw:
        return {}
    try:
        obj = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InvalidRequest(code="http.invalid_json", message="Request body must be valid JSON") from e
    if not isinstance(obj, dict):
        raise InvalidRequest(code="http.invalid_json", message="Request body must be a JSON object")
    return obj


@dataclass(frozen=True)
class HttpApiConfig:
    host: str = "127.0.0.1"
    port: int = 8787
    # Simple bearer token when set; transports can layer their own auth.
    bearer_token: Optional[str] = None


def serve_http_api(config: HttpApiConfig, gatekeeper: Gatekeeper) -> ThreadingHTTPServer:
    def _policy_listing() -> Dict[str, Any]:
        return {"blocked": sorted(gatekeeper.policy.snapshot())}

    class Handler(BaseHTTPRequestHandler):
        def _auth_ok(self) -> bool:
            if not config.bearer_token:
                return True
            v = self.headers.get("Authorization", "")
            return v == f"Bearer {config.bearer_token}"

        def do_GET(self) -> None:  # noqa: N802
            if not self._auth_ok():
                _json_response(self, 401, {"error": {"code": "auth.unauthorized", "message": "Unauthorized"}})
                return
            if self.path == "/policy":
                _json_response(self, 200, _policy_listing())
                return
            _json_response(self, 404, {"error": {"code": "http.not_found", "message": "Not found"}})

        def do_POST(self) -> None:  # noqa: N802
            if not self._auth_ok():
                _json_response(self, 401, {"error": {"code": "auth.unauthorized", "message": "Unauthorized"}})
                return

            try:
                body = _read_json_body(self)
                if self.path == "/evaluate":
                    result = asyncio.run(gatekeeper.evaluate(body.get("identifier")))
                    _json_response(self, 200, result.to_dict())
                    return

                if self.path == "/policy":
                    identifier = body.get("identifier")
                    action = body.get("action")
                    if not isinstance(action, str) or not action:
                        raise InvalidRequest(code="http.invalid", message="action must be 'add' or 'remove'")
                    changed = gatekeeper.update_policy(identifier, action)
                    _json_response(self, 200, {"ok": True, "changed": changed, **_policy_listing()})
                    return

                _json_response(self, 404, {"error": {"code": "http.not_found", "message": "Not found"}})
            except BackendFailure as e:
                _json_response(self, 502, {"error": {"code": e.code, "message": e.message, "data": e.data or {}}})
            except (InvalidRequest, ConfigError) as e:
                _json_response(self, 400, {"error": {"code": e.code, "message": e.message, "data": e.data or {}}})
            except Exception as e:  # noqa: BLE001
                _json_response(self, 500, {"error": {"code": "http.error", "message": "Internal error", "data": {"error": repr(e)}}})

        def log_message(self, fmt: str, *args: Any) -> None:  # silence default logging
            return

    return ThreadingHTTPServer((config.host, config.port), Handler)

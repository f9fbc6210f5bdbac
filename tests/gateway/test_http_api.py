import json
import threading
import unittest
from http.client import HTTPConnection
from typing import Any, Dict

from proxygate.backend.testing import RecordingBackend
from proxygate.core.errors import BackendUnavailable
from proxygate.core.gatekeeper import Gatekeeper
from proxygate.core.policy_set import PolicySet
from proxygate.http_api import HttpApiConfig, serve_http_api


def _request(host: str, port: int, method: str, path: str, payload: Dict[str, Any] | None = None, headers: Dict[str, str] | None = None) -> tuple[int, Dict[str, Any]]:
    conn = HTTPConnection(host, port, timeout=5)
    body = json.dumps(payload).encode("utf-8") if payload is not None else b""
    h = {"Content-Type": "application/json", "Content-Length": str(len(body))}
    if headers:
        h.update(headers)
    conn.request(method, path, body=body, headers=h)
    resp = conn.getresponse()
    raw = resp.read().decode("utf-8", errors="replace")
    obj = json.loads(raw) if raw else {}
    conn.close()
    return resp.status, obj


class TestHttpApi(unittest.TestCase):
    def setUp(self) -> None:
        self.backend = RecordingBackend(failures={"down.com": BackendUnavailable(code="backend.unavailable", message="down")})
        self.gatekeeper = Gatekeeper(self.backend, PolicySet(["blockedsite.com", "example.com"]))
        self.server = serve_http_api(HttpApiConfig(host="127.0.0.1", port=0, bearer_token="s3cret"), self.gatekeeper)
        self.thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self.thread.start()
        self.host, self.port = self.server.server_address[:2]
        self.auth = {"Authorization": "Bearer s3cret"}

    def tearDown(self) -> None:
        self.server.shutdown()
        self.server.server_close()

    def test_requires_token(self) -> None:
        status, obj = _request(self.host, self.port, "POST", "/evaluate", {"identifier": "google.com"})
        self.assertEqual(status, 401)
        self.assertEqual(obj["error"]["code"], "auth.unauthorized")

    def test_evaluate_delivered_and_blocked(self) -> None:
        status, obj = _request(self.host, self.port, "POST", "/evaluate", {"identifier": "google.com"}, self.auth)
        self.assertEqual(status, 200)
        self.assertEqual(obj, {"kind": "delivered", "identifier": "google.com", "payload": "payload:google.com", "cached": False})

        status, obj = _request(self.host, self.port, "POST", "/evaluate", {"identifier": "BlockedSite.com"}, self.auth)
        self.assertEqual(status, 200)
        self.assertEqual(obj["kind"], "blocked")
        self.assertEqual(obj["reason"], "policy")
        self.assertEqual(self.backend.calls, ["google.com"])

    def test_invalid_identifier_is_400(self) -> None:
        status, obj = _request(self.host, self.port, "POST", "/evaluate", {"identifier": "  "}, self.auth)
        self.assertEqual(status, 400)
        self.assertEqual(obj["error"]["code"], "request.invalid")

    def test_backend_failure_is_502(self) -> None:
        status, obj = _request(self.host, self.port, "POST", "/evaluate", {"identifier": "down.com"}, self.auth)
        self.assertEqual(status, 502)
        self.assertEqual(obj["error"]["code"], "backend.failure")
        self.assertEqual(obj["error"]["data"]["cause"], "backend.unavailable")

    def test_policy_update_and_listing(self) -> None:
        status, obj = _request(self.host, self.port, "POST", "/policy", {"identifier": "Google.com", "action": "add"}, self.auth)
        self.assertEqual(status, 200)
        self.assertTrue(obj["changed"])
        self.assertIn("google.com", obj["blocked"])

        status, obj = _request(self.host, self.port, "POST", "/evaluate", {"identifier": "google.com"}, self.auth)
        self.assertEqual(obj["kind"], "blocked")

        status, obj = _request(self.host, self.port, "POST", "/policy", {"identifier": "example.com", "action": "remove"}, self.auth)
        self.assertEqual(status, 200)

        status, obj = _request(self.host, self.port, "GET", "/policy", headers=self.auth)
        self.assertEqual(status, 200)
        self.assertEqual(obj["blocked"], ["blockedsite.com", "google.com"])

    def test_policy_rejects_bad_action(self) -> None:
        status, obj = _request(self.host, self.port, "POST", "/policy", {"identifier": "x.com", "action": "flip"}, self.auth)
        self.assertEqual(status, 400)
        self.assertEqual(obj["error"]["code"], "policy.action_invalid")

    def test_unknown_path_is_404(self) -> None:
        status, _ = _request(self.host, self.port, "POST", "/nope", {}, self.auth)
        self.assertEqual(status, 404)


if __name__ == "__main__":
    unittest.main()

import os
import tempfile
import unittest
from pathlib import Path

from proxygate.backend.simulated import SimulatedBackend
from proxygate.config import CONFIG_ENV_VAR, DEFAULT_BLOCKED, GatewayConfig, build_gatekeeper, load_config, parse_config
from proxygate.core.errors import ConfigError
from proxygate.core.result import Blocked, Delivered


class TestConfig(unittest.TestCase):
    def setUp(self) -> None:
        self._old_env = os.environ.pop(CONFIG_ENV_VAR, None)

    def tearDown(self) -> None:
        if self._old_env is None:
            os.environ.pop(CONFIG_ENV_VAR, None)
        else:
            os.environ[CONFIG_ENV_VAR] = self._old_env

    def test_defaults_without_path(self) -> None:
        cfg = load_config()
        self.assertEqual(cfg.blocked, DEFAULT_BLOCKED)
        self.assertEqual(cfg.backend_spec, "simulated")
        self.assertEqual(cfg.cache_ttl_s, 0.0)
        self.assertIsNone(cfg.trace_path)

    def test_load_yaml_file(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "gw.yml"
            p.write_text(
                "version: \"0.1\"\n"
                "blocked: [\"Foo.com\"]\n"
                "backend:\n"
                "  spec: \"proxygate.backend.testing:RecordingBackend\"\n"
                "  timeout_s: 2.5\n"
                "  options: {payload: \"hi\"}\n"
                "cache: {ttl_s: 5, max_entries: 3}\n"
                "trace: {path: \"out/trace.jsonl\"}\n",
                encoding="utf-8",
            )
            cfg = load_config(p)
            self.assertEqual(cfg.blocked, ("Foo.com",))
            self.assertEqual(cfg.backend_spec, "proxygate.backend.testing:RecordingBackend")
            self.assertEqual(cfg.backend_options, {"payload": "hi"})
            self.assertEqual(cfg.backend_timeout_s, 2.5)
            self.assertEqual(cfg.cache_ttl_s, 5.0)
            self.assertEqual(cfg.cache_max_entries, 3)
            self.assertEqual(cfg.trace_path, p.resolve().parent / "out" / "trace.jsonl")

    def test_env_var_selects_file(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "gw.yml"
            p.write_text("version: \"0.1\"\nblocked: []\n", encoding="utf-8")
            os.environ[CONFIG_ENV_VAR] = str(p)
            self.assertEqual(load_config().blocked, ())

    def test_invalid_config_lists_errors(self) -> None:
        with self.assertRaises(ConfigError) as ctx:
            parse_config({"version": "0.1", "blocked": [""], "extra": 1})
        self.assertEqual(ctx.exception.code, "config.invalid")
        self.assertGreaterEqual(len(ctx.exception.data["errors"]), 2)

    def test_missing_and_malformed_files(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            with self.assertRaises(ConfigError) as ctx:
                load_config(Path(td) / "missing.yml")
            self.assertEqual(ctx.exception.code, "config.not_found")

            bad = Path(td) / "bad.yml"
            bad.write_text("version: [unclosed\n", encoding="utf-8")
            with self.assertRaises(ConfigError) as ctx:
                load_config(bad)
            self.assertEqual(ctx.exception.code, "config.invalid_yaml")

    def test_shipped_example_loads(self) -> None:
        import proxygate.contracts as contracts

        example = Path(contracts.__file__).resolve().parent / "gateway_config.example.yml"
        cfg = load_config(example)
        self.assertEqual(cfg.cache_ttl_s, 30.0)
        self.assertEqual(cfg.backend_timeout_s, 5)


class TestBuildGatekeeper(unittest.IsolatedAsyncioTestCase):
    async def test_wires_policy_and_backend(self) -> None:
        cfg = GatewayConfig(backend_options={"delay_s": 0})
        gk = build_gatekeeper(cfg)
        self.assertIsInstance(gk._backend, SimulatedBackend)
        self.assertIsInstance(await gk.evaluate("blockedsite.com"), Blocked)
        delivered = await gk.evaluate("google.com")
        self.assertIsInstance(delivered, Delivered)
        self.assertEqual(delivered.payload, "Connected to google.com")

    async def test_trace_path_override(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            trace_path = Path(td) / "t.jsonl"
            gk = build_gatekeeper(GatewayConfig(backend_options={"delay_s": 0}), run_id="r1", trace_path=trace_path)
            await gk.evaluate("example.com")
            self.assertTrue(trace_path.exists())


if __name__ == "__main__":
    unittest.main()

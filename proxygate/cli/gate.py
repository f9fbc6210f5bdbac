from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from proxygate.config import build_gatekeeper, load_config, validate_config_file
from proxygate.core.errors import BackendFailure, GatewayError
from proxygate.core.gatekeeper import Gatekeeper
from proxygate.core.result import Blocked
from proxygate.http_api import HttpApiConfig, serve_http_api
from proxygate.trace.replay import Replay


DEMO_IDENTIFIERS = ["google.com", "blockedsite.com", "stackoverflow.com", "example.com"]


def _format_cli_error(e: Exception) -> str:
    if isinstance(e, GatewayError):
        out = f"ERROR {e.code}: {e.message}"
        if e.data:
            out += "\n" + json.dumps(e.data, ensure_ascii=False, indent=2)
        return out
    return f"ERROR: {e!r}"


def _config_path(args: argparse.Namespace) -> Optional[Path]:
    return Path(args.config) if getattr(args, "config", None) else None


def _build(args: argparse.Namespace) -> Gatekeeper:
    cfg = load_config(_config_path(args))
    trace = Path(args.trace) if getattr(args, "trace", None) else None
    return build_gatekeeper(cfg, run_id=getattr(args, "run_id", None) or "run_cli", trace_path=trace)


def _outcome_to_dict(identifier: str, outcome: Any) -> Dict[str, Any]:
    if isinstance(outcome, BackendFailure):
        cause = outcome.cause.code if outcome.cause is not None else None
        return {"kind": "error", "identifier": identifier, "code": outcome.code, "cause": cause, "message": outcome.message}
    if isinstance(outcome, GatewayError):
        return {"kind": "error", "identifier": identifier, "code": outcome.code, "message": outcome.message}
    if isinstance(outcome, BaseException):
        return {"kind": "error", "identifier": identifier, "code": "error", "message": repr(outcome)}
    return outcome.to_dict()


def cmd_evaluate(args: argparse.Namespace) -> int:
    gatekeeper = _build(args)
    for x in args.block:
        gatekeeper.update_policy(x, "add")
    for x in args.unblock:
        gatekeeper.update_policy(x, "remove")

    outcomes = asyncio.run(gatekeeper.evaluate_many(args.identifiers))
    rows = [_outcome_to_dict(ident, o) for ident, o in zip(args.identifiers, outcomes)]
    print(json.dumps(rows, ensure_ascii=False, indent=2))
    return 1 if any(r["kind"] == "error" for r in rows) else 0


def cmd_demo(args: argparse.Namespace) -> int:
    cfg = load_config(_config_path(args))
    if args.delay is not None:
        cfg = replace(cfg, backend_options={**cfg.backend_options, "delay_s": args.delay})
    gatekeeper = build_gatekeeper(cfg, run_id="run_demo")

    outcomes = asyncio.run(gatekeeper.evaluate_many(DEMO_IDENTIFIERS))
    rc = 0
    for ident, o in zip(DEMO_IDENTIFIERS, outcomes):
        if isinstance(o, Blocked):
            print(f"Access to {ident} is blocked!")
        elif isinstance(o, BaseException):
            print(_format_cli_error(o))
            rc = 1
        else:
            print(o.payload)
    return rc


def cmd_list_policy(args: argparse.Namespace) -> int:
    cfg = load_config(_config_path(args))
    gatekeeper = build_gatekeeper(cfg)
    print(json.dumps(sorted(gatekeeper.policy.snapshot()), ensure_ascii=False, indent=2))
    return 0


def cmd_check_config(args: argparse.Namespace) -> int:
    errors = validate_config_file(Path(args.config))
    if errors:
        for e in errors:
            print(f"- {e}")
        return 1
    print("OK")
    return 0


def cmd_show_trace(args: argparse.Namespace) -> int:
    events: List[Dict[str, Any]] = list(
        Replay(Path(args.trace)).iter_events(event_type=args.event_type or None, identifier=args.identifier)
    )
    if args.tail is not None and args.tail >= 0:
        events = events[-args.tail :] if args.tail else []
    for e in events:
        if args.pretty:
            print(json.dumps(e, ensure_ascii=False, indent=2))
        else:
            print(json.dumps(e, ensure_ascii=False))
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    gatekeeper = _build(args)
    server = serve_http_api(HttpApiConfig(host=args.host, port=args.port, bearer_token=args.bearer_token), gatekeeper)
    host, port = server.server_address[:2]
    print(f"proxygate listening on http://{host}:{port}", file=sys.stderr)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="proxygate", description="Policy-checked request gateway")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_eval = sub.add_parser("evaluate", help="Evaluate identifiers concurrently against policy")
    p_eval.add_argument("identifiers", nargs="+", help="Identifiers (e.g. host names)")
    p_eval.add_argument("--config", help="Gateway config YAML (default: $PROXYGATE_CONFIG or built-in)")
    p_eval.add_argument("--block", action="append", default=[], help="Add identifier to policy before evaluating (repeatable)")
    p_eval.add_argument("--unblock", action="append", default=[], help="Remove identifier from policy before evaluating (repeatable)")
    p_eval.add_argument("--trace", help="Trace output path (jsonl)")
    p_eval.add_argument("--run-id", default="run_cli", help="Run ID for trace correlation")
    p_eval.set_defaults(func=cmd_evaluate)

    p_demo = sub.add_parser("demo", help="Connect to the four demo sites through the gateway")
    p_demo.add_argument("--config", help="Gateway config YAML (default: $PROXYGATE_CONFIG or built-in)")
    p_demo.add_argument("--delay", type=float, help="Override simulated backend delay in seconds")
    p_demo.set_defaults(func=cmd_demo)

    p_list = sub.add_parser("list-policy", help="List denied identifiers")
    p_list.add_argument("--config", help="Gateway config YAML (default: $PROXYGATE_CONFIG or built-in)")
    p_list.set_defaults(func=cmd_list_policy)

    p_check = sub.add_parser("check-config", help="Validate a gateway config file")
    p_check.add_argument("--config", required=True, help="Gateway config YAML")
    p_check.set_defaults(func=cmd_check_config)

    p_show_trace = sub.add_parser("show-trace", help="Show trace events from a JSONL file")
    p_show_trace.add_argument("--trace", required=True, help="Trace path (jsonl)")
    p_show_trace.add_argument("--event-type", help="Filter by event_type")
    p_show_trace.add_argument("--identifier", help="Filter by identifier (case-insensitive)")
    p_show_trace.add_argument("--tail", type=int, help="Show only last N events")
    p_show_trace.add_argument("--pretty", action="store_true", help="Pretty-print each event as JSON")
    p_show_trace.set_defaults(func=cmd_show_trace)

    p_serve = sub.add_parser("serve", help="Serve the HTTP API")
    p_serve.add_argument("--config", help="Gateway config YAML (default: $PROXYGATE_CONFIG or built-in)")
    p_serve.add_argument("--host", default="127.0.0.1", help="Bind host")
    p_serve.add_argument("--port", type=int, default=8787, help="Bind port")
    p_serve.add_argument("--bearer-token", help="Require 'Authorization: Bearer <token>'")
    p_serve.add_argument("--trace", help="Trace output path (jsonl)")
    p_serve.add_argument("--run-id", default="run_http", help="Run ID for trace correlation")
    p_serve.set_defaults(func=cmd_serve)

    ns = parser.parse_args(argv)
    try:
        return int(ns.func(ns))
    except Exception as e:  # noqa: BLE001
        print(_format_cli_error(e))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import jsonschema
import yaml

from proxygate.backend.loading import load_backend
from proxygate.core.cache import ResultCache
from proxygate.core.errors import ConfigError
from proxygate.core.gatekeeper import Gatekeeper
from proxygate.core.policy_set import PolicySet
from proxygate.resources import gateway_config_schema_path
from proxygate.trace.trace_emitter import TraceEmitter
from proxygate.trace.trace_store_jsonl import TraceStoreJSONL


CONFIG_ENV_VAR = "PROXYGATE_CONFIG"

DEFAULT_BLOCKED: Tuple[str, ...] = ("blockedsite.com", "example.com")


@dataclass(frozen=True)
class GatewayConfig:
    """
    Startup configuration for a Gatekeeper.

    cache_ttl_s <= 0 disables the result cache.
    """

    blocked: Tuple[str, ...] = DEFAULT_BLOCKED
    backend_spec: str = "simulated"
    backend_options: Dict[str, Any] = field(default_factory=lambda: {"delay_s": 1.0})
    backend_timeout_s: Optional[float] = None
    cache_ttl_s: float = 0.0
    cache_max_entries: int = 1024
    trace_path: Optional[Path] = None


def _load_schema() -> Dict[str, Any]:
    return json.loads(gateway_config_schema_path().read_text(encoding="utf-8"))


def validate_config_data(raw: Any) -> List[str]:
    """
    Validates a parsed config object and returns error strings (empty means valid).
    """
    validator = jsonschema.Draft202012Validator(_load_schema())
    errors = []
    for e in sorted(validator.iter_errors(raw), key=str):
        where = "/".join(str(p) for p in e.absolute_path)
        errors.append(f"{where}: {e.message}" if where else e.message)
    return errors


def _read_yaml(path: Path) -> Any:
    if not path.exists():
        raise ConfigError(code="config.not_found", message=f"Config file not found: {path}", data={"path": str(path)})
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(code="config.invalid_yaml", message=f"Config is not valid YAML: {path}", data={"path": str(path)}) from e


def validate_config_file(path: Path) -> List[str]:
    return validate_config_data(_read_yaml(path))


def parse_config(raw: Any, *, base_dir: Optional[Path] = None) -> GatewayConfig:
    errors = validate_config_data(raw)
    if errors:
        raise ConfigError(code="config.invalid", message="Config does not validate against gateway_config.schema.json", data={"errors": errors})

    backend = raw.get("backend") or {}
    cache = raw.get("cache") or {}
    trace = raw.get("trace") or {}

    trace_path: Optional[Path] = None
    if trace.get("path"):
        trace_path = Path(os.path.expanduser(trace["path"]))
        if not trace_path.is_absolute() and base_dir is not None:
            trace_path = base_dir / trace_path

    options = backend.get("options")
    return GatewayConfig(
        blocked=tuple(raw["blocked"]) if "blocked" in raw else DEFAULT_BLOCKED,
        backend_spec=backend.get("spec", "simulated"),
        backend_options=dict(options) if options is not None else {"delay_s": 1.0},
        backend_timeout_s=backend.get("timeout_s"),
        cache_ttl_s=float(cache.get("ttl_s", 0.0)),
        cache_max_entries=int(cache.get("max_entries", 1024)),
        trace_path=trace_path,
    )


def load_config(path: Optional[Path] = None) -> GatewayConfig:
    """
    Load config from `path`, else from $PROXYGATE_CONFIG, else built-in defaults.

    Relative trace paths resolve against the config file's directory.
    """
    if path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if isinstance(env_path, str) and env_path.strip():
            path = Path(env_path.strip())
    if path is None:
        return GatewayConfig()
    path = path.expanduser()
    return parse_config(_read_yaml(path), base_dir=path.resolve().parent)


def build_gatekeeper(config: GatewayConfig, *, run_id: str = "run_gateway", trace_path: Optional[Path] = None) -> Gatekeeper:
    backend = load_backend(config.backend_spec, **config.backend_options)
    cache = ResultCache(config.cache_ttl_s, config.cache_max_entries) if config.cache_ttl_s > 0 else None

    trace: Optional[TraceEmitter] = None
    effective_trace_path = trace_path or config.trace_path
    if effective_trace_path is not None:
        trace = TraceEmitter(store=TraceStoreJSONL(effective_trace_path), run_id=run_id)

    return Gatekeeper(
        backend,
        PolicySet(config.blocked),
        cache=cache,
        trace=trace,
        backend_timeout_s=config.backend_timeout_s,
    )

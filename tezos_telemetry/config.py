"""
Load config from config.yaml with optional env overrides.
Single source of truth for upstream URLs, cache TTLs, store path, refresh cadence and render timings.
"""
from __future__ import annotations

import os
from pathlib import Path

# Defaults if no YAML or env
_DEFAULTS = {
    "api": {
        "tzkt_url": "https://api.tzkt.io/v1",
        "octez_url": "https://eu.rpc.tez.capital",
        "http_timeout_s": 15.0,
    },
    "fetch": {
        "memory_ttl_s": 60.0,
        "max_attempts": 3,
        "backoff_step_s": 1.0,
    },
    "store": {
        "path": "telemetry.sqlite",
        "cache_ttl_s": 4 * 60 * 60,
        "visit_min_gap_s": 60 * 60,
    },
    "refresh": {"interval_s": 2 * 60 * 60},
    "limits": {"bakers": 10_000, "consensus_ops": 2_000},
    "render": {"flip_duration_s": 0.6, "stagger_s": 0.1},
}


def _config_yaml_path() -> Path:
    """Config.yaml lives at repo root (parent of package dir)."""
    return Path(__file__).resolve().parent.parent / "config.yaml"


def _load_yaml() -> dict:
    import yaml

    config_path = _config_yaml_path()
    if not config_path.exists():
        return {}
    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def _deep_merge(base: dict, override: dict) -> dict:
    out = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _env_overrides() -> dict:
    overrides: dict = {}
    path = os.environ.get("TEZOS_TELEMETRY_DB_PATH")
    if path:
        overrides.setdefault("store", {})["path"] = path
    tzkt = os.environ.get("TEZOS_TELEMETRY_TZKT_URL")
    if tzkt:
        overrides.setdefault("api", {})["tzkt_url"] = tzkt
    octez = os.environ.get("TEZOS_TELEMETRY_OCTEZ_URL")
    if octez:
        overrides.setdefault("api", {})["octez_url"] = octez
    refresh = os.environ.get("TEZOS_TELEMETRY_REFRESH_S")
    if refresh:
        overrides.setdefault("refresh", {})["interval_s"] = float(refresh)
    return overrides


def get_config() -> dict:
    """Return merged config: defaults <- config.yaml <- env."""
    merged = _deep_merge(_DEFAULTS, _load_yaml())
    merged = _deep_merge(merged, _env_overrides())
    return merged


# Convenience accessors
def tzkt_url() -> str:
    return str(get_config()["api"]["tzkt_url"]).rstrip("/")


def octez_url() -> str:
    return str(get_config()["api"]["octez_url"]).rstrip("/")


def http_timeout_s() -> float:
    return float(get_config()["api"]["http_timeout_s"])


def memory_ttl_s() -> float:
    return float(get_config()["fetch"]["memory_ttl_s"])


def max_attempts() -> int:
    return int(get_config()["fetch"]["max_attempts"])


def backoff_step_s() -> float:
    return float(get_config()["fetch"]["backoff_step_s"])


def store_path() -> str:
    return str(get_config()["store"]["path"])


def cache_ttl_s() -> float:
    return float(get_config()["store"]["cache_ttl_s"])


def visit_min_gap_s() -> float:
    return float(get_config()["store"]["visit_min_gap_s"])


def refresh_interval_s() -> float:
    return float(get_config()["refresh"]["interval_s"])


def bakers_limit() -> int:
    return int(get_config()["limits"]["bakers"])


def consensus_ops_limit() -> int:
    return int(get_config()["limits"]["consensus_ops"])


def flip_duration_s() -> float:
    return float(get_config()["render"]["flip_duration_s"])


def stagger_s() -> float:
    return float(get_config()["render"]["stagger_s"])

from __future__ import annotations

import json
import os
from dataclasses import fields
from pathlib import Path
from typing import Any, Mapping

import yaml

from .models import Credentials, DumpConfig
from .options import check_option_name

DEFAULT_CONFIG: dict[str, Any] = {
    "dump": {
        "binary_path": None,
        "dump_directory": "protected/data",
        "dump_file_name": "dump.sql",
        "include_schema": True,
        "include_data": True,
        "include_routines": False,
        "compact": True,
        "connection_id": "db",
        "extra_options": {},
        "drop_options": [],
    },
    # Credentials rendered as --user/--password/--host/--port. The DATABASE_* environment
    # variables take precedence over these values.
    "credentials": {
        "user": None,
        "password": None,
        "host": None,
        "port": None,
    },
    "connections": {
        # Unset user/password/host/port fall back to the credentials above.
        "db": {
            "host": None,
            "port": None,
            "user": None,
            "password": None,
            "database": None,
        },
    },
    "runtime": {
        "base_path": ".",
        "log_level": "INFO",
    },
}

CREDENTIAL_ENV_VARS = {
    "user": "DATABASE_USER",
    "password": "DATABASE_PASSWORD",
    "host": "DATABASE_HOST",
    "port": "DATABASE_PORT",
}

_FALSE_STRINGS = {"false", "0", "no", "off"}
_TRUE_STRINGS = {"true", "1", "yes", "on"}
_BOOL_FIELDS = ("include_schema", "include_data", "include_routines", "compact")


def _deep_update(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_update(base[key], value)
        else:
            base[key] = value
    return base


def load_config(config_path: str | Path | None) -> dict[str, Any]:
    cfg = json.loads(json.dumps(DEFAULT_CONFIG))
    if not config_path:
        return cfg
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        payload = yaml.safe_load(handle) or {}
    if not isinstance(payload, dict):
        raise ValueError("Config root must be a mapping")
    _deep_update(cfg, payload)
    return cfg


def apply_cli_overrides(cfg: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    def _drop_none(value: Any) -> Any:
        if isinstance(value, dict):
            return {k: _drop_none(v) for k, v in value.items() if v is not None}
        if isinstance(value, list):
            return [_drop_none(v) for v in value if v is not None]
        return value

    cleaned = _drop_none(overrides)
    _deep_update(cfg, cleaned)
    return cfg


def parse_flag(value: Any, name: str = "value") -> bool:
    """Normalize a boolean arriving from an untyped source (CLI, YAML, environment).

    ``"false"`` and ``False`` are the same thing here; anything that is neither a
    recognised true nor false spelling is rejected.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _FALSE_STRINGS:
            return False
        if text in _TRUE_STRINGS:
            return True
    raise ValueError(f"Invalid boolean for {name}: {value!r}")


def parse_option_spec(spec: str) -> tuple[str, str | None]:
    """Split ``name=value`` (or a bare ``name``) into an extra-option entry."""
    name, sep, value = spec.partition("=")
    name = name.strip().lstrip("-")
    if not name:
        raise ValueError(f"Invalid option: {spec!r}")
    check_option_name(name)
    return name, (value if sep else None)


def _extra_options(value: Any) -> dict[str, str | None]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError("dump.extra_options must be a mapping")
    out: dict[str, str | None] = {}
    for name, item in value.items():
        out[check_option_name(str(name))] = None if item is None else str(item)
    return out


def _drop_options(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [s.strip() for s in value.split(",") if s.strip()]
    if not isinstance(value, list):
        raise ValueError("dump.drop_options must be a list")
    return [str(v).strip() for v in value if str(v).strip()]


def load_dump_config(cfg: dict[str, Any]) -> DumpConfig:
    section = dict(cfg.get("dump") or {})
    known = {f.name for f in fields(DumpConfig)}
    unknown = sorted(set(section) - known)
    if unknown:
        raise ValueError(f"Unknown dump option(s): {', '.join(unknown)}")

    defaults = DumpConfig()
    values: dict[str, Any] = {}
    for key in _BOOL_FIELDS:
        raw = section.get(key)
        values[key] = getattr(defaults, key) if raw is None else parse_flag(raw, key)
    for key in ("dump_directory", "dump_file_name", "connection_id"):
        raw = section.get(key)
        values[key] = getattr(defaults, key) if raw is None else str(raw)
    binary = section.get("binary_path")
    values["binary_path"] = str(binary) if binary else None
    values["extra_options"] = _extra_options(section.get("extra_options"))
    values["drop_options"] = _drop_options(section.get("drop_options"))
    return DumpConfig(**values)


def load_credentials(cfg: dict[str, Any], environ: Mapping[str, str] | None = None) -> Credentials:
    env = os.environ if environ is None else environ
    section = cfg.get("credentials") or {}
    values: dict[str, str | None] = {}
    for key, env_name in CREDENTIAL_ENV_VARS.items():
        value = env.get(env_name)
        if value is None:
            value = section.get(key)
        values[key] = None if value is None else str(value)
    return Credentials(**values)

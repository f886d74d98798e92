"""Translate a dump configuration into mysqldump flags.

Flags are kept in an ordered ``dict`` mapping the flag name to its value, where ``None``
marks a presence-only flag such as ``--no-create-db``. Insertion order is the order the
flags appear on the command line.

See https://dev.mysql.com/doc/refman/8.0/en/mysqldump.html for the flags themselves.
"""

from __future__ import annotations

import re

from .models import Credentials, DumpConfig

OptionMap = dict[str, str | None]

_OPTION_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")


def check_option_name(name: str) -> str:
    if not _OPTION_NAME_RE.match(name):
        raise ValueError(f"Invalid mysqldump option name: {name!r}")
    return name


def _toggle_flags(config: DumpConfig) -> list[str]:
    flags: list[str] = []
    if not config.include_schema:
        flags.append("no-create-info")
    if not config.include_data:
        flags.append("no-data")
    if not config.include_routines:
        flags.append("skip-triggers")
    else:
        flags.extend(["triggers", "routines"])
    if not config.compact:
        flags.extend(["skip-extended-insert", "complete-insert"])
    # The dump never carries a CREATE DATABASE statement.
    flags.append("no-create-db")
    return flags


def build_option_map(config: DumpConfig, credentials: Credentials | None = None) -> OptionMap:
    options: OptionMap = {}
    if credentials is not None:
        options.update(credentials.as_options())
    for flag in _toggle_flags(config):
        options[flag] = None
    for name, value in config.extra_options.items():
        options[name] = value
    for name in config.drop_options:
        options.pop(name, None)
    return options


def _quote_value(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def normalize_options(options: OptionMap) -> str:
    tokens = []
    for name, value in options.items():
        check_option_name(name)
        if value is not None:
            tokens.append(f"--{name}={_quote_value(str(value))}")
        else:
            tokens.append(f"--{name}")
    return " ".join(tokens)

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from . import __version__
from .config import apply_cli_overrides, load_config, load_credentials, load_dump_config, parse_flag, parse_option_spec
from .connections import build_registry
from .dumper import MysqldumpInvoker
from .errors import DumpError
from .utils import mask_password, setup_logging

LOGGER = logging.getLogger(__name__)


def _flag_arg(value: str) -> bool:
    try:
        return parse_flag(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _add_dump_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", type=Path)
    parser.add_argument("--base-path", "--basePath", dest="base_path", type=Path)
    parser.add_argument("--bin-path", "--binPath", dest="binary_path")
    parser.add_argument("--dump-path", "--dumpPath", dest="dump_directory")
    parser.add_argument("--dump-file", "--dumpFile", dest="dump_file_name")
    parser.add_argument("--schema", dest="include_schema", type=_flag_arg, metavar="BOOL")
    parser.add_argument("--data", dest="include_data", type=_flag_arg, metavar="BOOL")
    parser.add_argument("--routines", dest="include_routines", type=_flag_arg, metavar="BOOL")
    parser.add_argument("--compact", dest="compact", type=_flag_arg, metavar="BOOL")
    parser.add_argument("--connection-id", "--connectionID", dest="connection_id")
    parser.add_argument(
        "--option",
        dest="options",
        action="append",
        default=[],
        metavar="NAME[=VALUE]",
        help="Extra mysqldump option; overrides flags derived from the toggles",
    )
    parser.add_argument(
        "--drop-option",
        dest="drop_options",
        action="append",
        default=[],
        metavar="NAME",
        help="Remove a flag from the final command line",
    )
    parser.add_argument("--log-level", default=None)


def _create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mysql-dump-tools")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="cmd", required=True)

    dump = sub.add_parser("dump", help="Run mysqldump and save the output into the dump file")
    _add_dump_arguments(dump)

    show = sub.add_parser("show-command", help="Print the mysqldump command line without running it")
    _add_dump_arguments(show)

    return parser


def _load_cfg(args: argparse.Namespace) -> dict[str, Any]:
    cfg = load_config(args.config)
    cfg = apply_cli_overrides(
        cfg,
        {
            "dump": {
                "binary_path": args.binary_path,
                "dump_directory": args.dump_directory,
                "dump_file_name": args.dump_file_name,
                "include_schema": args.include_schema,
                "include_data": args.include_data,
                "include_routines": args.include_routines,
                "compact": args.compact,
                "connection_id": args.connection_id,
            },
            "runtime": {
                "base_path": str(args.base_path) if args.base_path else None,
                "log_level": args.log_level,
            },
        },
    )
    # Presence-only extra options carry None, which the generic override merge would drop.
    extra = dict(cfg["dump"].get("extra_options") or {})
    for spec in args.options:
        name, value = parse_option_spec(spec)
        extra[name] = value
    cfg["dump"]["extra_options"] = extra
    if args.drop_options:
        dropped = list(cfg["dump"].get("drop_options") or [])
        cfg["dump"]["drop_options"] = dropped + [name.lstrip("-") for name in args.drop_options]
    return cfg


def _build_invoker(cfg: dict[str, Any]) -> MysqldumpInvoker:
    credentials = load_credentials(cfg)
    return MysqldumpInvoker(
        build_registry(cfg, credentials),
        credentials=credentials,
        base_path=cfg["runtime"].get("base_path") or ".",
    )


def _command_dump(cfg: dict[str, Any]) -> int:
    config = load_dump_config(cfg)
    result = _build_invoker(cfg).run(config)
    if result.exit_code != 0:
        if result.stderr:
            print(result.stderr, end="" if result.stderr.endswith("\n") else "\n", file=sys.stderr)
        print(f"mysqldump failed with exit code {result.exit_code}", file=sys.stderr)
        return result.exit_code
    print(f"Dumped {result.database} to {result.dump_path}")
    return 0


def _command_show(cfg: dict[str, Any]) -> int:
    config = load_dump_config(cfg)
    command = _build_invoker(cfg).preview(config)
    print(mask_password(command))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _create_parser()
    args = parser.parse_args(argv)

    try:
        cfg = _load_cfg(args)
    except (ValueError, FileNotFoundError) as exc:
        parser.error(str(exc))
        return 2
    setup_logging((cfg.get("runtime") or {}).get("log_level") or "INFO")

    try:
        if args.cmd == "dump":
            return _command_dump(cfg)
        if args.cmd == "show-command":
            return _command_show(cfg)
    except ValueError as exc:
        parser.error(str(exc))
        return 2
    except DumpError as exc:
        LOGGER.error("%s", exc)
        return 1

    parser.error(f"Unhandled command: {args.cmd}")
    return 2


def _single_command_main(cmd: str) -> int:
    return main([cmd, *sys.argv[1:]])


def main_dump() -> int:
    return _single_command_main("dump")


def main_show_command() -> int:
    return _single_command_main("show-command")


if __name__ == "__main__":
    raise SystemExit(main())

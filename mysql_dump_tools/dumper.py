from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
from pathlib import Path

from .connections import Connection, ConnectionRegistry
from .errors import FilesystemError, ProcessLaunchError, QueryError
from .models import DEFAULT_BINARY, Credentials, DumpConfig, DumpResult
from .options import build_option_map, normalize_options
from .utils import ensure_dir, mask_password

LOGGER = logging.getLogger(__name__)

DATABASE_NAME_QUERY = "SELECT DATABASE();"


class MysqldumpInvoker:
    """Runs mysqldump once per call and writes its stdout to the configured dump file.

    A non-zero exit code from mysqldump is returned in the result rather than raised;
    only failures that prevent the dump from starting raise a ``DumpError``.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        credentials: Credentials | None = None,
        base_path: str | Path = ".",
    ):
        self.registry = registry
        self.credentials = credentials or Credentials()
        self.base_path = Path(base_path)

    def resolve_bin_path(self, config: DumpConfig) -> str:
        binary = config.binary_path or DEFAULT_BINARY
        resolved = shutil.which(binary)
        if resolved is None:
            raise ProcessLaunchError(f"Unable to locate the mysqldump binary: {binary}")
        return resolved

    def resolve_database_name(self, connection: Connection) -> str:
        name = connection.query_scalar(DATABASE_NAME_QUERY)
        if not name:
            raise QueryError("No database selected on the configured connection")
        return name

    def resolve_dump_path(self, config: DumpConfig) -> Path:
        directory = self.base_path / config.dump_directory
        try:
            ensure_dir(directory)
        except OSError as exc:
            raise FilesystemError(f"Failed to create dump directory {directory}: {exc}") from exc
        return directory.resolve() / config.dump_file_name

    def build_command(self, binary: str, config: DumpConfig, database: str) -> str:
        options = normalize_options(build_option_map(config, self.credentials))
        parts = [shlex.quote(binary)]
        if options:
            parts.append(options)
        parts.append(shlex.quote(database))
        return " ".join(parts)

    def _prepare(self, config: DumpConfig) -> tuple[str, list[str], str]:
        connection = self.registry.resolve(config.connection_id)
        try:
            binary = self.resolve_bin_path(config)
            database = self.resolve_database_name(connection)
        finally:
            connection.close()
        try:
            command = self.build_command(binary, config, database)
            argv = shlex.split(command)
        except ValueError as exc:
            raise ProcessLaunchError(f"Unable to build the mysqldump command line: {exc}") from exc
        return command, argv, database

    def preview(self, config: DumpConfig) -> str:
        command, _, _ = self._prepare(config)
        return command

    def run(self, config: DumpConfig) -> DumpResult:
        command, argv, database = self._prepare(config)
        dump_path = self.resolve_dump_path(config)
        masked = mask_password(command)
        LOGGER.info("Running %s > %s", masked, dump_path)

        with dump_path.open("wb") as stdout:
            try:
                proc = subprocess.Popen(
                    argv,
                    stdin=subprocess.PIPE,
                    stdout=stdout,
                    stderr=subprocess.PIPE,
                )
            except OSError as exc:
                raise ProcessLaunchError(f"Failed to start {masked}: {exc}") from exc
            _, stderr = proc.communicate()

        stderr_text = (stderr or b"").decode("utf-8", errors="replace")
        if proc.returncode != 0:
            LOGGER.warning("mysqldump exited with code %s: %s", proc.returncode, stderr_text.strip())
        else:
            LOGGER.info("Dump of %s written to %s", database, dump_path)
        return DumpResult(
            exit_code=proc.returncode,
            stderr=stderr_text,
            dump_path=dump_path,
            database=database,
            command=masked,
        )

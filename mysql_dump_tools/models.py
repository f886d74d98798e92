from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_BINARY = "mysqldump"


@dataclass(slots=True)
class DumpConfig:
    binary_path: str | None = None
    dump_directory: str = "protected/data"
    dump_file_name: str = "dump.sql"
    include_schema: bool = True
    include_data: bool = True
    include_routines: bool = False
    compact: bool = True
    connection_id: str = "db"
    extra_options: dict[str, str | None] = field(default_factory=dict)
    drop_options: list[str] = field(default_factory=list)


@dataclass(slots=True)
class Credentials:
    user: str | None = None
    password: str | None = None
    host: str | None = None
    port: str | None = None

    def as_options(self) -> dict[str, str]:
        out: dict[str, str] = {}
        for name in ("user", "password", "host", "port"):
            value = getattr(self, name)
            if value is not None:
                out[name] = str(value)
        return out


@dataclass(slots=True)
class DumpResult:
    exit_code: int
    stderr: str
    dump_path: Path
    database: str
    command: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

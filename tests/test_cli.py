import stat
from pathlib import Path

import pytest

from mysql_dump_tools import cli
from mysql_dump_tools.connections import ConnectionRegistry


class FakeConnection:
    def query_scalar(self, sql: str) -> str:
        return "shop"

    def close(self) -> None:
        pass


@pytest.fixture
def fake_registry(monkeypatch: pytest.MonkeyPatch) -> None:
    registry = ConnectionRegistry({"db": FakeConnection, "readonly": FakeConnection})
    monkeypatch.setattr(cli, "build_registry", lambda cfg, credentials=None: registry)
    for name in ("DATABASE_USER", "DATABASE_PASSWORD", "DATABASE_HOST", "DATABASE_PORT"):
        monkeypatch.delenv(name, raising=False)


def _fake_mysqldump(tmp_path: Path, exit_code: int = 0) -> Path:
    script = tmp_path / "mysqldump"
    script.write_text(
        "#!/bin/sh\n"
        "echo \"-- $*\"\n"
        "echo 'dump failed' >&2\n"
        f"exit {exit_code}\n",
        encoding="utf-8",
    )
    script.chmod(script.stat().st_mode | stat.S_IXUSR)
    return script


def test_dump_command_uses_camel_case_options(
    tmp_path: Path, fake_registry: None, capsys: pytest.CaptureFixture[str]
) -> None:
    binary = _fake_mysqldump(tmp_path)
    code = cli.main(
        [
            "dump",
            "--basePath",
            str(tmp_path),
            "--binPath",
            str(binary),
            "--schema=false",
            "--dumpFile=backup.sql",
            "--connectionID=readonly",
            "--option",
            "single-transaction",
        ]
    )
    assert code == 0
    dump = tmp_path / "protected" / "data" / "backup.sql"
    assert dump.read_text(encoding="utf-8").strip() == (
        "-- --no-create-info --skip-triggers --no-create-db --single-transaction shop"
    )
    assert "Dumped shop" in capsys.readouterr().out


def test_dump_exit_code_is_propagated(
    tmp_path: Path, fake_registry: None, capsys: pytest.CaptureFixture[str]
) -> None:
    binary = _fake_mysqldump(tmp_path, exit_code=3)
    code = cli.main(["dump", "--base-path", str(tmp_path), "--bin-path", str(binary)])
    assert code == 3
    assert "dump failed" in capsys.readouterr().err


def test_unknown_connection_exits_with_error(tmp_path: Path, fake_registry: None) -> None:
    binary = _fake_mysqldump(tmp_path)
    code = cli.main(
        ["dump", "--base-path", str(tmp_path), "--bin-path", str(binary), "--connection-id", "missing"]
    )
    assert code == 1
    assert not (tmp_path / "protected").exists()


def test_show_command_masks_password(
    tmp_path: Path,
    fake_registry: None,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.setenv("DATABASE_USER", "u")
    monkeypatch.setenv("DATABASE_PASSWORD", "s3cret")
    binary = _fake_mysqldump(tmp_path)
    code = cli.main(
        ["show-command", "--bin-path", str(binary), "--routines", "true", "--drop-option", "no-create-db"]
    )
    out = capsys.readouterr().out.strip()
    assert code == 0
    assert out == f'{binary} --user="u" --password="***" --triggers --routines shop'
    assert "s3cret" not in out


def test_invalid_boolean_is_a_usage_error(fake_registry: None) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["dump", "--schema", "maybe"])
    assert excinfo.value.code == 2


def test_unknown_config_key_is_a_usage_error(tmp_path: Path, fake_registry: None) -> None:
    path = tmp_path / "dump.yaml"
    path.write_text("dump:\n  schema: false\n", encoding="utf-8")
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["dump", "--config", str(path)])
    assert excinfo.value.code == 2


@pytest.mark.parametrize("spec", ["skip-opt users", 'a"b', "tables;x=1"])
def test_malformed_option_name_is_a_usage_error(spec: str, fake_registry: None) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["show-command", "--option", spec])
    assert excinfo.value.code == 2


def test_null_log_level_in_config_falls_back_to_info(
    tmp_path: Path, fake_registry: None, capsys: pytest.CaptureFixture[str]
) -> None:
    binary = _fake_mysqldump(tmp_path)
    path = tmp_path / "dump.yaml"
    path.write_text("runtime:\n  log_level: null\n", encoding="utf-8")
    code = cli.main(["show-command", "--config", str(path), "--bin-path", str(binary)])
    assert code == 0
    assert capsys.readouterr().out.strip().endswith("--skip-triggers --no-create-db shop")


def test_show_command_console_script(
    tmp_path: Path,
    fake_registry: None,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    binary = _fake_mysqldump(tmp_path)
    monkeypatch.setattr("sys.argv", ["mysql-dump-show-command", "--bin-path", str(binary), "--data", "false"])
    assert cli.main_show_command() == 0
    assert capsys.readouterr().out.strip() == f"{binary} --no-data --skip-triggers --no-create-db shop"

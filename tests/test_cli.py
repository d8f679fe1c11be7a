"""End-to-end smoke tests for the Typer-based ruleverify CLI."""

from __future__ import annotations

from pathlib import Path

import pytest
import typer
from sqlalchemy import create_engine, text
from typer.testing import CliRunner

from ruleverify.cli.common import CLIError, Mode, parse_assignment, parse_column, parse_override
from ruleverify.cli.main import app


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def cli_env(tmp_path: Path) -> dict[str, str]:
    return {
        "RULEVERIFY_SETTINGS__PATHS__LOGS_DIR": str(tmp_path / "logs"),
    }


@pytest.fixture()
def data_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "data"
    directory.mkdir()
    (directory / "report.csv").write_text("id,status\n1,done\n", encoding="utf-8")
    return directory


def test_parse_override_builds_nested_mapping() -> None:
    assert parse_override("policies.polling.attempts=3") == {"policies": {"polling": {"attempts": 3}}}
    assert parse_override("log_level=DEBUG") == {"log_level": "DEBUG"}


def test_parse_override_rejects_missing_separator() -> None:
    with pytest.raises(typer.BadParameter):
        parse_override("policies.polling.attempts")


def test_parse_assignment_and_column() -> None:
    assert parse_assignment("jobs.status=done=yes", option="--equals") == ("jobs.status", "done=yes")
    assert parse_column("jobs.status", option="--equals") == ("jobs", "status")
    assert parse_column("status", option="--equals") == ("", "status")
    with pytest.raises(CLIError):
        parse_assignment("novalue", option="--param")


def test_files_command_succeeds(runner: CliRunner, cli_env: dict[str, str], data_dir: Path) -> None:
    result = runner.invoke(
        app,
        [
            "files",
            str(data_dir),
            "--name",
            "report.csv",
            "--contains",
            "done",
            "--attempts",
            "1",
        ],
        env=cli_env,
    )

    assert result.exit_code == 0, result.output
    assert "Verified" in result.output


def test_files_command_does_not_exist_mode(runner: CliRunner, cli_env: dict[str, str], data_dir: Path) -> None:
    result = runner.invoke(
        app,
        ["files", str(data_dir), "--name", "missing.csv", "--mode", Mode.DOES_NOT_EXIST.value],
        env=cli_env,
    )

    assert result.exit_code == 0, result.output
    assert "does-not-exist" in result.output


def test_verbose_prints_context(runner: CliRunner, cli_env: dict[str, str], data_dir: Path) -> None:
    result = runner.invoke(
        app,
        [
            "--verbose",
            "-o",
            "policies.polling.attempts=1",
            "files",
            str(data_dir),
            "--name",
            "report.csv",
        ],
        env=cli_env,
    )

    assert result.exit_code == 0, result.output
    assert "CLI Context" in result.output
    assert "1 attempts" in result.output


def test_failed_verification_exits_with_one(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str], tmp_path: Path, data_dir: Path
) -> None:
    monkeypatch.setenv("RULEVERIFY_SETTINGS__PATHS__LOGS_DIR", str(tmp_path / "logs"))

    with pytest.raises(typer.Exit) as excinfo:
        app(
            prog_name="ruleverify",
            args=["files", str(data_dir), "--name", "report.csv", "--size", "1", "--attempts", "1"],
            standalone_mode=False,
        )

    assert excinfo.value.exit_code == 1
    output = capsys.readouterr().out
    assert "Failed" in output
    assert "checkSize" in output


def test_cli_error_exits_with_two(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str], tmp_path: Path, data_dir: Path
) -> None:
    monkeypatch.setenv("RULEVERIFY_SETTINGS__PATHS__LOGS_DIR", str(tmp_path / "logs"))

    with pytest.raises(typer.Exit) as excinfo:
        app(
            prog_name="ruleverify",
            args=["files", str(data_dir), "--mode", "never-exists", "--only-new"],
            standalone_mode=False,
        )

    assert excinfo.value.exit_code == 2
    assert "--only-new" in capsys.readouterr().out


def test_db_command_against_sqlite(runner: CliRunner, cli_env: dict[str, str], tmp_path: Path) -> None:
    database = tmp_path / "jobs.db"
    engine = create_engine(f"sqlite:///{database}")
    with engine.begin() as connection:
        connection.execute(text("CREATE TABLE jobs (id INTEGER PRIMARY KEY, status TEXT)"))
        connection.execute(text("INSERT INTO jobs (id, status) VALUES (1, 'done'), (2, 'running')"))
    engine.dispose()

    result = runner.invoke(
        app,
        [
            "db",
            "--url",
            f"sqlite:///{database}",
            "--query",
            "SELECT id, status FROM jobs WHERE id = :id",
            "--param",
            "id=1",
            "--equals",
            "status=done",
            "--attempts",
            "1",
        ],
        env=cli_env,
    )

    assert result.exit_code == 0, result.output
    assert "Verified" in result.output


def test_db_command_requires_query_or_table(runner: CliRunner, cli_env: dict[str, str]) -> None:
    result = runner.invoke(app, ["db", "--url", "sqlite://"], env=cli_env)

    assert result.exit_code != 0
    assert isinstance(result.exception, CLIError)


@pytest.fixture()
def jobs_url(tmp_path: Path) -> str:
    database = tmp_path / "jobs.db"
    engine = create_engine(f"sqlite:///{database}")
    with engine.begin() as connection:
        connection.execute(text("CREATE TABLE jobs (id INTEGER PRIMARY KEY, status TEXT)"))
        connection.execute(text("INSERT INTO jobs (id, status) VALUES (1, 'done')"))
    engine.dispose()
    return f"sqlite:///{database}"


def test_db_query_accepts_table_qualified_columns(
    runner: CliRunner, cli_env: dict[str, str], jobs_url: str
) -> None:
    result = runner.invoke(
        app,
        [
            "db",
            "--url",
            jobs_url,
            "--query",
            "SELECT * FROM jobs",
            "--equals",
            "jobs.status=done",
            "--attempts",
            "1",
        ],
        env=cli_env,
    )

    assert result.exit_code == 0, result.output
    assert "Verified" in result.output


def test_unknown_column_exits_with_two(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str], tmp_path: Path, jobs_url: str
) -> None:
    monkeypatch.setenv("RULEVERIFY_SETTINGS__PATHS__LOGS_DIR", str(tmp_path / "logs"))

    with pytest.raises(typer.Exit) as excinfo:
        app(
            prog_name="ruleverify",
            args=["db", "--url", jobs_url, "--query", "SELECT * FROM jobs", "--equals", "jobs.owner=alice"],
            standalone_mode=False,
        )

    assert excinfo.value.exit_code == 2
    assert "Rule error" in capsys.readouterr().out

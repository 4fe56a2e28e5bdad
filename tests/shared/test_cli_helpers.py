from __future__ import annotations

from pathlib import Path

import click
import pytest
from click.testing import CliRunner

from sqliter.shared import paths
from sqliter.shared.cli import CLIContext, build_cli_context, common_cli_options, handle_cli_errors
from sqliter.shared.exceptions import ConfigurationError, TableNotFoundError


@pytest.fixture
def runner(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> CliRunner:
    monkeypatch.setenv(paths.CONFIG_DIR_ENV, str(tmp_path / "config"))
    monkeypatch.delenv(paths.CONFIG_FILE_ENV, raising=False)
    monkeypatch.delenv(paths.DATABASE_PATH_ENV, raising=False)
    return CliRunner()


@click.command()
@common_cli_options
def show(cli_ctx: CLIContext) -> None:
    click.echo(f"db={cli_ctx.db_path} verbose={cli_ctx.verbose}")


def test_common_cli_options_builds_context(runner: CliRunner, tmp_path: Path) -> None:
    db_file = tmp_path / "app.db"

    result = runner.invoke(show, ["--db", str(db_file), "--verbose"])

    assert result.exit_code == 0, result.output
    assert f"db={db_file} verbose=True" in result.output


def test_common_cli_options_reads_database_from_env(
    runner: CliRunner, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv(paths.DATABASE_PATH_ENV, str(tmp_path / "env.db"))

    result = runner.invoke(show, [])

    assert result.exit_code == 0, result.output
    assert f"db={tmp_path / 'env.db'}" in result.output


def test_common_cli_options_requires_database(runner: CliRunner) -> None:
    result = runner.invoke(show, [])

    assert result.exit_code == 2
    assert "Database path is required" in result.output


def test_common_cli_options_reports_bad_config(runner: CliRunner, tmp_path: Path) -> None:
    cfg_file = tmp_path / "broken.yaml"
    cfg_file.write_text("server:\n  port: 0\n", encoding="utf-8")

    result = runner.invoke(show, ["--config", str(cfg_file), "--db", str(tmp_path / "x.db")])

    assert result.exit_code == 1
    assert "port" in result.output


def test_handle_cli_errors_converts_project_errors(runner: CliRunner) -> None:
    @click.command()
    @handle_cli_errors
    def missing() -> None:
        raise TableNotFoundError("ghosts")

    @click.command()
    @handle_cli_errors
    def misconfigured() -> None:
        raise ConfigurationError("bad port")

    missing_result = runner.invoke(missing, [])
    config_result = runner.invoke(misconfigured, [])

    assert missing_result.exit_code == 1
    assert "Table 'ghosts' does not exist" in missing_result.output
    assert config_result.exit_code == 1
    assert "Configuration error: bad port" in config_result.output


def test_build_cli_context_applies_db_override(runner: CliRunner, tmp_path: Path) -> None:
    cli_ctx = build_cli_context(None, str(tmp_path / "direct.db"), verbose=False)

    assert cli_ctx.db_path == tmp_path / "direct.db"
    assert cli_ctx.config.database.path == tmp_path / "direct.db"
    assert cli_ctx.logger.verbose is False

    with pytest.raises(click.UsageError):
        build_cli_context(None, None, verbose=False)


def test_handle_cli_errors_leaves_other_exceptions_alone(runner: CliRunner) -> None:
    @click.command()
    @handle_cli_errors
    def broken() -> None:
        raise RuntimeError("boom")

    result = runner.invoke(broken, [])

    assert result.exit_code == 1
    assert isinstance(result.exception, RuntimeError)

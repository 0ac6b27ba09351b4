from __future__ import annotations

from pathlib import Path

import click
import pytest
import typer
from typer.testing import CliRunner

from relflow import __version__
from relflow.cli.app import app
from relflow.cli.context import VERBOSE_ENV
from relflow.core.errors import ErrorCode
from relflow.core.workspace import ENV_VAR

runner = CliRunner()


@pytest.fixture(autouse=True)
def _restore_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # --root and --verbose export environment variables for the commands.
    monkeypatch.setenv(ENV_VAR, "")
    monkeypatch.delenv(ENV_VAR)
    monkeypatch.setenv(VERBOSE_ENV, "")
    monkeypatch.delenv(VERBOSE_ENV)


def test_version_flag() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.output.strip() == __version__


def test_root_must_be_a_project(tmp_path: Path) -> None:
    result = runner.invoke(app, ["--root", str(tmp_path), "pipeline", "validate"])
    assert result.exit_code == int(ErrorCode.ENV_ERROR)
    assert "missing relflow.toml" in result.output


def test_root_selects_project(project: Path) -> None:
    result = runner.invoke(app, ["--root", str(project), "pipeline", "validate"])
    assert result.exit_code == 0, result.output
    assert "3 stages" in result.output


def test_branch_exit_codes() -> None:
    ok = runner.invoke(app, ["branch", "develop", "--version", "1.0.0-SNAPSHOT"])
    refused = runner.invoke(app, ["branch", "main", "--version", "1.0.0-SNAPSHOT"])

    assert ok.exit_code == 0
    assert "development" in ok.output
    assert refused.exit_code == int(ErrorCode.POLICY_ERROR)


def test_invalid_config_is_user_error(project: Path) -> None:
    (project / "relflow.toml").write_text("[project\n", encoding="utf-8")
    result = runner.invoke(app, ["--root", str(project), "artifact", "list"])
    assert result.exit_code == int(ErrorCode.USER_ERROR)


def _leaf_commands(command: click.Command) -> list[click.Command]:
    if isinstance(command, click.Group):
        return [leaf for sub in command.commands.values() for leaf in _leaf_commands(sub)]
    return [command]


def test_every_option_is_documented() -> None:
    root = typer.main.get_command(app)
    undocumented = [
        f"{command.name} {param.opts[0]}"
        for command in [root, *_leaf_commands(root)]
        for param in command.params
        if isinstance(param, click.Option) and not param.help
    ]
    assert undocumented == []

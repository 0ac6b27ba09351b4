from __future__ import annotations

from pathlib import Path

import pytest
import typer

from relflow.cli.context import CLIContext
from relflow.core.errors import ErrorCode
from relflow.core.result import Ok
from relflow.output.console import MockConsole
from relflow.services.flow import list_runs, load_run


def _patch(monkeypatch: pytest.MonkeyPatch, ctx: CLIContext) -> None:
    import relflow.cli.commands.approval as approval_cmd
    import relflow.cli.commands.pipeline_cmd as pipeline_cmd

    monkeypatch.setattr(pipeline_cmd, "build_context", lambda: ctx)
    monkeypatch.setattr(approval_cmd, "build_context", lambda: ctx)


def _run(
    project: Path,
    *,
    branch: str,
    version: str | None,
    by: str = "ci",
) -> None:
    import relflow.cli.commands.pipeline_cmd as pipeline_cmd

    pipeline_cmd.run(
        branch=branch,
        version=version,
        artifact=project / "billing.jar",
        requested_by=by,
        build_number="7",
        file=None,
    )


def test_validate_lists_stage_order(
    cli_ctx: CLIContext, console: MockConsole, monkeypatch: pytest.MonkeyPatch
) -> None:
    import relflow.cli.commands.pipeline_cmd as pipeline_cmd

    _patch(monkeypatch, cli_ctx)
    pipeline_cmd.validate(file=None)

    assert console.find("3 stages: Build -> DeployDev -> DeployUat")


def test_validate_broken_pipeline_exits(
    cli_ctx: CLIContext, project: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    import relflow.cli.commands.pipeline_cmd as pipeline_cmd

    broken = project / "broken.yml"
    broken.write_text("stages:\n  - stage: A\n    dependsOn: Missing\n", encoding="utf-8")
    _patch(monkeypatch, cli_ctx)

    with pytest.raises(typer.Exit) as exc:
        pipeline_cmd.validate(file=broken)
    assert exc.value.exit_code == int(ErrorCode.PIPELINE_ERROR)


def test_plan_predicts_release_branch(
    cli_ctx: CLIContext, console: MockConsole, monkeypatch: pytest.MonkeyPatch
) -> None:
    import relflow.cli.commands.pipeline_cmd as pipeline_cmd

    _patch(monkeypatch, cli_ctx)
    pipeline_cmd.plan(branch="release/1.4.0", version="1.4.0", file=None)

    assert not console.has_error()
    assert any("DeployDev" in m and "skipped" in m for m in console.messages)
    assert any("DeployUat" in m and "succeeded" in m for m in console.messages)


def test_plan_warns_when_branch_does_not_trigger(
    cli_ctx: CLIContext, console: MockConsole, monkeypatch: pytest.MonkeyPatch
) -> None:
    import relflow.cli.commands.pipeline_cmd as pipeline_cmd

    _patch(monkeypatch, cli_ctx)
    pipeline_cmd.plan(branch="feature/x", version="0.0.0", file=None)

    assert console.find("does not trigger")


def test_develop_run_uses_version_file(
    cli_ctx: CLIContext, console: MockConsole, project: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    _patch(monkeypatch, cli_ctx)
    _run(project, branch="develop", version=None)

    runs = list_runs(cli_ctx.workspace.runs_dir)
    assert len(runs) == 1
    assert runs[0].version == "1.4.0-SNAPSHOT"
    assert runs[0].status == "succeeded"
    assert console.has_success()


def test_release_run_waits_then_approval_completes(
    cli_ctx: CLIContext, console: MockConsole, project: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    import relflow.cli.commands.approval as approval_cmd
    import relflow.cli.commands.pipeline_cmd as pipeline_cmd

    _patch(monkeypatch, cli_ctx)
    _run(project, branch="release/1.4.0", version="1.4.0")

    run_id = list_runs(cli_ctx.workspace.runs_dir)[0].run_id
    assert console.has_warning()
    assert console.find(f"relflow approve {run_id} DeployUat")

    approval_cmd.approve(run_id=run_id, stage="DeployUat", by="alice", comment="lgtm")

    loaded = load_run(cli_ctx.workspace.runs_dir, run_id)
    assert isinstance(loaded, Ok)
    assert loaded.value.status == "succeeded"

    console.clear()
    pipeline_cmd.status(run_id=run_id)
    assert console.find("approval approved: 1/1")


def test_requester_cannot_approve_own_run(
    cli_ctx: CLIContext, project: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    import relflow.cli.commands.approval as approval_cmd

    _patch(monkeypatch, cli_ctx)
    _run(project, branch="release/1.4.0", version="1.4.0", by="alice")
    run_id = list_runs(cli_ctx.workspace.runs_dir)[0].run_id

    with pytest.raises(typer.Exit) as exc:
        approval_cmd.approve(run_id=run_id, stage="DeployUat", by="alice", comment=None)
    assert exc.value.exit_code == int(ErrorCode.POLICY_ERROR)


def test_reject_stops_the_run_without_failing_the_command(
    cli_ctx: CLIContext, console: MockConsole, project: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    import relflow.cli.commands.approval as approval_cmd

    _patch(monkeypatch, cli_ctx)
    _run(project, branch="release/1.4.0", version="1.4.0")
    run_id = list_runs(cli_ctx.workspace.runs_dir)[0].run_id

    approval_cmd.reject(run_id=run_id, stage="DeployUat", by="bob", reason="smoke tests red")

    assert console.find(f"DeployUat rejected by bob; {run_id} failed")
    loaded = load_run(cli_ctx.workspace.runs_dir, run_id)
    assert isinstance(loaded, Ok)
    assert loaded.value.status == "failed"


def test_release_version_on_develop_is_a_policy_error(
    cli_ctx: CLIContext, project: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    _patch(monkeypatch, cli_ctx)

    with pytest.raises(typer.Exit) as exc:
        _run(project, branch="develop", version="1.4.0")
    assert exc.value.exit_code == int(ErrorCode.POLICY_ERROR)


def test_missing_artifact_is_io_error(
    cli_ctx: CLIContext, project: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    import relflow.cli.commands.pipeline_cmd as pipeline_cmd

    _patch(monkeypatch, cli_ctx)
    with pytest.raises(typer.Exit) as exc:
        pipeline_cmd.run(
            branch="develop",
            version=None,
            artifact=project / "missing.jar",
            requested_by="ci",
            build_number=None,
            file=None,
        )
    assert exc.value.exit_code == int(ErrorCode.IO_ERROR)


def test_status_without_runs(
    cli_ctx: CLIContext, console: MockConsole, monkeypatch: pytest.MonkeyPatch
) -> None:
    import relflow.cli.commands.pipeline_cmd as pipeline_cmd

    _patch(monkeypatch, cli_ctx)
    pipeline_cmd.status(run_id=None)
    assert console.find("no runs")

    with pytest.raises(typer.Exit) as exc:
        pipeline_cmd.status(run_id="run-missing")
    assert exc.value.exit_code == int(ErrorCode.USER_ERROR)

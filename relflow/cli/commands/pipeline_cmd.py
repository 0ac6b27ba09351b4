"""`relflow pipeline`: validate, plan and run the release pipeline."""

from __future__ import annotations

from pathlib import Path

import typer

from relflow.cli.commands._helpers import exit_on_error, print_stage, stage_printer
from relflow.cli.context import CLIContext, build_context, current_user
from relflow.core.errors import ErrorCode
from relflow.output.console import Style
from relflow.services.flow import RunState, list_runs, load_run, resume_run, start_run
from relflow.services.flow.service import build_variables
from relflow.services.pipeline import PipelineDefinition, load_pipeline, loads_pipeline, plan_run
from relflow.services.version.version_file import read_version

pipeline_app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Stage Sequencer: pipeline definitions and release runs.",
)


def _definition(ctx: CLIContext, file: Path | None) -> PipelineDefinition:
    path = file or ctx.workspace.root / ctx.config.pipeline_file
    return exit_on_error(load_pipeline(path), ctx.console, ErrorCode.PIPELINE_ERROR)


def report_run(ctx: CLIContext, run: RunState) -> None:
    ctx.console.newline()
    match run.status:
        case "succeeded":
            ctx.console.success(f"{run.run_id} succeeded")
        case "waiting":
            waiting = [name for name, r in run.records.items() if r.result == "waiting"]
            ctx.console.warning(f"{run.run_id} waiting for approval: {', '.join(waiting)}")
            for stage in waiting:
                ctx.console.print(
                    f"  relflow approve {run.run_id} {stage} --by <name>", Style.DIM
                )
        case "failed":
            ctx.console.error(f"{run.run_id} failed")
            raise typer.Exit(code=int(ErrorCode.PIPELINE_ERROR))
        case _:
            ctx.console.info(f"{run.run_id} {run.status}")


@pipeline_app.command("validate")
def validate(
    file: Path | None = typer.Option(None, "--file", "-f", help="Pipeline YAML file"),
) -> None:
    """Parse the pipeline and check stages, dependencies and conditions."""
    ctx = build_context()
    definition = _definition(ctx, file)
    order = " -> ".join(stage.name for stage in definition.stages)
    ctx.console.success(f"{len(definition.stages)} stages: {order}")


@pipeline_app.command("plan")
def plan(
    branch: str = typer.Option(..., "--branch", "-b", help="Source branch"),
    version: str = typer.Option("0.0.0", "--version", help="Release.Version variable"),
    file: Path | None = typer.Option(None, "--file", "-f", help="Pipeline YAML file"),
) -> None:
    """Predict which stages run for a branch, assuming every stage succeeds."""
    ctx = build_context()
    definition = _definition(ctx, file)
    if not definition.trigger.matches(branch.removeprefix("refs/heads/")):
        ctx.console.warning(f"branch {branch} does not trigger this pipeline")

    variables = build_variables(branch=branch, version=version, build_number="plan")
    progress = exit_on_error(
        plan_run(definition, variables), ctx.console, ErrorCode.PIPELINE_ERROR
    )
    for stage in definition.stages:
        print_stage(ctx.console, stage, progress.records[stage.name])


@pipeline_app.command("run")
def run(
    branch: str = typer.Option(..., "--branch", "-b", help="Source branch"),
    version: str | None = typer.Option(
        None, "--version", help="Version to build (default: the project version file)"
    ),
    artifact: Path = typer.Option(..., "--artifact", help="Build output to deploy once"),
    requested_by: str | None = typer.Option(None, "--by", help="Who requests the run"),
    build_number: str | None = typer.Option(
        None, "--build-number", help="Build identifier recorded on the run (default: a timestamp)"
    ),
    file: Path | None = typer.Option(None, "--file", "-f", help="Pipeline YAML file"),
) -> None:
    """Start a release run: build once, then deploy through the environments."""
    ctx = build_context()
    definition = _definition(ctx, file)

    if version is None:
        version_file = ctx.workspace.root / ctx.config.project.version_file
        version = str(exit_on_error(read_version(version_file), ctx.console))

    try:
        content = artifact.read_bytes()
    except OSError as e:
        ctx.console.error(f"cannot read artifact {artifact}: {e}")
        raise typer.Exit(code=int(ErrorCode.IO_ERROR))

    ctx.console.header(f"Run {branch} @ {version}")
    result = exit_on_error(
        start_run(
            ctx.flow(),
            definition=definition,
            branch=branch,
            version=version,
            requested_by=requested_by or current_user(),
            artifact_content=content,
            build_number=build_number,
            observer=stage_printer(ctx.console),
        ),
        ctx.console,
        ErrorCode.PIPELINE_ERROR,
    )
    report_run(ctx, result)


@pipeline_app.command("resume")
def resume(run_id: str = typer.Argument(..., help="Run id")) -> None:
    """Re-enter a waiting run (e.g. after an approval timeout)."""
    ctx = build_context()
    result = exit_on_error(
        resume_run(ctx.flow(), run_id, observer=stage_printer(ctx.console)),
        ctx.console,
        ErrorCode.PIPELINE_ERROR,
    )
    report_run(ctx, result)


@pipeline_app.command("status")
def status(run_id: str | None = typer.Argument(None, help="Run id (default: list runs)")) -> None:
    """List runs, or show the stages of one run."""
    ctx = build_context()
    runs_dir = ctx.workspace.runs_dir

    if run_id is None:
        runs = list_runs(runs_dir)
        if not runs:
            ctx.console.info("no runs")
            return
        ctx.console.table(
            ["run", "branch", "version", "status", "created"],
            [[r.run_id, r.branch, r.version, r.status, r.created_at] for r in runs],
        )
        return

    run_state = exit_on_error(load_run(runs_dir, run_id), ctx.console, ErrorCode.PIPELINE_ERROR)
    ctx.console.header(f"{run_state.run_id} ({run_state.status})")
    ctx.console.print(f"branch {run_state.branch}, version {run_state.version}")
    if run_state.artifact is not None:
        ref = run_state.artifact
        ctx.console.print(f"artifact {ref.coordinates} sha256={ref.sha256[:12]}")

    definition = exit_on_error(
        loads_pipeline(run_state.pipeline), ctx.console, ErrorCode.PIPELINE_ERROR
    )
    for stage in definition.stages:
        print_stage(ctx.console, stage, run_state.records[stage.name])
        req = run_state.approvals.get(stage.name)
        if req is not None:
            ctx.console.detail(
                f"approval {req.status}: {len(req.approvers)}/{req.policy.min_approvers}"
            )

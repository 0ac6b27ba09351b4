from __future__ import annotations

import typer

from relflow.cli.commands._helpers import exit_on_error, stage_printer
from relflow.cli.commands.pipeline_cmd import report_run
from relflow.cli.context import build_context
from relflow.core.errors import ErrorCode
from relflow.services.flow import decide


def approve(
    run_id: str = typer.Argument(..., help="Run id"),
    stage: str = typer.Argument(..., help="Deployment stage waiting for approval"),
    by: str = typer.Option(..., "--by", help="Approver identity"),
    comment: str | None = typer.Option(None, "--comment", "-m", help="Recorded with the decision"),
) -> None:
    """Approve a deployment stage and resume the run."""
    ctx = build_context()
    result = exit_on_error(
        decide(
            ctx.flow(),
            run_id=run_id,
            stage=stage,
            approver=by,
            approved=True,
            comment=comment,
            observer=stage_printer(ctx.console),
        ),
        ctx.console,
        ErrorCode.PIPELINE_ERROR,
    )
    report_run(ctx, result)


def reject(
    run_id: str = typer.Argument(..., help="Run id"),
    stage: str = typer.Argument(..., help="Deployment stage waiting for approval"),
    by: str = typer.Option(..., "--by", help="Approver identity"),
    reason: str = typer.Option(..., "--reason", help="Why the deployment is rejected"),
) -> None:
    """Reject a deployment stage; the stage fails and the run stops."""
    ctx = build_context()
    result = exit_on_error(
        decide(
            ctx.flow(),
            run_id=run_id,
            stage=stage,
            approver=by,
            approved=False,
            comment=reason,
            observer=stage_printer(ctx.console),
        ),
        ctx.console,
        ErrorCode.PIPELINE_ERROR,
    )
    ctx.console.warning(f"{stage} rejected by {by}; {result.run_id} {result.status}")

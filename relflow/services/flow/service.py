"""Release runs: start, resume and approval decisions.

A run couples one branch build to one pipeline definition. Its state is
persisted after every stage so an approval given hours later (from another
shell or another machine sharing the state directory) resumes it.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from pathlib import Path
from uuid import uuid4

from relflow.core.config import Config
from relflow.core.result import Err, Ok, Result
from relflow.services.approvals import ApprovalRequest, approve, refresh, reject
from relflow.services.branches import check_branch_version, classify_branch
from relflow.services.flow.errors import FlowError
from relflow.services.flow.run_state import RunState, load_run, save_run
from relflow.services.flow.runner import ReleaseStageRunner
from relflow.services.pipeline.errors import PipelineError
from relflow.services.pipeline.loader import dump_pipeline, loads_pipeline
from relflow.services.pipeline.model import PipelineDefinition
from relflow.services.pipeline.sequencer import (
    Sequencer,
    StageObserver,
    StageRecord,
    initial_records,
)
from relflow.services.promotion.repository import FileSystemRepositoryManager
from relflow.services.version.semver import parse_version

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def build_variables(*, branch: str, version: str, build_number: str) -> dict[str, str]:
    info = classify_branch(branch)
    return {
        "Build.SourceBranch": info.ref,
        "Build.SourceBranchName": info.name.rsplit("/", 1)[-1],
        "Build.BuildNumber": build_number,
        "Release.Version": version,
    }


@dataclass(frozen=True, slots=True)
class FlowContext:
    """Where a run lives and what it runs against."""

    config: Config
    runs_dir: Path
    repository_dir: Path
    clock: Clock = _utc_now

    def manager(self) -> FileSystemRepositoryManager:
        return FileSystemRepositoryManager(self.repository_dir, self.config.repositories)


def _pipeline_err(e: PipelineError) -> FlowError:
    return FlowError(kind="pipeline", message=e.message, hint=e.hint)


def _execute(
    ctx: FlowContext,
    run: RunState,
    *,
    artifact_content: bytes | None = None,
    observer: StageObserver | None = None,
) -> Result[RunState, FlowError]:
    definition = loads_pipeline(run.pipeline)
    if isinstance(definition, Err):
        return Err(_pipeline_err(definition.error))

    runner = ReleaseStageRunner(
        run=run,
        config=ctx.config,
        manager=ctx.manager(),
        clock=ctx.clock,
        artifact_content=artifact_content,
    )

    def save(records: Mapping[str, StageRecord]) -> Result[None, PipelineError]:
        runner.run = replace(runner.run, records=dict(records))
        saved = save_run(ctx.runs_dir, runner.run)
        if isinstance(saved, Err):
            return Err(PipelineError(kind="state_io", message=saved.error.message))
        return Ok(None)

    progress = Sequencer(definition.value).run(
        records=run.records,
        variables=run.variables,
        runner=runner,
        save=save,
        observer=observer,
    )
    if isinstance(progress, Err):
        return Err(_pipeline_err(progress.error))

    final = replace(runner.run, records=progress.value.records)
    saved = save_run(ctx.runs_dir, final)
    if isinstance(saved, Err):
        return saved
    return Ok(final)


def start_run(
    ctx: FlowContext,
    *,
    definition: PipelineDefinition,
    branch: str,
    version: str,
    requested_by: str,
    artifact_content: bytes | None,
    build_number: str | None = None,
    observer: StageObserver | None = None,
) -> Result[RunState, FlowError]:
    parsed = parse_version(version)
    if parsed is None:
        return Err(
            FlowError(
                kind="invalid_input",
                message=f"invalid version: {version}",
                hint="Expected: MAJOR.MINOR.PATCH[-SNAPSHOT]",
            )
        )

    info = classify_branch(branch)
    allowed = check_branch_version(info, parsed)
    if isinstance(allowed, Err):
        e = allowed.error
        return Err(FlowError(kind="version_policy", message=e.message, hint=e.hint))

    if not definition.trigger.matches(info.name):
        return Err(
            FlowError(
                kind="not_triggered",
                message=f"branch {info.name} does not trigger this pipeline",
            )
        )

    now = ctx.clock()
    run_id = f"run-{now.strftime('%Y%m%d%H%M%S')}-{uuid4().hex[:6]}"
    run = RunState(
        run_id=run_id,
        created_at=now.isoformat(),
        requested_by=requested_by,
        branch=info.name,
        version=str(parsed),
        pipeline=dump_pipeline(definition),
        variables=build_variables(
            branch=info.name,
            version=str(parsed),
            build_number=build_number or now.strftime("%Y%m%d.%H%M%S"),
        ),
        records=initial_records(definition),
    )
    saved = save_run(ctx.runs_dir, run)
    if isinstance(saved, Err):
        return saved

    return _execute(ctx, run, artifact_content=artifact_content, observer=observer)


def resume_run(
    ctx: FlowContext,
    run_id: str,
    *,
    observer: StageObserver | None = None,
) -> Result[RunState, FlowError]:
    loaded = load_run(ctx.runs_dir, run_id)
    if isinstance(loaded, Err):
        return loaded
    run = loaded.value
    if run.is_finished:
        return Err(
            FlowError(kind="run_finished", message=f"run {run_id} already {run.status}")
        )
    return _execute(ctx, run, observer=observer)


def _pending_request(run: RunState, stage: str) -> Result[ApprovalRequest, FlowError]:
    if stage not in run.records:
        return Err(
            FlowError(
                kind="unknown_stage",
                message=f"run {run.run_id} has no stage {stage}",
                hint=f"Stages: {', '.join(run.records)}",
            )
        )
    req = run.approvals.get(stage)
    if req is None:
        return Err(
            FlowError(
                kind="approval",
                message=f"stage {stage} has no approval request",
                hint="Only deployment stages that reached their environment can be approved.",
            )
        )
    return Ok(req)


def decide(
    ctx: FlowContext,
    *,
    run_id: str,
    stage: str,
    approver: str,
    approved: bool,
    comment: str | None = None,
    observer: StageObserver | None = None,
) -> Result[RunState, FlowError]:
    """Record an approval or rejection, then resume the run."""
    loaded = load_run(ctx.runs_dir, run_id)
    if isinstance(loaded, Err):
        return loaded
    run = loaded.value

    req = _pending_request(run, stage)
    if isinstance(req, Err):
        return req

    now = ctx.clock()
    if approved:
        decided = approve(req.value, approver=approver, now=now, comment=comment)
    else:
        decided = reject(req.value, approver=approver, reason=comment, now=now)

    if isinstance(decided, Err):
        # Persist an expiry noticed while deciding, so the run can fail the stage.
        expired = refresh(req.value, now=now)
        if expired.status != req.value.status:
            run = replace(run, approvals={**run.approvals, stage: expired})
            saved = save_run(ctx.runs_dir, run)
            if isinstance(saved, Err):
                return saved
        e = decided.error
        return Err(FlowError(kind="approval", message=e.message, hint=e.hint))

    run = replace(run, approvals={**run.approvals, stage: decided.value})
    saved = save_run(ctx.runs_dir, run)
    if isinstance(saved, Err):
        return saved

    if run.is_finished:
        return Ok(run)
    return _execute(ctx, run, observer=observer)

"""Stage Sequencer.

Runs the stages of a pipeline one at a time in dependency order, the way a
hosted pipeline engine does for a single agent:

- a stage starts only when all of its dependencies are terminal
  (succeeded, failed or skipped);
- its condition (default `succeeded()`) is evaluated against the
  dependency results and the run variables; false means `skipped`;
- a stage may answer `waiting` (an approval is pending): it blocks its
  dependents, other branches of the graph keep going, and the run pauses;
- calling `run` again with the saved records resumes where it stopped.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Literal, Protocol

from relflow.core.result import Err, Ok, Result
from relflow.services.pipeline.errors import PipelineError
from relflow.services.pipeline.expressions import DependencyResult, EvalContext, evaluate_condition
from relflow.services.pipeline.model import PipelineDefinition, Stage, validate

StageResult = Literal["pending", "waiting", "succeeded", "failed", "skipped"]
RunStatus = Literal["running", "waiting", "succeeded", "failed"]

_TERMINAL: frozenset[StageResult] = frozenset({"succeeded", "failed", "skipped"})


@dataclass(frozen=True, slots=True)
class StageRecord:
    result: StageResult = "pending"
    detail: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.result in _TERMINAL


@dataclass(frozen=True, slots=True)
class StageOutcome:
    result: Literal["succeeded", "failed", "waiting"]
    detail: str | None = None


class StageRunner(Protocol):
    def run_stage(
        self, stage: Stage, variables: Mapping[str, str]
    ) -> Result[StageOutcome, PipelineError]: ...


SaveRecords = Callable[[Mapping[str, StageRecord]], Result[None, PipelineError]]
StageObserver = Callable[[Stage, StageRecord], None]


@dataclass(frozen=True, slots=True)
class RunProgress:
    records: dict[str, StageRecord]
    status: RunStatus

    def result_of(self, stage: str) -> StageResult:
        return self.records[stage].result


def initial_records(definition: PipelineDefinition) -> dict[str, StageRecord]:
    return {s.name: StageRecord() for s in definition.stages}


def overall_status(records: Mapping[str, StageRecord]) -> RunStatus:
    results = [r.result for r in records.values()]
    if "waiting" in results:
        return "waiting"
    if "pending" in results:
        return "running"
    if "failed" in results:
        return "failed"
    return "succeeded"


class Sequencer:
    def __init__(self, definition: PipelineDefinition) -> None:
        ordered = validate(definition.stages)
        if isinstance(ordered, Err):
            raise ValueError(ordered.error.message)
        self._definition = definition
        self._order = ordered.value

    @property
    def order(self) -> tuple[Stage, ...]:
        return self._order

    def run(
        self,
        *,
        records: Mapping[str, StageRecord],
        variables: Mapping[str, str],
        runner: StageRunner,
        save: SaveRecords | None = None,
        observer: StageObserver | None = None,
    ) -> Result[RunProgress, PipelineError]:
        current = dict(records)
        for s in self._order:
            current.setdefault(s.name, StageRecord())

        for stage in self._order:
            record = current[stage.name]
            if record.is_terminal:
                continue

            deps = [current[d] for d in stage.depends_on]
            if not all(d.is_terminal for d in deps):
                continue

            if record.result == "pending":
                dep_results: dict[str, DependencyResult] = {
                    d: _as_dependency(current[d].result) for d in stage.depends_on
                }
                ctx = EvalContext(variables=variables, dependencies=dep_results)
                should_run = evaluate_condition(stage.effective_condition, ctx)
                if isinstance(should_run, Err):
                    return should_run
                if not should_run.value:
                    reason = f"condition not met: {stage.effective_condition}"
                    skipped = StageRecord("skipped", reason)
                    saved = self._commit(current, stage, skipped, save, observer)
                    if isinstance(saved, Err):
                        return saved
                    continue

            outcome = runner.run_stage(stage, variables)
            if isinstance(outcome, Err):
                return outcome
            updated = StageRecord(outcome.value.result, outcome.value.detail)
            saved = self._commit(current, stage, updated, save, observer)
            if isinstance(saved, Err):
                return saved

        return Ok(RunProgress(records=current, status=overall_status(current)))

    def _commit(
        self,
        current: dict[str, StageRecord],
        stage: Stage,
        record: StageRecord,
        save: SaveRecords | None,
        observer: StageObserver | None,
    ) -> Result[None, PipelineError]:
        current[stage.name] = record
        if observer is not None:
            observer(stage, record)
        if save is not None:
            return save(current)
        return Ok(None)


def _as_dependency(result: StageResult) -> DependencyResult:
    match result:
        case "succeeded":
            return "succeeded"
        case "failed":
            return "failed"
        case _:
            return "skipped"


class _AssumeSuccess:
    def run_stage(
        self, stage: Stage, variables: Mapping[str, str]
    ) -> Result[StageOutcome, PipelineError]:
        return Ok(StageOutcome("succeeded", "planned"))


def plan_run(
    definition: PipelineDefinition, variables: Mapping[str, str]
) -> Result[RunProgress, PipelineError]:
    """Predict which stages run for the given variables if every stage succeeds."""
    return Sequencer(definition).run(
        records=initial_records(definition),
        variables=variables,
        runner=_AssumeSuccess(),
    )

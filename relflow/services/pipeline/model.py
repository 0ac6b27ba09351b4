from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from typing import Literal

from relflow.core.config import EnvironmentName
from relflow.core.result import Err, Ok, Result
from relflow.services.pipeline.errors import PipelineError

StageKind = Literal["build", "deploy"]

DEFAULT_CONDITION = "succeeded()"


@dataclass(frozen=True, slots=True)
class Stage:
    name: str
    depends_on: tuple[str, ...] = ()
    condition: str | None = None
    environment: EnvironmentName | None = None
    display_name: str | None = None

    @property
    def kind(self) -> StageKind:
        return "build" if self.environment is None else "deploy"

    @property
    def effective_condition(self) -> str:
        return self.condition or DEFAULT_CONDITION


@dataclass(frozen=True, slots=True)
class Trigger:
    """Branch filter. No include patterns means every branch."""

    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()

    def matches(self, branch: str) -> bool:
        name = branch.removeprefix("refs/heads/")
        if any(fnmatchcase(name, p.removeprefix("refs/heads/")) for p in self.exclude):
            return False
        if not self.include:
            return True
        return any(fnmatchcase(name, p.removeprefix("refs/heads/")) for p in self.include)


def _empty_stages() -> tuple[Stage, ...]:
    return ()


@dataclass(frozen=True, slots=True)
class PipelineDefinition:
    stages: tuple[Stage, ...] = field(default_factory=_empty_stages)
    trigger: Trigger = field(default_factory=Trigger)
    name: str | None = None

    def stage(self, name: str) -> Stage | None:
        for s in self.stages:
            if s.name == name:
                return s
        return None


def validate(stages: Sequence[Stage]) -> Result[tuple[Stage, ...], PipelineError]:
    """Check names and dependency edges, returning stages in execution order.

    The order is topological and stable: among stages whose dependencies are
    satisfied, declaration order wins.
    """
    if not stages:
        return Err(PipelineError(kind="invalid_pipeline", message="pipeline has no stages"))

    names: set[str] = set()
    for s in stages:
        if s.name in names:
            return Err(
                PipelineError(kind="invalid_pipeline", message=f"duplicate stage name: {s.name}")
            )
        names.add(s.name)

    for s in stages:
        for dep in s.depends_on:
            if dep not in names:
                return Err(
                    PipelineError(
                        kind="invalid_pipeline",
                        message=f"stage {s.name} depends on unknown stage {dep}",
                    )
                )
            if dep == s.name:
                return Err(
                    PipelineError(
                        kind="invalid_pipeline", message=f"stage {s.name} depends on itself"
                    )
                )

    ordered: list[Stage] = []
    done: set[str] = set()
    remaining = list(stages)
    while remaining:
        ready = next((s for s in remaining if all(d in done for d in s.depends_on)), None)
        if ready is None:
            cycle = ", ".join(s.name for s in remaining)
            return Err(
                PipelineError(
                    kind="invalid_pipeline",
                    message=f"dependency cycle between stages: {cycle}",
                )
            )
        ordered.append(ready)
        done.add(ready.name)
        remaining.remove(ready)

    return Ok(tuple(ordered))

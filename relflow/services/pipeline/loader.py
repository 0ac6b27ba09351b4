"""Pipeline definition loading (Azure Pipelines YAML subset).

Only the parts that affect sequencing are read: `trigger`, `stages`,
`stage`, `displayName`, `dependsOn`, `condition` and the `environment` of
deployment jobs. Steps are the CI agent's business and are ignored.
"""

from __future__ import annotations

from pathlib import Path
from typing import cast

import yaml

from relflow.core.config import ENVIRONMENTS, EnvironmentName
from relflow.core.result import Err, Ok, Result
from relflow.core.structured import StrDict, as_obj_list, as_str_dict, get_str, get_str_list
from relflow.services.pipeline.errors import PipelineError
from relflow.services.pipeline.expressions import parse_condition
from relflow.services.pipeline.model import PipelineDefinition, Stage, Trigger, validate


def _invalid(message: str, hint: str | None = None) -> Err[PipelineError]:
    return Err(PipelineError(kind="invalid_pipeline", message=message, hint=hint))


def _parse_trigger(raw: object) -> Result[Trigger, PipelineError]:
    if raw is None:
        return Ok(Trigger())
    if isinstance(raw, str):
        if raw.strip().lower() == "none":
            return Ok(Trigger(exclude=("*",)))
        return Ok(Trigger(include=(raw.strip(),)))
    items = as_obj_list(raw)
    if items is not None:
        return Ok(Trigger(include=tuple(i for i in items if isinstance(i, str))))
    table = as_str_dict(raw)
    if table is None:
        return _invalid("trigger must be 'none', a list of branches or a mapping")
    branches = as_str_dict(table.get("branches")) or {}
    return Ok(
        Trigger(
            include=tuple(get_str_list(branches, "include") or ()),
            exclude=tuple(get_str_list(branches, "exclude") or ()),
        )
    )


def _job_environment(job: StrDict, stage: str) -> Result[EnvironmentName | None, PipelineError]:
    if get_str(job, "deployment") is None:
        return Ok(None)
    env_raw = job.get("environment")
    env_table = as_str_dict(env_raw)
    name = get_str(env_table, "name") if env_table is not None else None
    if isinstance(env_raw, str):
        name = env_raw.strip()
    if not name:
        return _invalid(f"deployment job in stage {stage} has no environment")
    # Azure allows `env.resource`; the environment is the part before the dot.
    env = name.split(".", 1)[0].lower()
    if env not in ENVIRONMENTS:
        return _invalid(
            f"stage {stage}: unknown environment {name!r}",
            hint=f"Known environments: {', '.join(ENVIRONMENTS)}",
        )
    return Ok(cast(EnvironmentName, env))


def _parse_stage(raw: object, previous: str | None) -> Result[Stage, PipelineError]:
    table = as_str_dict(raw)
    if table is None:
        return _invalid("each stage must be a mapping")
    name = get_str(table, "stage")
    if name is None:
        return _invalid("stage entry without a 'stage' name")

    if "dependsOn" in table:
        deps_raw = table.get("dependsOn")
        if deps_raw is None:
            depends_on: tuple[str, ...] = ()
        else:
            deps = get_str_list(table, "dependsOn")
            if deps is None:
                return _invalid(f"stage {name}: dependsOn must be a name or a list of names")
            depends_on = tuple(deps)
    else:
        # Implicit dependency on the previous stage.
        depends_on = (previous,) if previous is not None else ()

    condition = get_str(table, "condition")
    if condition is not None:
        parsed = parse_condition(condition)
        if isinstance(parsed, Err):
            e = parsed.error
            return Err(
                PipelineError(
                    kind="invalid_pipeline", message=f"stage {name}: {e.message}", hint=e.hint
                )
            )

    environment: EnvironmentName | None = None
    for job_raw in as_obj_list(table.get("jobs")) or []:
        job = as_str_dict(job_raw)
        if job is None:
            continue
        env = _job_environment(job, name)
        if isinstance(env, Err):
            return env
        if env.value is None:
            continue
        if environment is not None and env.value != environment:
            return _invalid(f"stage {name} deploys to more than one environment")
        environment = env.value

    return Ok(
        Stage(
            name=name,
            depends_on=depends_on,
            condition=condition,
            environment=environment,
            display_name=get_str(table, "displayName"),
        )
    )


def parse_pipeline(data: object) -> Result[PipelineDefinition, PipelineError]:
    root = as_str_dict(data)
    if root is None:
        return _invalid("pipeline root must be a mapping")

    trigger = _parse_trigger(root.get("trigger"))
    if isinstance(trigger, Err):
        return trigger

    stages_raw = as_obj_list(root.get("stages"))
    if stages_raw is None:
        return _invalid("pipeline has no 'stages' list")

    stages: list[Stage] = []
    previous: str | None = None
    for raw in stages_raw:
        stage = _parse_stage(raw, previous)
        if isinstance(stage, Err):
            return stage
        stages.append(stage.value)
        previous = stage.value.name

    checked = validate(stages)
    if isinstance(checked, Err):
        return checked

    return Ok(
        PipelineDefinition(
            stages=tuple(stages), trigger=trigger.value, name=get_str(root, "name")
        )
    )


def load_pipeline(path: Path) -> Result[PipelineDefinition, PipelineError]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        return _invalid(f"cannot read pipeline file: {e}", hint=str(path))

    loaded = loads_pipeline(text)
    if isinstance(loaded, Err):
        err = loaded.error
        return Err(PipelineError(kind=err.kind, message=err.message, hint=err.hint or str(path)))
    return loaded


def dump_pipeline(definition: PipelineDefinition) -> str:
    """Serialize a definition back to pipeline YAML (sequencing fields only)."""
    doc: dict[str, object] = {}
    if definition.name:
        doc["name"] = definition.name
    trig = definition.trigger
    if trig.include or trig.exclude:
        branches: dict[str, object] = {}
        if trig.include:
            branches["include"] = list(trig.include)
        if trig.exclude:
            branches["exclude"] = list(trig.exclude)
        doc["trigger"] = {"branches": branches}

    stages: list[dict[str, object]] = []
    for s in definition.stages:
        item: dict[str, object] = {"stage": s.name}
        if s.display_name:
            item["displayName"] = s.display_name
        item["dependsOn"] = list(s.depends_on)
        if s.condition:
            item["condition"] = s.condition
        if s.environment is not None:
            item["jobs"] = [{"deployment": f"Deploy{s.name}", "environment": s.environment}]
        stages.append(item)
    doc["stages"] = stages

    return yaml.safe_dump(doc, sort_keys=False, default_flow_style=False)


def loads_pipeline(text: str) -> Result[PipelineDefinition, PipelineError]:
    try:
        data: object = yaml.safe_load(text)
    except yaml.YAMLError as e:
        return _invalid(f"invalid pipeline YAML: {e}")
    return parse_pipeline(data)

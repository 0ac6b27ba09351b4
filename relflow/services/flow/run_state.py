from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import cast

from relflow.core.result import Err, Ok, Result
from relflow.core.structured import StrDict, as_str_dict, get_int, get_str, get_table
from relflow.platform.files import atomic_write_text
from relflow.services.approvals import ApprovalRequest, request_from_dict, request_to_dict
from relflow.services.flow.errors import FlowError
from relflow.services.pipeline.sequencer import (
    RunStatus,
    StageRecord,
    StageResult,
    overall_status,
)
from relflow.services.promotion.model import Coordinates, parse_coordinates

RUN_SCHEMA = 1

_STAGE_RESULTS = ("pending", "waiting", "succeeded", "failed", "skipped")


@dataclass(frozen=True, slots=True)
class ArtifactRef:
    """The single build output every deployment stage promotes."""

    coordinates: Coordinates
    repository: str
    sha256: str


def _no_records() -> dict[str, StageRecord]:
    return {}


def _no_approvals() -> dict[str, ApprovalRequest]:
    return {}


def _no_deployments() -> dict[str, str]:
    return {}


@dataclass(frozen=True, slots=True)
class RunState:
    run_id: str
    created_at: str
    requested_by: str
    branch: str
    version: str
    pipeline: str
    variables: dict[str, str]
    records: dict[str, StageRecord] = field(default_factory=_no_records)
    artifact: ArtifactRef | None = None
    approvals: dict[str, ApprovalRequest] = field(default_factory=_no_approvals)
    deployments: dict[str, str] = field(default_factory=_no_deployments)

    @property
    def status(self) -> RunStatus:
        return overall_status(self.records)

    @property
    def is_finished(self) -> bool:
        return self.status in ("succeeded", "failed")


def run_path(runs_dir: Path, run_id: str) -> Path:
    return runs_dir / f"{run_id}.json"


def run_to_dict(run: RunState) -> dict[str, object]:
    artifact: dict[str, object] | None = None
    if run.artifact is not None:
        artifact = {
            "coordinates": str(run.artifact.coordinates),
            "repository": run.artifact.repository,
            "sha256": run.artifact.sha256,
        }
    return {
        "schema": RUN_SCHEMA,
        "run_id": run.run_id,
        "created_at": run.created_at,
        "requested_by": run.requested_by,
        "branch": run.branch,
        "version": run.version,
        "status": run.status,
        "pipeline": run.pipeline,
        "variables": dict(run.variables),
        "stages": {
            name: {"result": rec.result, "detail": rec.detail} for name, rec in run.records.items()
        },
        "artifact": artifact,
        "approvals": {stage: request_to_dict(req) for stage, req in run.approvals.items()},
        "deployments": dict(run.deployments),
    }


def _invalid(path: Path, message: str) -> Err[FlowError]:
    return Err(FlowError(kind="state_io", message=message, hint=str(path)))


def _parse_records(raw: StrDict) -> dict[str, StageRecord]:
    records: dict[str, StageRecord] = {}
    for name, item in raw.items():
        d = as_str_dict(item) or {}
        result = get_str(d, "result")
        if result not in _STAGE_RESULTS:
            result = "pending"
        records[name] = StageRecord(cast(StageResult, result), get_str(d, "detail"))
    return records


def run_from_dict(data: StrDict, *, path: Path) -> Result[RunState, FlowError]:
    schema = get_int(data, "schema")
    if schema != RUN_SCHEMA:
        return _invalid(path, f"unsupported run schema: {schema}")

    run_id = get_str(data, "run_id")
    created_at = get_str(data, "created_at")
    requested_by = get_str(data, "requested_by")
    branch = get_str(data, "branch")
    version = get_str(data, "version")
    pipeline = get_str(data, "pipeline")
    if not (run_id and created_at and requested_by and branch and version and pipeline):
        return _invalid(path, "run file is missing required fields")

    variables = {
        k: v for k, v in (get_table(data, "variables") or {}).items() if isinstance(v, str)
    }

    artifact: ArtifactRef | None = None
    art = get_table(data, "artifact")
    if art is not None:
        coords = parse_coordinates(get_str(art, "coordinates") or "")
        repo = get_str(art, "repository")
        sha = get_str(art, "sha256")
        if coords is None or repo is None or sha is None:
            return _invalid(path, "run file has a malformed artifact")
        artifact = ArtifactRef(coords, repo, sha)

    approvals: dict[str, ApprovalRequest] = {}
    for stage, item in (get_table(data, "approvals") or {}).items():
        d = as_str_dict(item)
        req = request_from_dict(d) if d is not None else None
        if req is None:
            return _invalid(path, f"run file has a malformed approval for {stage}")
        approvals[stage] = req

    deployments = {
        k: v for k, v in (get_table(data, "deployments") or {}).items() if isinstance(v, str)
    }

    return Ok(
        RunState(
            run_id=run_id,
            created_at=created_at,
            requested_by=requested_by,
            branch=branch,
            version=version,
            pipeline=pipeline,
            variables=variables,
            records=_parse_records(get_table(data, "stages") or {}),
            artifact=artifact,
            approvals=approvals,
            deployments=deployments,
        )
    )


def save_run(runs_dir: Path, run: RunState) -> Result[None, FlowError]:
    path = run_path(runs_dir, run.run_id)
    try:
        atomic_write_text(path, json.dumps(run_to_dict(run), indent=2) + "\n")
    except OSError as e:
        return _invalid(path, f"failed to write run state: {e}")
    return Ok(None)


def load_run(runs_dir: Path, run_id: str) -> Result[RunState, FlowError]:
    path = run_path(runs_dir, run_id)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Err(
            FlowError(
                kind="unknown_run",
                message=f"unknown run: {run_id}",
                hint="List runs with `relflow pipeline status`.",
            )
        )
    except OSError as e:
        return _invalid(path, f"failed to read run state: {e}")

    try:
        obj: object = json.loads(text)
    except json.JSONDecodeError as e:
        return _invalid(path, f"invalid JSON in run file: {e}")

    data = as_str_dict(obj)
    if data is None:
        return _invalid(path, "run file root must be a JSON object")
    return run_from_dict(data, path=path)


def list_runs(runs_dir: Path) -> list[RunState]:
    """All readable runs, oldest first. Unreadable files are skipped."""
    runs: list[RunState] = []
    if not runs_dir.is_dir():
        return runs
    for path in sorted(runs_dir.glob("*.json")):
        loaded = load_run(runs_dir, path.stem)
        if isinstance(loaded, Ok):
            runs.append(loaded.value)
    runs.sort(key=lambda r: r.created_at)
    return runs

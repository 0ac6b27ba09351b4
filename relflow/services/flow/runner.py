"""Stage runner for release runs: build once, then promote per environment."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import replace
from datetime import datetime

from relflow.core.config import Config
from relflow.core.result import Err, Ok, Result
from relflow.services.approvals import open_request, policy_for, refresh
from relflow.services.flow.run_state import ArtifactRef, RunState
from relflow.services.pipeline.errors import PipelineError
from relflow.services.pipeline.model import Stage
from relflow.services.pipeline.sequencer import StageOutcome
from relflow.services.promotion.model import Coordinates
from relflow.services.promotion.repository import FileSystemRepositoryManager


class ReleaseStageRunner:
    """Implements `StageRunner` for a `RunState`.

    The runner owns the evolving run: `self.run` is replaced after every
    stage so the caller can persist it.
    """

    def __init__(
        self,
        *,
        run: RunState,
        config: Config,
        manager: FileSystemRepositoryManager,
        clock: Callable[[], datetime],
        artifact_content: bytes | None = None,
    ) -> None:
        self.run = run
        self._config = config
        self._manager = manager
        self._clock = clock
        self._content = artifact_content

    def run_stage(
        self, stage: Stage, variables: Mapping[str, str]
    ) -> Result[StageOutcome, PipelineError]:
        if stage.environment is None:
            return Ok(self._build())
        return Ok(self._deploy(stage))

    def _build(self) -> StageOutcome:
        if self.run.artifact is not None:
            a = self.run.artifact
            return StageOutcome("succeeded", f"reusing {a.coordinates} from {a.repository}")

        if self._content is None:
            return StageOutcome("failed", "no build output supplied")

        project = self._config.project
        coords = Coordinates(
            group_id=project.group_id,
            artifact_id=project.artifact_id,
            version=self.run.version,
            packaging=project.packaging,
        )
        try:
            tier = self._config.first_tier(snapshot=coords.is_snapshot)
        except ValueError as e:
            return StageOutcome("failed", str(e))

        deployed = self._manager.deploy(tier.name, coords, self._content)
        if isinstance(deployed, Err):
            return StageOutcome("failed", deployed.error.message)

        record = deployed.value
        self.run = replace(self.run, artifact=ArtifactRef(coords, tier.name, record.sha256))
        return StageOutcome("succeeded", f"deployed {coords} to {tier.name} ({record.sha256[:12]})")

    def _deploy(self, stage: Stage) -> StageOutcome:
        assert stage.environment is not None
        env = self._config.environment(stage.environment)
        artifact = self.run.artifact
        if artifact is None:
            return StageOutcome("failed", "nothing to deploy: no build output recorded")

        target = self._config.repositories[env.repository]
        if artifact.coordinates.is_snapshot and target.policy == "release":
            return StageOutcome(
                "failed",
                f"{artifact.coordinates.version} is a snapshot; {env.name} deploys releases only",
            )

        now = self._clock()
        req = self.run.approvals.get(stage.name)
        if req is None:
            req = open_request(
                run_id=self.run.run_id,
                stage=stage.name,
                environment=env.name,
                requested_by=self.run.requested_by,
                policy=policy_for(env),
                now=now,
            )
        req = refresh(req, now=now)
        self.run = replace(self.run, approvals={**self.run.approvals, stage.name: req})

        match req.status:
            case "pending":
                return StageOutcome(
                    "waiting",
                    f"waiting for {req.remaining} approval(s) for {env.name}",
                )
            case "rejected":
                return StageOutcome("failed", f"deployment to {env.name} was rejected")
            case "expired":
                return StageOutcome("failed", f"approval for {env.name} expired")
            case "approved":
                pass

        if target.name != artifact.repository and not artifact.coordinates.is_snapshot:
            promoted = self._manager.promote(
                artifact.coordinates,
                source=artifact.repository,
                target=target.name,
                promoted_by=self.run.requested_by,
                now=now,
            )
            if isinstance(promoted, Err):
                return StageOutcome("failed", promoted.error.message)
        elif target.name != artifact.repository:
            return StageOutcome(
                "failed",
                f"snapshot {artifact.coordinates} lives in {artifact.repository}, "
                f"not in {target.name}",
            )

        self.run = replace(self.run, deployments={**self.run.deployments, env.name: target.name})
        return StageOutcome(
            "succeeded",
            f"deployed {artifact.coordinates} to {env.name} from {target.name}",
        )

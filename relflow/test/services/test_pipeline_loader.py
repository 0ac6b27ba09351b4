from __future__ import annotations

from pathlib import Path

import pytest

from relflow.core.result import Err, Ok
from relflow.services.pipeline.loader import dump_pipeline, load_pipeline, loads_pipeline
from relflow.services.pipeline.model import PipelineDefinition

PIPELINE = """
name: release
trigger:
  branches:
    include: [develop, release/*, hotfix/*, main]
    exclude: [feature/experimental/*]
stages:
  - stage: Build
  - stage: DeployDev
    displayName: Deploy to development
    condition: and(succeeded(), eq(variables['Build.SourceBranch'], 'refs/heads/develop'))
    jobs:
      - deployment: Deploy
        environment: development
  - stage: DeployUat
    dependsOn: Build
    condition: and(succeeded(), startsWith(variables['Build.SourceBranch'], 'refs/heads/release/'))
    jobs:
      - deployment: Deploy
        environment:
          name: uat.web
  - stage: Smoke
    dependsOn: []
    jobs:
      - job: Test
"""


def _load(text: str) -> PipelineDefinition:
    result = loads_pipeline(text)
    assert isinstance(result, Ok), result
    return result.value


def test_stages_and_environments() -> None:
    definition = _load(PIPELINE)
    assert definition.name == "release"
    build, dev, uat, smoke = definition.stages
    assert build.depends_on == ()
    assert build.kind == "build"
    assert dev.depends_on == ("Build",)
    assert dev.environment == "development"
    assert dev.display_name == "Deploy to development"
    assert uat.depends_on == ("Build",)
    assert uat.environment == "uat"
    assert smoke.depends_on == ()
    assert smoke.kind == "build"


def test_trigger() -> None:
    trigger = _load(PIPELINE).trigger
    assert trigger.matches("develop")
    assert trigger.matches("refs/heads/release/1.4.0")
    assert not trigger.matches("feature/login")
    assert not trigger.matches("feature/experimental/x")


@pytest.mark.parametrize(
    ("trigger", "branch", "expected"),
    [
        ("none", "main", False),
        ("main", "main", True),
        ("[develop, main]", "develop", True),
        ("[develop, main]", "release/1.0.0", False),
    ],
)
def test_trigger_shorthands(trigger: str, branch: str, expected: bool) -> None:
    definition = _load(f"trigger: {trigger}\nstages:\n  - stage: Build\n")
    assert definition.trigger.matches(branch) is expected


def test_no_trigger_matches_everything() -> None:
    assert _load("stages:\n  - stage: Build\n").trigger.matches("anything/goes")


@pytest.mark.parametrize(
    ("text", "fragment"),
    [
        ("stages: []\n", "no stages"),
        ("trigger: none\n", "no 'stages'"),
        ("stages:\n  - stage: A\n  - stage: A\n", "duplicate"),
        ("stages:\n  - stage: A\n    dependsOn: Z\n", "unknown stage Z"),
        ("stages:\n  - stage: A\n    dependsOn: B\n  - stage: B\n", "cycle"),
        ("stages:\n  - stage: A\n    condition: eq(\n", "invalid condition"),
        (
            "stages:\n  - stage: A\n    jobs:\n      - deployment: D\n        environment: qa\n",
            "unknown environment",
        ),
        ("stages:\n  - stage: A\n    jobs:\n      - deployment: D\n", "no environment"),
        ("- just\n- a list\n", "must be a mapping"),
        ("stages: [\n", "invalid pipeline YAML"),
    ],
)
def test_invalid(text: str, fragment: str) -> None:
    result = loads_pipeline(text)
    assert isinstance(result, Err)
    assert result.error.kind == "invalid_pipeline"
    assert fragment in result.error.message


def test_load_from_file(tmp_path: Path) -> None:
    path = tmp_path / "azure-pipelines.yml"
    path.write_text(PIPELINE, encoding="utf-8")
    assert isinstance(load_pipeline(path), Ok)

    missing = load_pipeline(tmp_path / "missing.yml")
    assert isinstance(missing, Err)
    assert "cannot read" in missing.error.message


def test_dump_makes_dependencies_explicit() -> None:
    definition = _load(PIPELINE)
    text = dump_pipeline(definition)
    assert "dependsOn" in text
    again = _load(text)
    assert again.stages == definition.stages
    assert again.trigger == definition.trigger

from __future__ import annotations

from pathlib import Path

import pytest

from relflow.cli.context import CLIContext
from relflow.core.config import Config
from relflow.core.workspace import Workspace
from relflow.output.console import MockConsole

PIPELINE = """\
trigger:
  branches:
    include: [develop, release/*, hotfix/*]
stages:
  - stage: Build
  - stage: DeployDev
    condition: and(succeeded(), eq(variables['Build.SourceBranch'], 'refs/heads/develop'))
    jobs:
      - deployment: Deploy
        environment: development
  - stage: DeployUat
    dependsOn: Build
    condition: and(succeeded(), startsWith(variables['Build.SourceBranch'], 'refs/heads/release/'))
    jobs:
      - deployment: Deploy
        environment: uat
"""

CONFIG = """\
[project]
group_id = "com.acme"
artifact_id = "billing"
version_file = "VERSION"
"""


@pytest.fixture
def project(tmp_path: Path) -> Path:
    (tmp_path / "relflow.toml").write_text(CONFIG, encoding="utf-8")
    (tmp_path / "azure-pipelines.yml").write_text(PIPELINE, encoding="utf-8")
    (tmp_path / "VERSION").write_text("1.4.0-SNAPSHOT\n", encoding="utf-8")
    (tmp_path / "billing.jar").write_bytes(b"billing.jar contents")
    return tmp_path


@pytest.fixture
def console() -> MockConsole:
    return MockConsole()


@pytest.fixture
def cli_ctx(project: Path, console: MockConsole) -> CLIContext:
    config = Config.from_dict(
        {"project": {"group_id": "com.acme", "artifact_id": "billing", "version_file": "VERSION"}}
    )
    return CLIContext(workspace=Workspace(root=project), config=config, console=console)

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest
import typer

from relflow.cli.context import CLIContext
from relflow.core.errors import ErrorCode
from relflow.core.result import Ok, Result
from relflow.git.repository import GitError
from relflow.output.console import MockConsole


@dataclass
class FakeRepository:
    path: Path
    clean: bool = True
    existing: set[str] = field(default_factory=set[str])

    def is_clean(self) -> bool:
        return self.clean

    def tags(self) -> Result[frozenset[str], GitError]:
        return Ok(frozenset(self.existing))

    def create_tag(self, name: str, *, message: str) -> Result[None, GitError]:
        self.existing.add(name)
        return Ok(None)

    def commit_file(self, path: Path, *, message: str) -> Result[None, GitError]:
        return Ok(None)


@pytest.fixture
def repos(cli_ctx: CLIContext, monkeypatch: pytest.MonkeyPatch) -> list[FakeRepository]:
    import relflow.cli.commands.version_cmd as version_cmd

    created: list[FakeRepository] = []

    def factory(path: Path) -> FakeRepository:
        repo = FakeRepository(path)
        created.append(repo)
        return repo

    monkeypatch.setattr(version_cmd, "build_context", lambda: cli_ctx)
    monkeypatch.setattr(version_cmd, "Repository", factory)
    return created


def test_show(repos: list[FakeRepository], console: MockConsole) -> None:
    import relflow.cli.commands.version_cmd as version_cmd

    version_cmd.show()
    assert console.messages == ["1.4.0-SNAPSHOT"]


def test_plan_is_a_table(repos: list[FakeRepository], console: MockConsole) -> None:
    import relflow.cli.commands.version_cmd as version_cmd

    version_cmd.plan(bump="minor", release_version=None, development_version=None)
    assert console.find("1.4.0-SNAPSHOT | 1.4.0 | v1.4.0 | 1.5.0-SNAPSHOT")


def test_prepare_defaults_to_dry_run(
    repos: list[FakeRepository], console: MockConsole, project: Path
) -> None:
    import relflow.cli.commands.version_cmd as version_cmd

    version_cmd.prepare(
        bump="patch", release_version=None, development_version=None, write=False
    )

    assert console.find("dry-run")
    assert (project / "VERSION").read_text(encoding="utf-8").strip() == "1.4.0-SNAPSHOT"
    assert repos[0].existing == set()


def test_prepare_write_tags_and_advances(
    repos: list[FakeRepository], console: MockConsole, project: Path
) -> None:
    import relflow.cli.commands.version_cmd as version_cmd

    version_cmd.prepare(
        bump="patch", release_version=None, development_version=None, write=True
    )

    assert repos[0].existing == {"v1.4.0"}
    assert (project / "VERSION").read_text(encoding="utf-8").strip() == "1.4.1-SNAPSHOT"
    assert console.find("tagged v1.4.0; version is now 1.4.1-SNAPSHOT")


def test_invalid_bump(repos: list[FakeRepository]) -> None:
    import relflow.cli.commands.version_cmd as version_cmd

    with pytest.raises(typer.Exit) as exc:
        version_cmd.plan(bump="huge", release_version=None, development_version=None)
    assert exc.value.exit_code == int(ErrorCode.USER_ERROR)


def test_missing_version_file(repos: list[FakeRepository], project: Path) -> None:
    import relflow.cli.commands.version_cmd as version_cmd

    (project / "VERSION").unlink()
    with pytest.raises(typer.Exit) as exc:
        version_cmd.show()
    assert exc.value.exit_code == int(ErrorCode.IO_ERROR)

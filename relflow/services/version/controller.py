"""Release-point operations on a working copy.

`prepare` is pure: it reads the version file and existing tags and returns
a `ReleasePlan`. `perform` applies it the way the Maven release plugin
does: commit the release version, tag it, then commit the next
development version.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from relflow.core.result import Err, Ok, Result
from relflow.git.repository import GitError
from relflow.services.version.errors import VersionError
from relflow.services.version.planner import ReleasePlan, plan_release
from relflow.services.version.semver import Bump, Version
from relflow.services.version.version_file import read_version, write_version


class TagRepository(Protocol):
    def is_clean(self) -> bool: ...

    def tags(self) -> Result[frozenset[str], GitError]: ...

    def create_tag(self, name: str, *, message: str) -> Result[None, GitError]: ...

    def commit_file(self, path: Path, *, message: str) -> Result[None, GitError]: ...


@dataclass(frozen=True, slots=True)
class PerformResult:
    plan: ReleasePlan
    tag: str
    version_after: Version


def _git_err(e: GitError) -> VersionError:
    return VersionError(kind="git_failed", message=f"git {e.command}: {e.message}")


class VersionController:
    def __init__(
        self,
        *,
        repo: TagRepository,
        version_file: Path,
        tag_format: str = "v{version}",
        artifact_id: str = "",
    ) -> None:
        self._repo = repo
        self._version_file = version_file
        self._tag_format = tag_format
        self._artifact_id = artifact_id

    def current(self) -> Result[Version, VersionError]:
        return read_version(self._version_file)

    def prepare(
        self,
        *,
        bump: Bump = "patch",
        release_version: str | None = None,
        development_version: str | None = None,
    ) -> Result[ReleasePlan, VersionError]:
        current = self.current()
        if isinstance(current, Err):
            return current

        tags = self._repo.tags()
        if isinstance(tags, Err):
            return Err(_git_err(tags.error))

        return plan_release(
            current=current.value,
            existing_tags=tags.value,
            bump=bump,
            tag_format=self._tag_format,
            artifact_id=self._artifact_id,
            release_version=release_version,
            development_version=development_version,
        )

    def perform(self, plan: ReleasePlan) -> Result[PerformResult, VersionError]:
        if not self._repo.is_clean():
            return Err(
                VersionError(
                    kind="dirty_tree",
                    message="working tree has uncommitted changes",
                    hint="Commit or stash before releasing.",
                )
            )

        # Re-check immutability: a tag may have appeared since prepare.
        tags = self._repo.tags()
        if isinstance(tags, Err):
            return Err(_git_err(tags.error))
        if plan.tag in tags.value:
            return Err(VersionError(kind="tag_exists", message=f"tag already exists: {plan.tag}"))

        written = write_version(self._version_file, plan.release)
        if isinstance(written, Err):
            return written
        committed = self._repo.commit_file(
            self._version_file, message=f"prepare release {plan.tag}"
        )
        if isinstance(committed, Err):
            return Err(_git_err(committed.error))

        tagged = self._repo.create_tag(plan.tag, message=f"release {plan.release}")
        if isinstance(tagged, Err):
            return Err(_git_err(tagged.error))

        written = write_version(self._version_file, plan.next_development)
        if isinstance(written, Err):
            return written
        committed = self._repo.commit_file(
            self._version_file,
            message=f"prepare for next development iteration ({plan.next_development})",
        )
        if isinstance(committed, Err):
            return Err(_git_err(committed.error))

        return Ok(PerformResult(plan=plan, tag=plan.tag, version_after=plan.next_development))

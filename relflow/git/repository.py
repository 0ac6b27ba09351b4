"""Git repository abstraction.

Only the operations a release needs: read the current branch,
check the working tree is clean, list tags and create annotated tags.
All operations return Result types.

Usage:
    repo = Repository(Path("/path/to/repo"))
    match repo.create_tag("v1.2.0", message="release 1.2.0"):
        case Ok(_):
            print("tagged")
        case Err(e):
            print(f"tag failed: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from relflow.core.result import Err, Ok, Result
from relflow.platform.process import ProcessError
from relflow.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0

__all__ = ["GitError", "Repository"]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git command that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


class Repository:
    """Git repository abstraction.

    Attributes:
        path: Path to the repository root
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def exists(self) -> bool:
        """Check if this is a valid git repository (.git dir or worktree file)."""
        return (self.path / ".git").exists()

    def is_clean(self) -> bool:
        """Check if working tree is clean.

        Returns False if status cannot be determined.
        """
        match self._run(["status", "--porcelain"]):
            case Ok(stdout):
                return stdout.strip() == ""
            case Err(_):
                return False

    def current_branch(self) -> str | None:
        """Get current branch name.

        Returns None if detached HEAD or error.
        """
        match self._run(["rev-parse", "--abbrev-ref", "HEAD"]):
            case Ok(stdout):
                branch = stdout.strip()
                return None if branch == "HEAD" else branch
            case Err(_):
                return None

    def tags(self) -> Result[frozenset[str], GitError]:
        """List all tag names."""
        result = self._simple(["tag", "--list"], "tag --list")
        if isinstance(result, Err):
            return result
        return Ok(frozenset(t.strip() for t in result.value.splitlines() if t.strip()))

    def create_tag(self, name: str, *, message: str) -> Result[None, GitError]:
        """Create an annotated tag on HEAD.

        Git refuses to overwrite an existing tag without --force, which is
        never passed: release tags are immutable.
        """
        result = self._simple(["tag", "-a", name, "-m", message], f"tag {name}")
        if isinstance(result, Err):
            return result
        return Ok(None)

    def commit_file(self, path: Path, *, message: str) -> Result[None, GitError]:
        """Stage a single file and commit only that file."""
        added = self._simple(["add", "--", str(path)], "add")
        if isinstance(added, Err):
            return added
        result = self._simple(["commit", "-m", message, "--", str(path)], "commit")
        if isinstance(result, Err):
            return result
        return Ok(None)

    def _simple(self, args: list[str], label: str) -> Result[str, GitError]:
        match self._run(args):
            case Err(e):
                return Err(
                    GitError(
                        command=label,
                        message=e.detail,
                        returncode=e.returncode,
                    )
                )
            case Ok(stdout):
                return Ok(stdout.strip())

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        return run_process(
            ["git", "-C", str(self.path), *args], cwd=self.path, timeout=_GIT_TIMEOUT_SECONDS
        )

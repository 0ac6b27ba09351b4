"""Project root detection and paths.

A relflow project is identified by a `relflow.toml` file at its root.
Local state (run records, the filesystem repository manager) lives in the
`.relflow/` directory next to it and should be gitignored.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .config import CONFIG_FILENAME
from .result import Err, Ok, Result

__all__ = [
    "Workspace",
    "WorkspaceError",
    "detect_workspace",
    "find_workspace_upward",
    "is_workspace_root",
]

ENV_VAR = "RELFLOW_ROOT"


@dataclass(frozen=True)
class WorkspaceError:
    """Error when the project root cannot be detected."""

    message: str
    searched_from: Path | None = None


@dataclass(frozen=True, slots=True)
class Workspace:
    """A detected relflow project."""

    root: Path

    @property
    def config_path(self) -> Path:
        return self.root / CONFIG_FILENAME

    @property
    def state_dir(self) -> Path:
        """Path to the local state directory (.relflow/)."""
        return self.root / ".relflow"

    @property
    def runs_dir(self) -> Path:
        return self.state_dir / "runs"

    @property
    def repository_dir(self) -> Path:
        """Root of the filesystem repository manager."""
        return self.state_dir / "repository"

    def __str__(self) -> str:
        return str(self.root)


def is_workspace_root(path: Path) -> bool:
    return (path / CONFIG_FILENAME).is_file()


def find_workspace_upward(start: Path) -> Path | None:
    """Search upward from start directory for a project root."""
    for parent in (start, *start.parents):
        if is_workspace_root(parent):
            return parent
    return None


def detect_workspace(
    *,
    start_dir: Path | None = None,
    env_var: str = ENV_VAR,
) -> Result[Workspace, WorkspaceError]:
    """Detect the project root directory.

    Detection order:
    1. RELFLOW_ROOT environment variable (if set, it must be valid)
    2. Search upward from start_dir (or cwd) for relflow.toml
    """
    env_value = os.environ.get(env_var)
    if env_value:
        env_path = Path(env_value).expanduser().resolve()
        if env_path.is_dir() and is_workspace_root(env_path):
            return Ok(Workspace(root=env_path))
        return Err(
            WorkspaceError(
                message=f"${env_var} is set to '{env_value}' but it has no {CONFIG_FILENAME}",
                searched_from=env_path if env_path.is_dir() else None,
            )
        )

    search_start = (start_dir or Path.cwd()).resolve()
    found = find_workspace_upward(search_start)
    if found:
        return Ok(Workspace(root=found))

    return Err(
        WorkspaceError(
            message=f"Could not find project root ({CONFIG_FILENAME} not found)",
            searched_from=search_start,
        )
    )

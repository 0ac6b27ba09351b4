"""Non-interactive subprocess execution.

Commands run with captured output, a timeout and an environment that never
waits for a terminal (no credential prompts, no pager) and speaks the C
locale, so stderr can be matched and shown as-is.

Usage:
    match run(["git", "tag", "--list"], cwd=repo_root, timeout=30):
        case Ok(stdout):
            tags = stdout.splitlines()
        case Err(error):
            console.error(error.detail)
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from relflow.core.result import Err, Ok, Result

__all__ = ["NONINTERACTIVE_ENV", "ProcessError", "child_env", "run"]

NONINTERACTIVE_ENV: dict[str, str] = {
    "GIT_TERMINAL_PROMPT": "0",
    "GIT_PAGER": "cat",
    "LC_ALL": "C",
}


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A command that could not run or exited non-zero.

    `returncode` is -1 when the process never ran or was killed on timeout.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def detail(self) -> str:
        """The most useful single message: stderr, else stdout, else a summary."""
        return self.stderr.strip() or self.stdout.strip() or str(self)

    def __str__(self) -> str:
        shown = " ".join(self.command[:3])
        if len(self.command) > 3:
            shown += " ..."
        return f"{shown} failed (exit {self.returncode})"


def child_env(extra: Mapping[str, str] | None = None) -> dict[str, str]:
    env = dict(os.environ)
    env.update(NONINTERACTIVE_ENV)
    if extra:
        env.update(extra)
    return env


def run(
    cmd: list[str],
    cwd: Path,
    *,
    extra_env: Mapping[str, str] | None = None,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Run `cmd` in `cwd` and return its stdout."""
    command = tuple(cmd)
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=child_env(extra_env),
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        partial = e.stdout if isinstance(e.stdout, str) else ""
        message = f"timed out after {timeout}s"
        return Err(ProcessError(command, -1, partial, message))
    except OSError as e:
        return Err(ProcessError(command, -1, "", str(e)))

    if proc.returncode != 0:
        return Err(ProcessError(command, proc.returncode, proc.stdout, proc.stderr))
    return Ok(proc.stdout)

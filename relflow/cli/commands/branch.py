from __future__ import annotations

from pathlib import Path

import typer

from relflow.cli.commands._helpers import exit_on_error
from relflow.cli.context import make_console
from relflow.core.errors import ErrorCode
from relflow.git.repository import Repository
from relflow.output.console import Style
from relflow.services.branches import (
    check_branch_version,
    classify_branch,
    default_bump,
    target_environment,
)
from relflow.services.version.semver import parse_version


def branch(
    name: str | None = typer.Argument(
        None, help="Branch name or refs/heads/ ref (default: the checked-out branch)"
    ),
    version: str | None = typer.Option(
        None, "--version", help="Check that this version may be built on the branch"
    ),
) -> None:
    """Show how a branch is treated: kind, target environment and version rule."""
    console = make_console()
    if name is None:
        name = Repository(Path.cwd()).current_branch()
        if name is None:
            console.error("cannot determine the current branch")
            console.print("hint: pass a branch name (detached HEAD or no repository)", Style.DIM)
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
    info = classify_branch(name)
    env = target_environment(info.kind)

    console.print(f"branch:       {info.name}")
    console.print(f"kind:         {info.kind}")
    console.print(f"environment:  {env or '-'}")
    console.print(f"default bump: {default_bump(info.kind)}")
    if info.version_hint is not None:
        console.print(f"version hint: {info.version_hint}")

    if version is None:
        return

    parsed = parse_version(version)
    if parsed is None:
        console.error(f"invalid version: {version}")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    exit_on_error(check_branch_version(info, parsed), console, ErrorCode.POLICY_ERROR)
    console.success(f"{parsed} may be built on {info.name}")

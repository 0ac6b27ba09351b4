from __future__ import annotations

import typer

from relflow.cli.context import CLIContext, build_context
from relflow.core.config import RepositoryConfig
from relflow.core.errors import ErrorCode
from relflow.services.promotion.privileges import OPERATIONS, required_privileges, role_privileges


def _repo(ctx: CLIContext, name: str) -> RepositoryConfig:
    repo = ctx.config.repository(name)
    if repo is None:
        ctx.console.error(f"unknown repository: {name}")
        ctx.console.detail(f"configured: {', '.join(ctx.config.repositories)}")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    return repo


def privileges(
    operation: str | None = typer.Option(None, "--operation", help="read | deploy | promote"),
    repository: str | None = typer.Option(None, "--repository", "-r", help="Target repository"),
    source: str | None = typer.Option(None, "--source", help="Source repository (promote)"),
    fmt: str = typer.Option("maven2", "--format", help="Repository format"),
) -> None:
    """Print least-privilege repository privileges.

    Without --operation, prints the reader, CI deployer and release manager
    roles derived from the configured tiers.
    """
    ctx = build_context()

    if operation is None:
        for role, privs in role_privileges(ctx.config, fmt=fmt).items():
            ctx.console.header(role)
            for p in privs:
                ctx.console.print(f"  {p}")
        return

    match operation:
        case "read" | "deploy" | "promote":
            op = operation
        case _:
            ctx.console.error(f"invalid --operation '{operation}' ({', '.join(OPERATIONS)})")
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    if repository is None:
        ctx.console.error("--repository is required with --operation")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    src = _repo(ctx, source) if source else None
    required = required_privileges(op, _repo(ctx, repository), source=src, fmt=fmt)
    if not required:
        ctx.console.warning(f"{repository} is read-only; {op} is not possible")
        raise typer.Exit(code=int(ErrorCode.POLICY_ERROR))
    for p in required:
        ctx.console.print(p)

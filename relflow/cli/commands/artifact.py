"""`relflow artifact`: deploy into and promote between repository tiers."""

from __future__ import annotations

from pathlib import Path

import typer

from relflow.cli.commands._helpers import exit_on_error
from relflow.cli.context import CLIContext, build_context, current_user
from relflow.core.errors import ErrorCode
from relflow.services.promotion import Coordinates, FileSystemRepositoryManager, parse_coordinates

artifact_app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Artifact Promoter: build once, deploy many.",
)


def _manager(ctx: CLIContext) -> FileSystemRepositoryManager:
    return FileSystemRepositoryManager(ctx.workspace.repository_dir, ctx.config.repositories)


def _coordinates(ctx: CLIContext, text: str) -> Coordinates:
    coords = parse_coordinates(text)
    if coords is None:
        ctx.console.error(f"invalid coordinates: {text}")
        ctx.console.detail("expected group:artifact:version[:packaging[:classifier]]")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    return coords


@artifact_app.command("deploy")
def deploy(
    coordinates: str = typer.Argument(..., help="group:artifact:version[:packaging]"),
    file: Path = typer.Argument(..., help="Artifact file"),
    repository: str = typer.Option(..., "--repository", "-r", help="Target repository"),
) -> None:
    """Upload an artifact into a repository, honouring its write policy."""
    ctx = build_context()
    coords = _coordinates(ctx, coordinates)
    try:
        content = file.read_bytes()
    except OSError as e:
        ctx.console.error(f"cannot read {file}: {e}")
        raise typer.Exit(code=int(ErrorCode.IO_ERROR))

    record = exit_on_error(
        _manager(ctx).deploy(repository, coords, content), ctx.console
    )
    ctx.console.success(f"deployed {coords} to {repository}")
    ctx.console.detail(f"sha256 {record.sha256} ({record.size} bytes)")


@artifact_app.command("promote")
def promote(
    coordinates: str = typer.Argument(..., help="group:artifact:version[:packaging]"),
    source: str = typer.Option(..., "--from", help="Source repository"),
    target: str = typer.Option(..., "--to", help="Target repository"),
    by: str | None = typer.Option(None, "--by", help="Who promotes"),
) -> None:
    """Copy the exact bytes of a release artifact into another tier."""
    ctx = build_context()
    coords = _coordinates(ctx, coordinates)
    record = exit_on_error(
        _manager(ctx).promote(
            coords, source=source, target=target, promoted_by=by or current_user()
        ),
        ctx.console,
        ErrorCode.USER_ERROR,
    )
    if record.already_present:
        ctx.console.info(f"{coords} already in {target} with the same digest")
    else:
        ctx.console.success(f"promoted {coords}: {source} -> {target}")
    ctx.console.detail(f"sha256 {record.sha256}")


@artifact_app.command("list")
def list_artifacts(
    repository: str | None = typer.Option(
        None, "--repository", "-r", help="Only this repository"
    ),
) -> None:
    """List artifacts stored in each repository."""
    ctx = build_context()
    manager = _manager(ctx)
    names = [repository] if repository else list(ctx.config.repositories)
    rows: list[list[str]] = []
    for name in names:
        exit_on_error(manager.repository(name), ctx.console)
        rows.extend(
            [name, str(r.coordinates), r.sha256[:12], str(r.size)] for r in manager.list(name)
        )
    if not rows:
        ctx.console.info("no artifacts")
        return
    ctx.console.table(["repository", "coordinates", "sha256", "bytes"], rows)


@artifact_app.command("history")
def history() -> None:
    """Show the promotion ledger."""
    ctx = build_context()
    records = _manager(ctx).history()
    if not records:
        ctx.console.info("no promotions")
        return
    ctx.console.table(
        ["when", "coordinates", "from", "to", "by"],
        [
            [r.promoted_at, str(r.coordinates), r.source, r.target, r.promoted_by]
            for r in records
        ],
    )

"""`relflow version`: inspect and advance the project version."""

from __future__ import annotations

import typer

from relflow.cli.commands._helpers import exit_on_error
from relflow.cli.context import CLIContext, build_context
from relflow.core.errors import ErrorCode
from relflow.git.repository import Repository
from relflow.services.version.controller import VersionController
from relflow.services.version.semver import Bump

version_app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Version Controller: snapshot -> release -> next snapshot.",
)


def _controller(ctx: CLIContext) -> VersionController:
    return VersionController(
        repo=Repository(ctx.workspace.root),
        version_file=ctx.workspace.root / ctx.config.project.version_file,
        tag_format=ctx.config.project.tag_format,
        artifact_id=ctx.config.project.artifact_id,
    )


def _bump(value: str) -> Bump:
    match value:
        case "major" | "minor" | "patch":
            return value
        case _:
            typer.echo(f"error: invalid --bump '{value}' (major, minor or patch)", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))


@version_app.command("show")
def show() -> None:
    """Print the current project version."""
    ctx = build_context()
    controller = _controller(ctx)
    version = exit_on_error(controller.current(), ctx.console)
    ctx.console.print(str(version))


@version_app.command("plan")
def plan(
    bump: str = typer.Option("patch", "--bump", help="major | minor | patch"),
    release_version: str | None = typer.Option(
        None, "--release-version", help="Release version to use instead of the bumped one"
    ),
    development_version: str | None = typer.Option(
        None, "--development-version", help="Next -SNAPSHOT version (default: bumped)"
    ),
) -> None:
    """Show what `version prepare` would do, without touching the repository."""
    ctx = build_context()
    controller = _controller(ctx)
    release_plan = exit_on_error(
        controller.prepare(
            bump=_bump(bump),
            release_version=release_version,
            development_version=development_version,
        ),
        ctx.console,
    )
    ctx.console.header("Release plan")
    ctx.console.table(
        ["current", "release", "tag", "next development"],
        [
            [
                str(release_plan.current),
                str(release_plan.release),
                release_plan.tag,
                str(release_plan.next_development),
            ]
        ],
    )


@version_app.command("prepare")
def prepare(
    bump: str = typer.Option("patch", "--bump", help="major | minor | patch"),
    release_version: str | None = typer.Option(
        None, "--release-version", help="Release version to use instead of the bumped one"
    ),
    development_version: str | None = typer.Option(
        None, "--development-version", help="Next -SNAPSHOT version (default: bumped)"
    ),
    write: bool = typer.Option(
        False,
        "--write",
        help="Commit the release version, tag it and commit the next snapshot.",
    ),
) -> None:
    """Prepare a release point (dry-run unless --write)."""
    ctx = build_context()
    controller = _controller(ctx)
    release_plan = exit_on_error(
        controller.prepare(
            bump=_bump(bump),
            release_version=release_version,
            development_version=development_version,
        ),
        ctx.console,
    )

    ctx.console.print(f"release: {release_plan.release} (tag {release_plan.tag})")
    ctx.console.print(f"next:    {release_plan.next_development}")
    if not write:
        ctx.console.info("dry-run: pass --write to commit and tag")
        return

    result = exit_on_error(controller.perform(release_plan), ctx.console, ErrorCode.ENV_ERROR)
    ctx.console.success(f"tagged {result.tag}; version is now {result.version_after}")

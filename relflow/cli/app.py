from __future__ import annotations

import os
from pathlib import Path

import typer

from relflow import __version__
from relflow.cli.commands.approval import approve, reject
from relflow.cli.commands.artifact import artifact_app
from relflow.cli.commands.branch import branch
from relflow.cli.commands.docs import docs_app
from relflow.cli.commands.pipeline_cmd import pipeline_app
from relflow.cli.commands.privileges import privileges
from relflow.cli.commands.render import render_app
from relflow.cli.commands.version_cmd import version_app
from relflow.cli.context import VERBOSE_ENV
from relflow.core.errors import ErrorCode
from relflow.core.workspace import ENV_VAR, is_workspace_root


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Release orchestration: versions, pipelines, approvals and promotion.",
)


# Commands
app.command()(branch)
app.command()(approve)
app.command()(reject)
app.command()(privileges)

# Sub-apps
app.add_typer(version_app, name="version")
app.add_typer(pipeline_app, name="pipeline")
app.add_typer(artifact_app, name="artifact")
app.add_typer(render_app, name="render")
app.add_typer(docs_app, name="docs")


def _show_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False, "--version", callback=_show_version, is_eager=True, help="Show version and exit."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show detail lines."),
    root: Path | None = typer.Option(
        None,
        "--root",
        help="Project root (overrides auto detection)",
    ),
) -> None:
    if verbose:
        os.environ[VERBOSE_ENV] = "1"

    if root is not None:
        try:
            resolved = root.expanduser().resolve()
        except OSError as e:
            typer.echo(f"error: invalid --root: {e}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        if not resolved.is_dir() or not is_workspace_root(resolved):
            typer.echo(
                f"error: --root '{resolved}' is not a project root (missing relflow.toml)",
                err=True,
            )
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

        os.environ[ENV_VAR] = str(resolved)


def main() -> None:
    app()

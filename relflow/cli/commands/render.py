"""`relflow render`: generate Maven and pipeline configuration."""

from __future__ import annotations

import os
from pathlib import Path

import typer

from relflow.cli.commands._helpers import exit_on_error
from relflow.cli.context import CLIContext, build_context
from relflow.core.errors import ErrorCode
from relflow.platform.files import atomic_write_text
from relflow.services.pipeline import dump_pipeline, load_pipeline
from relflow.services.render import (
    redact_secrets,
    render_distribution_management,
    render_settings_xml,
    resolve_secrets,
)

render_app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Render settings.xml, distributionManagement and pipeline YAML.",
)

OutputOption = typer.Option(None, "--output", "-o", help="Write to file instead of stdout")


def _emit(ctx: CLIContext, text: str, output: Path | None) -> None:
    if output is None:
        typer.echo(text, nl=False)
        return
    try:
        atomic_write_text(output, text)
    except OSError as e:
        ctx.console.error(f"cannot write {output}: {e}")
        raise typer.Exit(code=int(ErrorCode.IO_ERROR))
    ctx.console.success(f"wrote {output}")


@render_app.command("settings")
def settings(
    output: Path | None = OutputOption,
    resolve: bool = typer.Option(
        False, "--resolve", help="Fill ${env.NAME} references from the current environment"
    ),
) -> None:
    """Maven settings.xml with credentials as ${env.NAME} references.

    With --resolve the references are filled from the environment; values
    printed to stdout are masked.
    """
    ctx = build_context()
    template = exit_on_error(render_settings_xml(ctx.config), ctx.console)
    if not resolve:
        _emit(ctx, template, output)
        return

    env = dict(os.environ)
    resolved = exit_on_error(resolve_secrets(template, env), ctx.console)
    if output is None:
        # Clear-text credentials are only ever written to a file.
        resolved = redact_secrets(template, resolved, env)
    _emit(ctx, resolved, output)


@render_app.command("distribution")
def distribution(output: Path | None = OutputOption) -> None:
    """<distributionManagement> for the project pom.xml."""
    ctx = build_context()
    _emit(ctx, render_distribution_management(ctx.config), output)


@render_app.command("pipeline")
def pipeline(output: Path | None = OutputOption) -> None:
    """The pipeline normalized: explicit dependsOn on every stage."""
    ctx = build_context()
    definition = exit_on_error(
        load_pipeline(ctx.workspace.root / ctx.config.pipeline_file),
        ctx.console,
        ErrorCode.PIPELINE_ERROR,
    )
    _emit(ctx, dump_pipeline(definition), output)

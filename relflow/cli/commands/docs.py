"""`relflow docs`: check documentation snippets."""

from __future__ import annotations

from pathlib import Path

import typer

from relflow.cli.context import make_console
from relflow.core.errors import ErrorCode
from relflow.services.doccheck import check_markdown

docs_app = typer.Typer(add_completion=False, no_args_is_help=True, help="Documentation checks.")


@docs_app.command("check")
def check(
    files: list[Path] = typer.Argument(..., help="Markdown files"),
) -> None:
    """Every fenced yaml/yml/xml block must parse."""
    console = make_console()
    failures = 0
    checked = 0

    for path in files:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            console.error(f"{path}: {e}")
            raise typer.Exit(code=int(ErrorCode.IO_ERROR))

        for report in check_markdown(text):
            checked += 1
            where = f"{path}:{report.snippet.line} ({report.snippet.lang})"
            if report.ok:
                console.detail(f"ok {where}")
                continue
            failures += 1
            console.error(f"{where}: {report.error}")

    if failures:
        console.error(f"{failures} of {checked} snippets failed to parse")
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))
    console.success(f"{checked} snippets parse")

from __future__ import annotations

import getpass
import os
from dataclasses import dataclass

import typer

from relflow.core.config import Config, load_config
from relflow.core.errors import ErrorCode
from relflow.core.result import Err
from relflow.core.workspace import Workspace, detect_workspace
from relflow.output.console import ConsoleProtocol, RichConsole
from relflow.services.flow.service import FlowContext

VERBOSE_ENV = "RELFLOW_VERBOSE"
USER_ENV = "RELFLOW_USER"


@dataclass(frozen=True, slots=True)
class CLIContext:
    workspace: Workspace
    config: Config
    console: ConsoleProtocol

    def flow(self) -> FlowContext:
        return FlowContext(
            config=self.config,
            runs_dir=self.workspace.runs_dir,
            repository_dir=self.workspace.repository_dir,
        )


def make_console() -> ConsoleProtocol:
    return RichConsole(verbose=os.environ.get(VERBOSE_ENV) == "1")


def current_user() -> str:
    """Identity recorded on runs and decisions (RELFLOW_USER, then the OS user)."""
    user = os.environ.get(USER_ENV, "").strip()
    if user:
        return user
    try:
        return getpass.getuser()
    except OSError:
        return "unknown"


def build_context() -> CLIContext:
    workspace_result = detect_workspace()
    if isinstance(workspace_result, Err):
        typer.echo(f"error: {workspace_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    workspace = workspace_result.value
    config_result = load_config(workspace.config_path)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    return CLIContext(workspace=workspace, config=config_result.value, console=make_console())

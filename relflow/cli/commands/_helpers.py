"""Shared helpers for CLI commands."""

from __future__ import annotations

import typer

from relflow.core.errors import ErrorCode
from relflow.core.result import Err, Result
from relflow.output.console import ConsoleProtocol, Style
from relflow.services.pipeline.model import Stage
from relflow.services.pipeline.sequencer import StageObserver, StageRecord

_KIND_CODES: dict[str, ErrorCode] = {
    # policy decisions
    "version_policy": ErrorCode.POLICY_ERROR,
    "redeploy_rejected": ErrorCode.POLICY_ERROR,
    "read_only": ErrorCode.POLICY_ERROR,
    "snapshot_promotion": ErrorCode.POLICY_ERROR,
    "tag_exists": ErrorCode.POLICY_ERROR,
    "not_snapshot": ErrorCode.POLICY_ERROR,
    "approval": ErrorCode.POLICY_ERROR,
    # bad input
    "invalid_input": ErrorCode.USER_ERROR,
    "invalid_version": ErrorCode.USER_ERROR,
    "unknown_repository": ErrorCode.USER_ERROR,
    "unknown_run": ErrorCode.USER_ERROR,
    "unknown_stage": ErrorCode.USER_ERROR,
    "not_found": ErrorCode.USER_ERROR,
    "secret_in_config": ErrorCode.USER_ERROR,
    "unresolved_secret": ErrorCode.USER_ERROR,
    # storage
    "storage": ErrorCode.IO_ERROR,
    "state_io": ErrorCode.IO_ERROR,
    "checksum_mismatch": ErrorCode.IO_ERROR,
    "version_file": ErrorCode.IO_ERROR,
    # repository state
    "dirty_tree": ErrorCode.ENV_ERROR,
    "git_failed": ErrorCode.ENV_ERROR,
}


def exit_on_error[T, E](
    result: Result[T, E],
    console: ConsoleProtocol,
    error_code: ErrorCode = ErrorCode.USER_ERROR,
) -> T:
    """Return the Ok value, or print the error and exit.

    Expects error objects to have 'message' and optional 'hint' and 'kind'
    attributes. Known error kinds exit with their own code; anything else
    exits with error_code.
    """
    if isinstance(result, Err):
        error = result.error
        message: str = getattr(error, "message", str(error))
        hint: str | None = getattr(error, "hint", None)
        kind: str | None = getattr(error, "kind", None)
        console.error(message)
        if hint:
            console.print(f"hint: {hint}", Style.DIM)
        code = _KIND_CODES.get(kind or "", error_code)
        raise typer.Exit(code=int(code))
    return result.value


_RESULT_STYLE = {
    "succeeded": Style.SUCCESS,
    "failed": Style.ERROR,
    "skipped": Style.DIM,
    "waiting": Style.WARNING,
    "pending": Style.DEFAULT,
}


def print_stage(console: ConsoleProtocol, stage: Stage, record: StageRecord) -> None:
    label = stage.display_name or stage.name
    line = f"{label}: {record.result}"
    if record.detail:
        line += f" ({record.detail})"
    console.print(line, _RESULT_STYLE[record.result])


def stage_printer(console: ConsoleProtocol) -> StageObserver:
    def observe(stage: Stage, record: StageRecord) -> None:
        print_stage(console, stage, record)

    return observe

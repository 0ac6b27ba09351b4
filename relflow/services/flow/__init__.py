"""Release runs: build once, deploy many, gated by branch and approvals."""

from .errors import FlowError
from .run_state import ArtifactRef, RunState, list_runs, load_run, save_run
from .service import FlowContext, decide, resume_run, start_run

__all__ = [
    "ArtifactRef",
    "FlowContext",
    "FlowError",
    "RunState",
    "decide",
    "list_runs",
    "load_run",
    "resume_run",
    "save_run",
    "start_run",
]

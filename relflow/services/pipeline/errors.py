from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True, slots=True)
class PipelineError:
    kind: Literal[
        "invalid_pipeline",
        "invalid_condition",
        "not_triggered",
        "unknown_run",
        "unknown_stage",
        "run_finished",
        "state_io",
    ]
    message: str
    hint: str | None = None

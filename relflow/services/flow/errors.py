from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True, slots=True)
class FlowError:
    kind: Literal[
        "version_policy",
        "not_triggered",
        "invalid_input",
        "unknown_run",
        "unknown_stage",
        "run_finished",
        "approval",
        "pipeline",
        "state_io",
    ]
    message: str
    hint: str | None = None

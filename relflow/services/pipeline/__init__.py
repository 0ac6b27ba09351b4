"""Stage Sequencer: pipeline definitions, conditions and ordered execution."""

from .errors import PipelineError
from .loader import dump_pipeline, load_pipeline, loads_pipeline, parse_pipeline
from .model import PipelineDefinition, Stage, Trigger
from .sequencer import (
    RunProgress,
    Sequencer,
    StageOutcome,
    StageRecord,
    StageRunner,
    initial_records,
    plan_run,
)

__all__ = [
    "PipelineDefinition",
    "PipelineError",
    "RunProgress",
    "Sequencer",
    "Stage",
    "StageOutcome",
    "StageRecord",
    "StageRunner",
    "Trigger",
    "dump_pipeline",
    "initial_records",
    "load_pipeline",
    "loads_pipeline",
    "parse_pipeline",
    "plan_run",
]

"""Engine primitives for running ordered action steps."""

from conformkit.engine.steps import (
    ActionStep,
    DefaultStepRecorder,
    FlowContext,
    NullStepRecorder,
    StepExecutionError,
    StepRecorder,
    StepRunner,
    utc_now_iso8601,
)

__all__ = [
    "ActionStep",
    "DefaultStepRecorder",
    "FlowContext",
    "NullStepRecorder",
    "StepExecutionError",
    "StepRecorder",
    "StepRunner",
    "utc_now_iso8601",
]

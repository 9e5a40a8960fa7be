"""Reusable gate kernel (strict config parsing, registries, step engine).

This package is intentionally independent of `conform.*`. Anything specific to
policies, pipelines or repository metadata must live in the consuming
application.
"""

from conformkit.config_namespace import ConfigNamespace
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
from conformkit.registry import Registry, RegistryEntry, UnknownEntryError

__all__ = [
    "ActionStep",
    "ConfigNamespace",
    "DefaultStepRecorder",
    "FlowContext",
    "NullStepRecorder",
    "Registry",
    "RegistryEntry",
    "StepExecutionError",
    "StepRecorder",
    "StepRunner",
    "UnknownEntryError",
    "utc_now_iso8601",
]

"""`requiredStages`: the pipeline must declare the listed stages and tasks."""

from __future__ import annotations

from dataclasses import dataclass

from conform.framework.metadata import Metadata
from conform.framework.pipeline import PipelineView
from conform.framework.report import ComplianceReport, ReportBuilder
from conform.policies.base import PolicyRef, TasksView
from conformkit.config_namespace import ConfigNamespace


@dataclass(frozen=True)
class RequiredStages:
    stages: tuple[str, ...]
    tasks: tuple[str, ...] = ()

    @classmethod
    def from_spec(cls, spec: ConfigNamespace) -> "RequiredStages":
        return cls(
            stages=tuple(spec.get_list_str("stages")),
            tasks=tuple(spec.get_list_str("tasks", default=(), allow_empty=True)),
        )

    def compliance(
        self,
        metadata: Metadata,
        *,
        pipeline: PipelineView,
        tasks: TasksView,
    ) -> ComplianceReport:
        report = ReportBuilder()
        for stage in self.stages:
            report.check(pipeline.has_stage(stage), f"Pipeline is missing required stage {stage!r}")
        for task in self.tasks:
            report.check(task in tasks, f"Missing required task {task!r}")
        return report.build()


POLICY = PolicyRef(
    id="requiredStages",
    decoder=RequiredStages.from_spec,
    doc="Pipeline must declare the listed stages (and optionally define the listed tasks).",
)

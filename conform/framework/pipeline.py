from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from conform.framework.errors import PipelineReferenceError
from conform.framework.metadata import Metadata
from conform.framework.templating import render_template
from conformkit.config_namespace import ConfigNamespace


def _require_name(value: str, *, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise TypeError(f"{label} must be a non-empty string")
    return value.strip()


@dataclass(frozen=True)
class Task:
    name: str
    template: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", _require_name(self.name, label="Task.name"))
        if not isinstance(self.template, str):
            raise TypeError(f"Task {self.name} template must be a string")

    @classmethod
    def from_namespace(cls, name: str, ns: ConfigNamespace) -> "Task":
        template = ns.get_str("template", allow_empty=True)
        ns.assert_consumed()
        return cls(name=name, template=template or "")


@dataclass(frozen=True)
class Artifact:
    source: str
    destination: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "source", _require_name(self.source, label="Artifact.source"))
        object.__setattr__(
            self, "destination", _require_name(self.destination, label="Artifact.destination")
        )


@dataclass(frozen=True)
class Stage:
    name: str
    tasks: tuple[str, ...] = ()
    artifacts: tuple[Artifact, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", _require_name(self.name, label="Stage.name"))
        object.__setattr__(
            self,
            "tasks",
            tuple(_require_name(t, label=f"Stage {self.name} task") for t in self.tasks),
        )

    @classmethod
    def from_namespace(cls, name: str, ns: ConfigNamespace) -> "Stage":
        tasks = ns.get_list_str("tasks", default=(), allow_empty=True)
        artifacts: list[Artifact] = []
        for idx, raw in enumerate(ns.get_list("artifacts", default=())):
            item = ConfigNamespace.from_value(raw, path=f"{ns.path}.artifacts[{idx}]")
            artifacts.append(
                Artifact(source=item.get_str("source"), destination=item.get_str("destination"))
            )
            item.assert_consumed()
        ns.assert_consumed()
        return cls(name=name, tasks=tuple(tasks), artifacts=tuple(artifacts))


@dataclass(frozen=True)
class BuiltTask:
    name: str
    rendered: str


@dataclass(frozen=True)
class BuiltStage:
    name: str
    tasks: tuple[BuiltTask, ...]
    artifacts: tuple[Artifact, ...] = ()

    def task_names(self) -> tuple[str, ...]:
        return tuple(task.name for task in self.tasks)

    def export_target(self) -> str:
        return f"{self.name}-artifacts"

    def render(self) -> str:
        """Render the stage's build file.

        Declared artifacts become a trailing `FROM scratch` export stage that
        copies each source out of this stage, so
        `docker build --target <stage>-artifacts --output type=local,dest=.`
        places them at their destinations. The task templates are expected to
        name their build stage `AS <stage>`.
        """

        lines = [task.rendered.rstrip("\n") for task in self.tasks]
        if self.artifacts:
            if lines:
                lines.append("")
            lines.append(f"FROM scratch AS {self.export_target()}")
            lines.extend(
                f"COPY --from={self.name} {artifact.source} {artifact.destination}"
                for artifact in self.artifacts
            )
        body = "\n".join(lines)
        return body + "\n" if body else ""


@dataclass(frozen=True)
class BuiltPipeline:
    """Fully resolved pipeline with metadata already bound into every task."""

    stages: tuple[BuiltStage, ...]

    def stage_names(self) -> tuple[str, ...]:
        return tuple(stage.name for stage in self.stages)

    def write(self, directory: str | os.PathLike[str]) -> list[str]:
        """Write one `<stage>.Dockerfile` per stage; returns the written paths."""

        os.makedirs(directory, exist_ok=True)
        written: list[str] = []
        for stage in self.stages:
            path = os.path.join(str(directory), f"{stage.name}.Dockerfile")
            with open(path, "w", encoding="utf-8") as handle:
                handle.write(stage.render())
            written.append(path)
        return written


@dataclass(frozen=True)
class PipelineView:
    """Read-only pipeline context handed to policies."""

    stages: tuple[str, ...]
    definitions: Mapping[str, Stage]

    def has_stage(self, name: str) -> bool:
        return name in self.stages


@dataclass(frozen=True)
class Pipeline:
    stages: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "stages",
            tuple(_require_name(s, label="Pipeline stage") for s in self.stages),
        )

    @classmethod
    def from_namespace(cls, ns: ConfigNamespace) -> "Pipeline":
        stages = ns.get_list_str("stages", default=(), allow_empty=True)
        ns.assert_consumed()
        return cls(stages=tuple(stages))

    def view(self, stages: Mapping[str, Stage]) -> PipelineView:
        return PipelineView(stages=self.stages, definitions=MappingProxyType(dict(stages)))

    def resolve(
        self, stages: Mapping[str, Stage], tasks: Mapping[str, Task]
    ) -> list[tuple[Stage, list[Task]]]:
        """Resolve every reference up front; the first missing one fails the whole pipeline."""

        resolved_stages: list[Stage] = []
        for stage_name in self.stages:
            stage = stages.get(stage_name)
            if stage is None:
                raise PipelineReferenceError("stage", stage_name, referenced_by="pipeline")
            resolved_stages.append(stage)

        resolved: list[tuple[Stage, list[Task]]] = []
        for stage in resolved_stages:
            stage_tasks: list[Task] = []
            for task_name in stage.tasks:
                task = tasks.get(task_name)
                if task is None:
                    raise PipelineReferenceError("task", task_name, referenced_by=f"stage {stage.name}")
                stage_tasks.append(task)
            resolved.append((stage, stage_tasks))
        return resolved

    def build(
        self,
        metadata: Metadata,
        stages: Mapping[str, Stage],
        tasks: Mapping[str, Task],
        *,
        logger: logging.Logger | None = None,
    ) -> BuiltPipeline:
        log = logger or logging.getLogger(__name__)
        resolved = self.resolve(stages, tasks)

        built_stages: list[BuiltStage] = []
        for stage, stage_tasks in resolved:
            built_tasks = tuple(
                BuiltTask(
                    name=task.name,
                    rendered=render_template(
                        task.template, metadata, label=f"task {task.name} (stage {stage.name})"
                    ),
                )
                for task in stage_tasks
            )
            built_stages.append(BuiltStage(name=stage.name, tasks=built_tasks, artifacts=stage.artifacts))
            log.debug("Resolved stage %s: tasks=%s", stage.name, [t.name for t in built_tasks])

        log.info("Pipeline built (stages=%s)", ", ".join(self.stages) or "<none>")
        return BuiltPipeline(stages=tuple(built_stages))

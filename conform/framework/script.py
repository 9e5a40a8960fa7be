from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass, field
from typing import Any, Callable

from conform.framework.errors import ScriptStepError
from conform.framework.metadata import Metadata
from conform.framework.templating import render_template
from conformkit.config_namespace import ConfigNamespace
from conformkit.engine import ActionStep, StepExecutionError, StepRecorder, StepRunner

CommandRunner = Callable[[str], Any]


def run_shell(command: str) -> None:
    """Run a rendered step command; a non-zero exit raises CalledProcessError."""

    subprocess.run(command, shell=True, check=True)


@dataclass
class ScriptContext:
    metadata: Metadata
    logger: logging.Logger
    steps: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class ScriptStep:
    run: str
    name: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.run, str) or not self.run.strip():
            raise ValueError("ScriptStep.run must be a non-empty string")
        if self.name is not None and (not isinstance(self.name, str) or not self.name.strip()):
            raise ValueError("ScriptStep.name must be a non-empty string or None")


def _step_label(index: int, step: ScriptStep) -> str:
    # Must match the fallback StepRunner assigns to unnamed steps.
    return step.name or f"step_{index + 1:02d}"


@dataclass(frozen=True)
class Script:
    steps: tuple[ScriptStep, ...] = ()

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for index, step in enumerate(self.steps):
            label = _step_label(index, step)
            if label in seen:
                raise ValueError(f"Duplicate script step name: {label}")
            seen.add(label)

    @classmethod
    def from_value(cls, raw: Any, *, path: str = "script") -> "Script":
        """Parse `script:` as a list of commands or `{name, run}` mappings."""

        if raw is None:
            return cls()
        if not isinstance(raw, (list, tuple)):
            raise TypeError(f"{path} must be a list (type={type(raw).__name__})")

        steps: list[ScriptStep] = []
        for idx, item in enumerate(raw):
            if isinstance(item, str):
                steps.append(ScriptStep(run=item))
                continue
            ns = ConfigNamespace.from_value(item, path=f"{path}[{idx}]")
            steps.append(ScriptStep(run=ns.get_str("run"), name=ns.get_str("name", default=None)))
            ns.assert_consumed()
        return cls(steps=tuple(steps))

    def _action(self, index: int, step: ScriptStep, runner: CommandRunner) -> ActionStep:
        label = _step_label(index, step)

        def _run(ctx: ScriptContext) -> None:
            command = render_template(step.run, ctx.metadata, label=f"script step {label}")
            ctx.logger.debug("Running: %s", command)
            runner(command)

        return ActionStep(name=step.name, fn=_run, meta={"doc": step.run})

    def execute(
        self,
        metadata: Metadata,
        *,
        runner: CommandRunner | None = None,
        logger: logging.Logger | None = None,
        recorder: StepRecorder | None = None,
    ) -> ScriptContext:
        ctx = ScriptContext(metadata=metadata, logger=logger or logging.getLogger(__name__))
        actions = [self._action(i, step, runner or run_shell) for i, step in enumerate(self.steps)]

        try:
            StepRunner(recorder=recorder).run(ctx, actions)
        except StepExecutionError as exc:
            raise ScriptStepError(exc.index, exc.name, exc.cause) from exc.cause

        ctx.logger.info("Script completed (%d step(s))", len(actions))
        return ctx

"""Sequential execution engine for action steps.

This module is intentionally app-agnostic and must not import `conform.*`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Protocol, Sequence


def utc_now_iso8601() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


class FlowContext(Protocol):
    logger: logging.Logger
    steps: list[dict[str, Any]]


@dataclass(frozen=True)
class ActionStep:
    """Pure-Python execution node."""

    name: str | None
    fn: Callable[[FlowContext], Any]
    meta: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.name is not None:
            if not isinstance(self.name, str):
                raise TypeError(
                    f"Action name must be a string or None (type={type(self.name).__name__})"
                )
            name = self.name.strip()
            if not name:
                raise ValueError("Action name cannot be empty")
            object.__setattr__(self, "name", name)

        if not callable(self.fn):
            raise TypeError(f"Action fn must be callable (type={type(self.fn).__name__})")

        if not isinstance(self.meta, dict):
            raise TypeError(f"Action meta must be a dict (type={type(self.meta).__name__})")


class StepExecutionError(Exception):
    """A step raised; carries its 0-based position and effective name."""

    def __init__(self, index: int, name: str, cause: BaseException) -> None:
        self.index = index
        self.name = name
        self.cause = cause
        super().__init__(f"Step {index} ({name}) failed: {cause}")


class StepRecorder(Protocol):
    def on_step_start(self, ctx: FlowContext, path: str, **metrics: Any) -> None:
        ...

    def on_step_end(self, ctx: FlowContext, record: dict[str, Any]) -> None:
        ...

    def on_step_error(self, ctx: FlowContext, path: str, step_name: str, exc: Exception) -> None:
        ...


class DefaultStepRecorder:
    def on_step_start(self, ctx: FlowContext, path: str, **metrics: Any) -> None:
        tokens: list[str] = []
        index = metrics.get("index")
        if isinstance(index, int):
            tokens.append(f"index={index}")

        source = metrics.get("source")
        if isinstance(source, str) and source.strip():
            tokens.append(f"source={source.strip()}")

        doc = metrics.get("doc")
        if isinstance(doc, str) and doc.strip():
            tokens.append(f"doc={doc.strip()}")

        if tokens:
            ctx.logger.info("Step: %s (%s)", path, ", ".join(tokens))
        else:
            ctx.logger.info("Step: %s", path)

    def on_step_end(self, ctx: FlowContext, record: dict[str, Any]) -> None:
        ctx.steps.append(record)
        ctx.logger.info("Completed step %s", record.get("path", "<unknown>"))

    def on_step_error(self, ctx: FlowContext, path: str, step_name: str, exc: Exception) -> None:
        ctx.logger.error("Step failed: %s (%s)", path, exc)


class NullStepRecorder:
    def on_step_start(self, ctx: FlowContext, path: str, **metrics: Any) -> None:
        return

    def on_step_end(self, ctx: FlowContext, record: dict[str, Any]) -> None:
        ctx.steps.append(record)

    def on_step_error(self, ctx: FlowContext, path: str, step_name: str, exc: Exception) -> None:
        return


class StepRunner:
    """Runs steps strictly in order; the first failure aborts the rest."""

    def __init__(self, *, recorder: StepRecorder | None = None, root: str = "script"):
        self._recorder = recorder or DefaultStepRecorder()
        self._root = root
        self._validate_recorder(self._recorder)

    def run(self, ctx: FlowContext, steps: Sequence[ActionStep]) -> None:
        names = [self._effective_name(step, index=i) for i, step in enumerate(steps)]
        self._validate_names(names)

        for index, (step, name) in enumerate(zip(steps, names)):
            self._execute(ctx, step, index=index, name=name)

    def _effective_name(self, step: ActionStep, *, index: int) -> str:
        return step.name or f"step_{index + 1:02d}"

    def _validate_names(self, names: list[str]) -> None:
        seen: set[str] = set()
        duplicates: set[str] = set()
        for name in names:
            if name in seen:
                duplicates.add(name)
            seen.add(name)
        if duplicates:
            raise ValueError(f"Duplicate step name(s) in {self._root}: {', '.join(sorted(duplicates))}")

    def _validate_recorder(self, recorder: StepRecorder) -> None:
        required = ("on_step_start", "on_step_end", "on_step_error")
        for name in required:
            method = getattr(recorder, name, None)
            if method is None or not callable(method):
                raise TypeError(f"Step recorder missing required method: {name}")

    def _callable_source(self, fn: Any) -> str:
        module = getattr(fn, "__module__", None) or "<unknown_module>"
        qualname = getattr(fn, "__qualname__", None) or getattr(fn, "__name__", None) or "<callable>"
        return f"{module}.{qualname}"

    def _execute(self, ctx: FlowContext, step: ActionStep, *, index: int, name: str) -> None:
        path = f"{self._root}/{name}"
        try:
            self._recorder.on_step_start(
                ctx,
                path,
                index=index,
                source=step.meta.get("source") or self._callable_source(step.fn),
                doc=step.meta.get("doc"),
            )

            result = step.fn(ctx)

            record: dict[str, Any] = {
                "type": "action",
                "index": index,
                "name": name,
                "path": path,
                "created_at": utc_now_iso8601(),
            }
            if step.meta:
                record["meta"] = dict(step.meta)
            if result is not None:
                record["result"] = result

            self._recorder.on_step_end(ctx, record)
        except Exception as exc:
            try:
                self._recorder.on_step_error(ctx, path, name, exc)
            except Exception:
                ctx.logger.exception("Step recorder failed during error handling for %s", path)
            raise StepExecutionError(index, name, exc) from exc

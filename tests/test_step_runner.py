import logging
from dataclasses import dataclass, field
from typing import Any

import pytest

from conformkit.engine import ActionStep, NullStepRecorder, StepExecutionError, StepRunner


@dataclass
class _Ctx:
    logger: logging.Logger
    steps: list[dict[str, Any]] = field(default_factory=list)
    calls: list[str] = field(default_factory=list)


def _make_ctx() -> _Ctx:
    logger = logging.getLogger("test.step_runner")
    logger.handlers.clear()
    logger.addHandler(logging.NullHandler())
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    return _Ctx(logger=logger)


def test_steps_run_in_declared_order_and_are_recorded():
    ctx = _make_ctx()

    steps = [
        ActionStep(name="first", fn=lambda c: c.calls.append("first")),
        ActionStep(name=None, fn=lambda c: c.calls.append("second")),
        ActionStep(name="third", fn=lambda c: c.calls.append("third") or "done"),
    ]
    StepRunner(root="script").run(ctx, steps)

    assert ctx.calls == ["first", "second", "third"]
    assert [record["path"] for record in ctx.steps] == [
        "script/first",
        "script/step_02",
        "script/third",
    ]
    assert [record["index"] for record in ctx.steps] == [0, 1, 2]
    assert ctx.steps[2]["result"] == "done"


def test_first_failure_aborts_remaining_steps():
    ctx = _make_ctx()

    def _boom(c: _Ctx) -> None:
        c.calls.append("s2")
        raise RuntimeError("boom")

    steps = [
        ActionStep(name="s1", fn=lambda c: c.calls.append("s1")),
        ActionStep(name="s2", fn=_boom),
        ActionStep(name="s3", fn=lambda c: c.calls.append("s3")),
    ]

    with pytest.raises(StepExecutionError) as excinfo:
        StepRunner(recorder=NullStepRecorder()).run(ctx, steps)

    assert ctx.calls == ["s1", "s2"]
    assert excinfo.value.index == 1
    assert excinfo.value.name == "s2"
    assert isinstance(excinfo.value.cause, RuntimeError)
    assert [record["name"] for record in ctx.steps] == ["s1"]


def test_failure_is_logged_by_default_recorder(caplog):
    ctx = _make_ctx()
    ctx.logger.propagate = True

    with caplog.at_level(logging.INFO, logger="test.step_runner"):
        with pytest.raises(StepExecutionError):
            StepRunner().run(ctx, [ActionStep(name="bad", fn=lambda c: 1 / 0)])

    messages = [record.getMessage() for record in caplog.records]
    assert any(m.startswith("Step: script/bad") for m in messages)
    assert any("Step failed: script/bad" in m for m in messages)


def test_duplicate_step_names_fail_before_anything_runs():
    ctx = _make_ctx()
    steps = [
        ActionStep(name="x", fn=lambda c: c.calls.append("x")),
        ActionStep(name="x", fn=lambda c: c.calls.append("x2")),
    ]
    with pytest.raises(ValueError, match=r"Duplicate step name\(s\) in script: x"):
        StepRunner().run(ctx, steps)
    assert ctx.calls == []


def test_action_step_validates_fields():
    with pytest.raises(TypeError, match=r"must be callable"):
        ActionStep(name="x", fn="not callable")  # type: ignore[arg-type]
    with pytest.raises(ValueError, match=r"cannot be empty"):
        ActionStep(name="  ", fn=lambda c: None)


def test_runner_rejects_incomplete_recorder():
    class _Partial:
        def on_step_start(self, ctx, path, **metrics):
            return None

    with pytest.raises(TypeError, match=r"missing required method: on_step_end"):
        StepRunner(recorder=_Partial())  # type: ignore[arg-type]

import logging
import subprocess

import pytest

from conform.framework.errors import ScriptStepError, TemplateRenderError
from conform.framework.metadata import Metadata, Repository
from conform.framework.script import Script, ScriptStep


def _metadata() -> Metadata:
    return Metadata(
        repository=Repository(branch="main", sha="abc1234"),
        version=None,
        built="2025-01-01T00:00:00Z",
        variables={"target": "release"},
    )


def _quiet_logger() -> logging.Logger:
    logger = logging.getLogger("test.script")
    logger.handlers.clear()
    logger.addHandler(logging.NullHandler())
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    return logger


class RecordingRunner:
    def __init__(self, fail_on: str | None = None):
        self.commands: list[str] = []
        self.fail_on = fail_on

    def __call__(self, command: str) -> None:
        self.commands.append(command)
        if self.fail_on is not None and command == self.fail_on:
            raise subprocess.CalledProcessError(2, command)


def test_steps_run_in_order_with_metadata_bound():
    script = Script.from_value(
        ["make {variables[target]}", {"name": "tag", "run": "echo {repository.branch}@{repository.sha}"}]
    )
    runner = RecordingRunner()

    ctx = script.execute(_metadata(), runner=runner, logger=_quiet_logger())

    assert runner.commands == ["make release", "echo main@abc1234"]
    assert [record["path"] for record in ctx.steps] == ["script/step_01", "script/tag"]


def test_failing_step_stops_the_script_and_reports_its_index():
    script = Script(steps=(ScriptStep(run="s1"), ScriptStep(run="s2"), ScriptStep(run="s3")))
    runner = RecordingRunner(fail_on="s2")

    with pytest.raises(ScriptStepError) as excinfo:
        script.execute(_metadata(), runner=runner, logger=_quiet_logger())

    assert runner.commands == ["s1", "s2"]
    assert excinfo.value.index == 1
    assert excinfo.value.name == "step_02"
    assert isinstance(excinfo.value.cause, subprocess.CalledProcessError)


def test_render_failure_is_a_step_failure():
    script = Script(steps=(ScriptStep(run="echo {variables[missing]}", name="broken"),))

    with pytest.raises(ScriptStepError) as excinfo:
        script.execute(_metadata(), runner=RecordingRunner(), logger=_quiet_logger())

    assert excinfo.value.index == 0
    assert isinstance(excinfo.value.cause, TemplateRenderError)


def test_empty_script_is_a_no_op():
    ctx = Script.from_value(None).execute(_metadata(), runner=RecordingRunner(), logger=_quiet_logger())
    assert ctx.steps == []


def test_script_parsing_is_strict():
    with pytest.raises(TypeError, match=r"script must be a list"):
        Script.from_value("make all")
    with pytest.raises(ValueError, match=r"Unknown config keys under script\[0\]: cmd"):
        Script.from_value([{"run": "make", "cmd": "x"}])
    with pytest.raises(ValueError, match=r"Duplicate script step name: a"):
        Script.from_value([{"name": "a", "run": "x"}, {"name": "a", "run": "y"}])
    with pytest.raises(ValueError, match=r"Duplicate script step name: step_02"):
        Script.from_value([{"name": "step_02", "run": "echo a"}, "echo b"])
    with pytest.raises(ValueError, match=r"ScriptStep.run must be a non-empty string"):
        Script.from_value(["   "])


def test_default_runner_executes_shell_commands(tmp_path):
    marker = tmp_path / "marker.txt"
    script = Script(
        steps=(
            ScriptStep(run=f"echo {{repository.sha}} > '{marker.as_posix()}'"),
            ScriptStep(run="exit 3", name="fails"),
            ScriptStep(run=f"rm '{marker.as_posix()}'"),
        )
    )

    with pytest.raises(ScriptStepError) as excinfo:
        script.execute(_metadata(), logger=_quiet_logger())

    assert excinfo.value.index == 1
    assert excinfo.value.cause.returncode == 3  # type: ignore[attr-defined]
    assert marker.read_text(encoding="utf-8").strip() == "abc1234"

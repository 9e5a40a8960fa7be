import os
from pathlib import Path

import pytest

from conform.foundation.config_io import load_config
from conform.framework.config import ConformConfig
from conform.framework.errors import ConfigLoadError


def test_load_config_finds_repo_root_from_subdir(tmp_path, monkeypatch):
    monkeypatch.delenv("TEST_CONFORM_CONFIG", raising=False)
    (tmp_path / ".git").mkdir()
    (tmp_path / "conform.yaml").write_text("policies: []\n", encoding="utf-8")
    nested = tmp_path / "src" / "pkg"
    nested.mkdir(parents=True)
    monkeypatch.chdir(nested)

    cfg, meta = load_config(env_var="TEST_CONFORM_CONFIG")

    assert cfg == {"policies": []}
    assert meta["mode"] == "base"
    assert Path(meta["paths"][0]).resolve() == (tmp_path / "conform.yaml").resolve()
    assert Path(str(meta["repo_root"])).resolve() == tmp_path.resolve()


def test_load_config_base_plus_local_overlay(tmp_path, monkeypatch):
    monkeypatch.delenv("TEST_CONFORM_CONFIG", raising=False)
    (tmp_path / ".git").mkdir()
    (tmp_path / "conform.yaml").write_text(
        "metadata:\n  variables:\n    a: 1\n    b: 2\n", encoding="utf-8"
    )
    (tmp_path / "conform.local.yaml").write_text(
        "metadata:\n  variables:\n    b: 3\n", encoding="utf-8"
    )

    cfg, meta = load_config(env_var="TEST_CONFORM_CONFIG", start_dir=tmp_path)

    assert cfg == {"metadata": {"variables": {"a": 1, "b": 3}}}
    assert meta["mode"] == "base+local"
    assert len(meta["paths"]) == 2


def test_load_config_overlay_type_mismatch_raises(tmp_path, monkeypatch):
    monkeypatch.delenv("TEST_CONFORM_CONFIG", raising=False)
    (tmp_path / ".git").mkdir()
    (tmp_path / "conform.yaml").write_text("pipeline:\n  stages: [a]\n", encoding="utf-8")
    (tmp_path / "conform.local.yaml").write_text("pipeline: [1, 2]\n", encoding="utf-8")

    with pytest.raises(ConfigLoadError, match=r"Invalid config overlay merge at pipeline"):
        load_config(env_var="TEST_CONFORM_CONFIG", start_dir=tmp_path)


def test_load_config_env_override_loads_single_file(tmp_path, monkeypatch):
    (tmp_path / ".git").mkdir()
    (tmp_path / "conform.yaml").write_text("policies: []\n", encoding="utf-8")
    env_path = tmp_path / "ci.yaml"
    env_path.write_text("script: [make]\n", encoding="utf-8")

    monkeypatch.setenv("TEST_CONFORM_CONFIG", str(env_path))
    cfg, meta = load_config(env_var="TEST_CONFORM_CONFIG", start_dir=tmp_path)

    assert cfg == {"script": ["make"]}
    assert meta["mode"] == "env"
    assert meta["paths"] == [os.path.abspath(str(env_path))]


def test_explicit_path_wins_over_env(tmp_path, monkeypatch):
    env_path = tmp_path / "env.yaml"
    env_path.write_text("script: [env]\n", encoding="utf-8")
    explicit = tmp_path / "explicit.yaml"
    explicit.write_text("script: [explicit]\n", encoding="utf-8")
    monkeypatch.setenv("TEST_CONFORM_CONFIG", str(env_path))

    cfg, meta = load_config(explicit, env_var="TEST_CONFORM_CONFIG")

    assert cfg == {"script": ["explicit"]}
    assert meta["mode"] == "explicit"


def test_missing_or_invalid_documents_raise_config_load_error(tmp_path):
    with pytest.raises(ConfigLoadError, match=r"Missing config file"):
        load_config(tmp_path / "nope.yaml", env_var=None)

    bad = tmp_path / "bad.yaml"
    bad.write_text("policies: [1, 2\n", encoding="utf-8")
    with pytest.raises(ConfigLoadError, match=r"Invalid YAML"):
        load_config(bad, env_var=None)

    scalar = tmp_path / "scalar.yaml"
    scalar.write_text("just a string\n", encoding="utf-8")
    with pytest.raises(ConfigLoadError, match=r"must contain a YAML mapping"):
        load_config(scalar, env_var=None)


def test_conform_config_parses_every_section():
    config = ConformConfig.from_dict(
        {
            "metadata": {"git": False, "variables": {"image": "x"}},
            "policies": [
                {"type": "conventionalCommit", "spec": {"types": ["feat"]}},
                {"type": "version"},
            ],
            "pipeline": {"stages": ["test"]},
            "stages": {
                "test": {
                    "tasks": ["lint"],
                    "artifacts": [{"source": "/out", "destination": "./out"}],
                }
            },
            "tasks": {"lint": {"template": "RUN make lint"}},
            "script": ["make", {"name": "publish", "run": "make publish"}],
        }
    )

    assert config.metadata.git is False
    assert [p.type for p in config.policies] == ["conventionalCommit", "version"]
    assert config.policies[0].spec == {"types": ["feat"]}
    assert config.policies[1].spec is None
    assert config.pipeline.stages == ("test",)
    assert config.stages["test"].tasks == ("lint",)
    assert config.stages["test"].artifacts[0].destination == "./out"
    assert config.tasks["lint"].template == "RUN make lint"
    assert [s.name for s in config.script.steps] == [None, "publish"]


def test_conform_config_empty_document_is_valid():
    config = ConformConfig.from_dict({})
    assert config.policies == ()
    assert config.pipeline.stages == ()
    assert dict(config.stages) == {}
    assert config.script.steps == ()


@pytest.mark.parametrize(
    "raw, fragment",
    [
        ({"polices": []}, "Unknown config keys: polices"),
        ({"policies": [{"spec": {}}]}, "Missing required config key: policies[0].type"),
        ({"policies": [{"type": ""}]}, "policies[0].type must be a non-empty string"),
        ({"policies": [{"type": "x", "extra": 1}]}, "Unknown config keys under policies[0]: extra"),
        ({"stages": {"a": {"tasks": "lint"}}}, "stages.a.tasks must be a list[str]"),
        ({"tasks": {"lint": {"template": 3}}}, "tasks.lint.template must be a string"),
        ({"pipeline": {"stages": ["a"], "order": []}}, "Unknown config keys under pipeline: order"),
    ],
)
def test_conform_config_rejects_malformed_documents(raw, fragment):
    with pytest.raises(ConfigLoadError) as excinfo:
        ConformConfig.from_dict(raw)
    assert fragment in str(excinfo.value)

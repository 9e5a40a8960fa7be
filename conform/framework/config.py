from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, TypeVar

from conform.framework.errors import ConfigLoadError
from conform.framework.metadata import MetadataDeclaration
from conform.framework.pipeline import Pipeline, Stage, Task
from conform.framework.script import Script
from conformkit.config_namespace import ConfigNamespace

TOP_LEVEL_KEYS: tuple[str, ...] = ("metadata", "policies", "pipeline", "stages", "tasks", "script")

T = TypeVar("T")


@dataclass(frozen=True)
class PolicyDeclaration:
    """A declared policy type plus its still-untyped spec."""

    type: str
    spec: Any = None

    def __post_init__(self) -> None:
        if not isinstance(self.type, str) or not self.type.strip():
            raise TypeError("PolicyDeclaration.type must be a non-empty string")


@dataclass(frozen=True)
class ConformConfig:
    metadata: MetadataDeclaration = field(default_factory=MetadataDeclaration)
    policies: tuple[PolicyDeclaration, ...] = ()
    pipeline: Pipeline = field(default_factory=Pipeline)
    stages: Mapping[str, Stage] = field(default_factory=lambda: MappingProxyType({}))
    tasks: Mapping[str, Task] = field(default_factory=lambda: MappingProxyType({}))
    script: Script = field(default_factory=Script)

    @classmethod
    def from_dict(cls, raw: Any) -> "ConformConfig":
        """Parse a decoded configuration document; shape errors raise ConfigLoadError."""

        try:
            root = ConfigNamespace.from_value(raw, path="")
            unknown = sorted(set(root.keys()) - set(TOP_LEVEL_KEYS))
            if unknown:
                raise ValueError(
                    f"Unknown config keys: {', '.join(unknown)} (allowed: {', '.join(TOP_LEVEL_KEYS)})"
                )

            metadata = MetadataDeclaration.from_namespace(root.namespace("metadata", default=None))
            policies = _parse_policies(root.get_list("policies", default=()))
            pipeline = Pipeline.from_namespace(root.namespace("pipeline", default=None))
            stages = _parse_named(root.namespace("stages", default=None), Stage.from_namespace)
            tasks = _parse_named(root.namespace("tasks", default=None), Task.from_namespace)
            script = Script.from_value(root.get_raw("script", default=None))
            root.assert_consumed()
        except (TypeError, ValueError) as exc:
            raise ConfigLoadError(f"Invalid configuration: {exc}") from exc

        return cls(
            metadata=metadata,
            policies=policies,
            pipeline=pipeline,
            stages=MappingProxyType(stages),
            tasks=MappingProxyType(tasks),
            script=script,
        )


def _parse_policies(items: list[Any]) -> tuple[PolicyDeclaration, ...]:
    declarations: list[PolicyDeclaration] = []
    for idx, item in enumerate(items):
        ns = ConfigNamespace.from_value(item, path=f"policies[{idx}]")
        policy_type = ns.get_raw("type")
        if not isinstance(policy_type, str) or not policy_type.strip():
            raise TypeError(f"policies[{idx}].type must be a non-empty string")
        spec = ns.get_raw("spec", default=None)
        ns.assert_consumed()
        declarations.append(PolicyDeclaration(type=policy_type, spec=spec))
    return tuple(declarations)


def _parse_named(ns: ConfigNamespace, factory: Callable[[str, ConfigNamespace], T]) -> dict[str, T]:
    out: dict[str, T] = {}
    for name in ns.keys():
        out[name] = factory(name, ns.namespace(name, default=None))
    return out
